"""
Factory to create completion providers based on configuration.
"""

from typing import Optional
import os
import logging

from .base import CompletionProvider
from .gemini import GeminiCompletion
from .openrouter import OpenRouterCompletion

logger = logging.getLogger(__name__)


class CompletionFactory:
    """Factory to create completion providers based on configuration."""

    _instance: Optional[CompletionProvider] = None  # Singleton cache

    @classmethod
    def create(cls, force_reload: bool = False) -> Optional[CompletionProvider]:
        """
        Create completion provider based on environment configuration.

        Config (env vars):
            AI_ENABLED: "true" to enable AI reranking and smart suggestions
            AI_PROVIDER: "gemini" | "openrouter"
            AI_MODEL: Model identifier (provider-specific)
            AI_TIMEOUT_SECONDS: HTTP timeout for openrouter (default: 30)

        Args:
            force_reload: If True, recreate instance even if cached

        Returns:
            Provider instance, or None if disabled
        """
        if cls._instance is not None and not force_reload:
            logger.debug(f"Returning cached completion provider: {cls._instance}")
            return cls._instance

        enabled_value = os.getenv("AI_ENABLED")
        if not enabled_value:
            raise ValueError("AI_ENABLED environment variable is required")
        enabled = enabled_value.lower() == "true"
        logger.info(f"AI config check: AI_ENABLED={enabled_value} (enabled={enabled})")

        if not enabled:
            cls._instance = None
            return None

        provider = os.getenv("AI_PROVIDER")
        if not provider:
            raise ValueError("AI_PROVIDER environment variable is required when AI is enabled")
        provider = provider.lower()

        model = os.getenv("AI_MODEL")
        if not model:
            raise ValueError("AI_MODEL environment variable is required when AI is enabled")

        try:
            if provider == "gemini":
                project_id = os.getenv("GOOGLE_CLOUD_PROJECT") or os.getenv("GCP_PROJECT_ID")
                location = os.getenv("GOOGLE_CLOUD_LOCATION") or os.getenv("GCP_REGION")
                if not location:
                    raise ValueError("GCP_REGION or GOOGLE_CLOUD_LOCATION environment variable is required")
                logger.info(f"Creating Gemini completion provider: {model}")
                cls._instance = GeminiCompletion(
                    model_name=model,
                    project_id=project_id,
                    location=location
                )

            elif provider == "openrouter":
                timeout = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
                logger.info(f"Creating OpenRouter completion provider: {model}")
                cls._instance = OpenRouterCompletion(model=model, timeout=timeout)

            else:
                raise ValueError(
                    f"Unknown AI provider: {provider}. "
                    f"Valid options: gemini, openrouter"
                )

        except Exception as e:
            logger.error(f"Failed to create completion provider ({provider}): {e}")
            raise

        return cls._instance

    @classmethod
    def cleanup(cls):
        """Cleanup cached provider instance."""
        if cls._instance is not None:
            logger.info("Cleaning up completion provider")
            cls._instance.close()
            cls._instance = None
