"""
OpenRouter completion provider (OpenAI-compatible chat completions API).

Requires OPENROUTER_API_KEY environment variable.
"""

import asyncio
import logging
import os
from typing import List

import requests

from ..exceptions import AIBoundaryError
from .base import ChatMessage, CompletionProvider

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterCompletion(CompletionProvider):
    """
    Completion provider for OpenRouter-hosted models.

    One POST per call, no streaming and no retry: the reranker degrades on
    the first failure.
    """

    def __init__(
        self,
        model: str = "qwen/qwen-2-7b-instruct:free",
        timeout: float = 30.0,
        temperature: float = 0.0,
    ):
        api_key = os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY environment variable required for OpenRouter completion")

        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": os.getenv("OPENROUTER_SITE_URL", ""),
            "X-Title": os.getenv("OPENROUTER_SITE_NAME", ""),
        })
        logger.info(f"OpenRouterCompletion initialized with model: {model}")

    def _post(self, messages: List[ChatMessage]) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": self.temperature,
            "stream": False,
        }

        try:
            response = self.session.post(OPENROUTER_URL, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise AIBoundaryError(f"OpenRouter request failed: {e}") from e

        if not response.ok:
            raise AIBoundaryError(
                f"OpenRouter returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIBoundaryError(f"Unexpected OpenRouter response shape: {e}") from e

        if not isinstance(content, str) or not content:
            raise AIBoundaryError("OpenRouter returned an empty completion")
        return content

    async def complete(self, messages: List[ChatMessage]) -> str:
        return await asyncio.to_thread(self._post, messages)

    def get_model_info(self) -> dict:
        """Get model metadata."""
        return {
            "name": self.model,
            "type": "api",
            "provider": "openrouter"
        }

    def close(self):
        """Close HTTP session."""
        self.session.close()
