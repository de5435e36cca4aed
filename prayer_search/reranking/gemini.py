"""
Gemini completion provider using Google GenAI SDK.

Runs on Vertex AI. The synchronous SDK call is executed in a worker thread so
the event loop keeps serving other searches while the model answers.
"""

import asyncio
import logging
import os
from typing import List, Optional

from google import genai
from google.genai import types

from ..exceptions import AIBoundaryError
from .base import ChatMessage, CompletionProvider

logger = logging.getLogger(__name__)


class GeminiCompletion(CompletionProvider):
    """
    Completion provider backed by Gemini models.

    System messages become the system instruction; user/assistant turns are
    sent as user/model contents.
    """

    def __init__(
        self,
        model_name: str = "gemini-2.5-flash",
        project_id: Optional[str] = None,
        location: str = "us-central1",
        temperature: float = 0.0,
        max_output_tokens: int = 2048,
    ):
        """
        Initialize Gemini provider.

        Args:
            model_name: Gemini model to use
            project_id: GCP project ID (reads from GOOGLE_CLOUD_PROJECT env if not provided)
            location: GCP region (default: us-central1)
            temperature: Model temperature (0.0 = deterministic)
            max_output_tokens: Output cap (5 analyses fit comfortably)
        """
        self.model_name = model_name
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        self.location = location
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

        if not self.project_id:
            raise ValueError(
                "GCP project ID required. Set GOOGLE_CLOUD_PROJECT env var or pass project_id parameter."
            )

        try:
            self.client = genai.Client(
                vertexai=True,
                project=self.project_id,
                location=self.location
            )
            logger.info(
                f"Gemini completion initialized: {model_name} "
                f"(project={self.project_id}, location={self.location})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {e}")
            raise

    def _build_request(self, messages: List[ChatMessage]):
        system_parts = [m.content for m in messages if m.role == "system"]
        contents = [
            types.Content(
                role="model" if m.role == "assistant" else "user",
                parts=[types.Part(text=m.content)],
            )
            for m in messages
            if m.role != "system"
        ]
        config = types.GenerateContentConfig(
            system_instruction="\n\n".join(system_parts) or None,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            response_mime_type="application/json",  # Force JSON output
        )
        return contents, config

    def _generate(self, messages: List[ChatMessage]) -> str:
        contents, config = self._build_request(messages)
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise AIBoundaryError(f"Gemini API error: {e}") from e

        text = response.text
        if not text:
            raise AIBoundaryError("Gemini returned an empty response")

        logger.debug(f"Gemini raw response (first 500 chars): {text[:500]}")
        return text

    async def complete(self, messages: List[ChatMessage]) -> str:
        return await asyncio.to_thread(self._generate, messages)

    def get_model_info(self) -> dict:
        """Get information about the Gemini provider."""
        return {
            "name": self.model_name,
            "type": "gemini-llm",
            "provider": "Google Vertex AI",
            "project": self.project_id,
            "location": self.location,
            "temperature": self.temperature,
        }

    def close(self):
        """Cleanup (Gemini client doesn't require explicit cleanup)."""
        logger.info("Gemini completion closed")
