"""
Abstract completion boundary used by the AI reranker.

The search core only depends on this contract: an ordered list of chat
messages goes in, one string comes out. Every provider must raise
AIBoundaryError (never a transport-specific exception) on failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Literal


@dataclass(frozen=True)
class ChatMessage:
    """Single chat turn"""
    role: Literal["system", "user", "assistant"]
    content: str


class CompletionProvider(ABC):
    """
    Abstract base class for completion providers.

    All providers must implement this interface to be swappable.
    """

    @abstractmethod
    async def complete(self, messages: List[ChatMessage]) -> str:
        """
        Run one non-streaming completion.

        Args:
            messages: Conversation, system message first (optional)

        Returns:
            Raw model output text

        Raises:
            AIBoundaryError: network failure, non-success status or empty output
        """
        pass

    @abstractmethod
    def get_model_info(self) -> dict:
        """
        Get information about the completion model.

        Returns:
            Dict with keys: name, type, provider
        """
        pass

    def close(self):
        """Optional cleanup (close HTTP sessions, etc.)"""
        pass
