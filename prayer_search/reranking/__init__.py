"""
AI reranking for prayer search.

Usage:
    # Get provider (auto-configured from env):
    from prayer_search.reranking import get_completion_provider, AIReranker

    provider = get_completion_provider()
    if provider:
        reranker = AIReranker(provider)
        results = await reranker.enhance(query, candidates, limit=10)

    # Or create a specific provider:
    from prayer_search.reranking import OpenRouterCompletion

    reranker = AIReranker(OpenRouterCompletion("qwen/qwen-2-7b-instruct:free"))
"""

from typing import Optional
from .base import ChatMessage, CompletionProvider
from .gemini import GeminiCompletion
from .openrouter import OpenRouterCompletion
from .factory import CompletionFactory
from .cache import JudgmentCache, make_cache_key
from .reranker import AIReranker


def get_completion_provider(force_reload: bool = False) -> Optional[CompletionProvider]:
    """
    Get configured completion provider (factory convenience function).

    Returns None if AI is disabled via AI_ENABLED=false
    """
    return CompletionFactory.create(force_reload=force_reload)


__all__ = [
    'ChatMessage',
    'CompletionProvider',
    'GeminiCompletion',
    'OpenRouterCompletion',
    'CompletionFactory',
    'JudgmentCache',
    'make_cache_key',
    'AIReranker',
    'get_completion_provider',
]
