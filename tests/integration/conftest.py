"""Shared fixtures for integration tests

Integration tests use a REAL completion provider (Gemini on Vertex AI or
OpenRouter), configured exactly like the server: AI_ENABLED, AI_PROVIDER,
AI_MODEL and the provider's credentials.

NO MOCKS - these tests verify the actual AI boundary.

IMPORTANT: Integration tests FAIL LOUDLY if not configured.

To run integration tests:
    export AI_ENABLED=true AI_PROVIDER=gemini AI_MODEL=gemini-2.5-flash
    export GCP_PROJECT_ID=your-project-id GCP_REGION=us-central1
    gcloud auth application-default login
    pytest tests/integration/

To skip integration tests explicitly:
    pytest tests/unit/                    # Only unit tests
    pytest -m 'not integration'           # Skip integration marker
"""

import pytest
from pathlib import Path
from dotenv import load_dotenv

from prayer_search.reranking import CompletionFactory

# Load .env.local for integration tests (same as main.py does)
env_local = Path(__file__).parent.parent.parent / ".env.local"
if env_local.exists():
    load_dotenv(env_local, override=True)


@pytest.fixture(scope="session")
def completion_provider():
    """
    Real completion provider built by the factory.

    FAILS LOUDLY if AI is not configured - integration tests should not be silently skipped!
    """
    try:
        provider = CompletionFactory.create(force_reload=True)
    except ValueError as e:
        pytest.fail(
            "\n\n"
            f"❌ AI provider not configured: {e}\n"
            "\n"
            "Set AI_ENABLED=true, AI_PROVIDER, AI_MODEL and provider credentials,\n"
            "or skip integration tests explicitly:\n"
            "   pytest tests/unit/\n"
            "   pytest -m 'not integration'\n"
        )

    if provider is None:
        pytest.fail("❌ AI_ENABLED=false - integration tests need a real completion provider")

    yield provider
    CompletionFactory.cleanup()
