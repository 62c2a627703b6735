import os
from typing import Callable

from openai import OpenAI, OpenAIError

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_S = float(os.getenv("OPENAI_TIMEOUT_S", "60"))

_client: OpenAI | None = None


def get_openai_client() -> OpenAI:
    """Process-wide OpenAI client, created on first use."""
    global _client

    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            # same error family as SDK failures, so callers map it to 502
            raise OpenAIError("OPENAI_API_KEY is not set")
        _client = OpenAI(api_key=api_key, timeout=OPENAI_TIMEOUT_S)

    return _client


def get_openai_client_factory() -> Callable[[], OpenAI]:
    """
    FastAPI dependency. Hands out the factory rather than the client so a
    route only builds it when it actually calls the model; tests swap it
    through ``app.dependency_overrides``.
    """
    return get_openai_client
