"""LiteLLM embedder with retry and API key validation.

Model strings are built as ``"{engine}/{model}"`` (e.g. ``openai/text-embedding-3-small``,
``ollama/nomic-embed-text``). LiteLLM's built-in retry is used.
"""

from __future__ import annotations

import os

import litellm

from docbase.interfaces import Embedder

litellm.suppress_debug_info = True

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
}


def litellm_model(engine: str, model: str) -> str:
    """Return the LiteLLM model string for *engine* / *model*."""
    if "/" in model and model.split("/", 1)[0].lower() == engine.lower():
        return model
    return f"{engine}/{model}"


def validate_api_key(engine: str) -> None:
    """Raise EnvironmentError if the API key env var for *engine* is missing."""
    env_var = _PROVIDER_ENV.get(engine.lower())
    if env_var is None:
        return
    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{engine}'. "
            f"Set the {env_var} environment variable."
        )


class LiteLLMEmbedder(Embedder):
    """Embed one chunk per ``litellm.embedding()`` call.

    Args:
        engine:      Provider name (``openai``, ``ollama``, ...).
        model:       Embedding model name.
        timeout:     Per-request timeout in seconds.
        num_retries: Retries on transient errors (exponential backoff).
    """

    def __init__(
        self,
        engine: str,
        model: str,
        timeout: float = 60.0,
        num_retries: int = 3,
    ) -> None:
        validate_api_key(engine)
        self.model = litellm_model(engine, model)
        self._timeout = timeout
        self._num_retries = num_retries

    def embed(self, chunk: str) -> list[float]:
        response = litellm.embedding(
            model=self.model,
            input=[chunk],
            timeout=self._timeout,
            num_retries=self._num_retries,
        )
        return list(response.data[0]["embedding"])
