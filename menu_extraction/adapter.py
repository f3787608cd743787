"""LLM adapters for menu extraction.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Optional


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Requests JSON object output at temperature 0 so that the same page
    yields the same extraction as far as the backend allows.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 4096,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        client_max_retries: Optional[int] = None,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Optional per-request timeout for the client.
            client_max_retries: Transport retries done by the SDK itself.
                None keeps the SDK default.
        """
        from openai import OpenAI

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        if timeout_seconds:
            client_kwargs["timeout"] = timeout_seconds
        if client_max_retries is not None:
            client_kwargs["max_retries"] = client_max_retries

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            max_tokens=self._max_tokens,
            response_format={"type": "json_object"},
            stream=False,
        )
        return response.choices[0].message.content or ""


_MOCK_RESPONSE = {
    "restaurant_name": "Mock Restaurant",
    "lunch_hours": "10:30-14:00",
    "menus": [
        {
            "day": "Monday",
            "items": [
                {
                    "name": "Salmon soup",
                    "description": "Creamy salmon soup with rye bread",
                    "price": "12.70",
                    "diets": ["L", "G"],
                }
            ],
        }
    ],
    "notes": [],
}

_MOCK_RESPONSE_JSON = json.dumps(_MOCK_RESPONSE, indent=2)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed valid JSON response.

    Used for local runs and CI pipelines where no LLM API is available.
    """

    def generate(self, prompt: str) -> str:
        return _MOCK_RESPONSE_JSON
