"""
Extraction services: turn a combined menu document into structured data.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from menu_extraction.adapter import BaseLLMAdapter
from menu_extraction.prompt_builder import MenuPromptBuilder
from menu_extraction.retry import LLMRetryExhaustedError, generate_with_retry

from app.scraping.errors import ExtractionError
from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


class ExtractionService(ABC):
    """
    Extracts structured menus from normalized document text.
    """

    @abstractmethod
    def extract(self, document: str, hint: str | None = None) -> dict[str, Any]:
        """
        Return a JSON-serializable extraction payload.

        Raises ExtractionError on malformed input or internal failure.
        """


class LLMExtractionService(ExtractionService):
    """
    Extraction through an LLM adapter with format-error retries.
    """

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter,
        prompt_builder: MenuPromptBuilder | None = None,
        max_format_retries: int = 1,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or MenuPromptBuilder()
        self._max_format_retries = max_format_retries

    def extract(self, document: str, hint: str | None = None) -> dict[str, Any]:
        if not document.strip():
            raise ExtractionError("Cannot extract menus from an empty document.")

        prompt = self._prompt_builder.build_prompt(document, hint)
        try:
            output = generate_with_retry(
                self._adapter,
                prompt,
                max_retries=self._max_format_retries,
            )
        except LLMRetryExhaustedError as exc:
            raise ExtractionError(f"LLM returned unusable output: {exc}") from exc
        except Exception as exc:
            raise ExtractionError(f"LLM request failed: {exc}") from exc

        log_event(
            logger,
            logging.DEBUG,
            "menus_extracted",
            hint=hint,
            menus=len(output.menus),
        )
        return output.model_dump(mode="json")
