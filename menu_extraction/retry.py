"""Re-ask the model when its reply cannot be validated.

Adapter errors (network, auth, rate limits) propagate on the first attempt.
"""

import logging

from menu_extraction.adapter import BaseLLMAdapter
from menu_extraction.schema import MenuExtractionOutput
from menu_extraction.validator import LLMOutputValidationError, validate_llm_output

logger = logging.getLogger(__name__)


class LLMRetryExhaustedError(Exception):
    """Every attempt returned unusable output; `last_error` is the final one."""

    def __init__(self, attempts: int, last_error: LLMOutputValidationError) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"no valid output after {attempts} attempt(s), last: {last_error}")


def generate_with_retry(
    adapter: BaseLLMAdapter,
    prompt: str,
    max_retries: int = 1,
) -> MenuExtractionOutput:
    """Call the adapter up to ``1 + max_retries`` times until the reply validates."""
    attempts = 1 + max(0, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return validate_llm_output(adapter.generate(prompt))
        except LLMOutputValidationError as exc:
            last_error = exc
            logger.warning("Menu extraction attempt %d/%d unusable: %s", attempt, attempts, exc)

    raise LLMRetryExhaustedError(attempts, last_error)
