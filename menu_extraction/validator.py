"""Parse a raw model reply into a MenuExtractionOutput."""

import json
import re
from typing import List

from pydantic import ValidationError

from menu_extraction.schema import MenuExtractionOutput

_FENCED_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class LLMOutputValidationError(Exception):
    """The reply is not JSON ("json_parse") or does not fit the schema ("schema")."""

    def __init__(self, stage: str, errors: List[str]) -> None:
        self.stage = stage
        self.errors = errors
        super().__init__(f"{stage}: " + "; ".join(errors))


def validate_llm_output(raw_response: str) -> MenuExtractionOutput:
    """Return the validated output, tolerating a markdown code fence around the JSON."""
    text = (raw_response or "").strip()
    fenced = _FENCED_RE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LLMOutputValidationError("json_parse", [str(exc)]) from exc

    if not isinstance(data, dict):
        raise LLMOutputValidationError("schema", ["top-level JSON must be an object"])

    try:
        return MenuExtractionOutput.model_validate(data)
    except ValidationError as exc:
        raise LLMOutputValidationError(
            "schema",
            [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()],
        ) from exc
