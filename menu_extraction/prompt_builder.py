"""Structured prompt builder for menu extraction."""

import json
from typing import Optional

from menu_extraction.schema import MenuExtractionOutput

_SCHEMA_JSON = json.dumps(MenuExtractionOutput.model_json_schema(), indent=2)

_SYSTEM_INSTRUCTIONS = """\
You extract lunch menus from restaurant web pages.

STRICT RULES:
- Use ONLY the page content provided below. Do not invent dishes or prices.
- Keep dish names and descriptions in the language of the page.
- Put diet markings (e.g. L, G, VEG) in "diets", not in the dish name.
- Return strictly valid JSON matching the schema defined below.
- Do NOT include any text outside the JSON object.
- Do NOT wrap the JSON in markdown code fences.
"""

_HINT_TEMPLATE = """\
# PAGE LAYOUT HINT

The page layout has been tagged as "{hint}". Use it to locate the menu
sections.
"""


class MenuPromptBuilder:
    """Builds a deterministic extraction prompt for one combined document."""

    def build_prompt(self, document: str, hint: Optional[str] = None) -> str:
        """Build the full extraction prompt.

        Args:
            document: Normalized page content, several pages joined by newlines.
            hint: Optional layout tag configured for the restaurant.

        Returns:
            A fully formatted prompt string ready for LLM consumption.
        """
        hint_section = _HINT_TEMPLATE.format(hint=hint) + "\n" if hint else ""
        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"{hint_section}"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_SCHEMA_JSON}\n```\n\n"
            f"# PAGE CONTENT\n\n"
            f"```html\n{document}\n```\n\n"
            f"# TASK\n\n"
            f"Extract every lunch menu on the page into a single JSON object "
            f"matching the schema above."
        )
