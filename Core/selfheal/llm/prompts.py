from __future__ import annotations

import json
from typing import Any, Sequence

SYSTEM_PROMPT = """You repair Selenium selectors. Analyze the page and suggest the most reliable selector.
Rules:
1. Use only elements present in the provided element list or visible in the screenshot.
2. Do not invent tags, attributes, text, or hierarchy.
3. Prefer data-testid style attributes, then accessible roles and labels, then other stable attributes.
4. Prefer a CSS selector; return a valid XPath only when CSS cannot identify the element (for example by text).
5. Avoid brittle selectors based on DOM position.
6. Output must be a single line with no explanation, no quotes, no markdown, and no code fence."""

REPAIR_PROMPT_TEMPLATE = """The selector "{identifier}" is not working.
{description_line}
Available elements on the page:
{elements}

Based on the screenshot and available elements, suggest a NEW working selector that would find the intended element.

Consider:
1. data-testid attributes (preferred)
2. Accessible roles and labels
3. Unique text content
4. ID or class combinations
5. Parent-child relationships

Return ONLY the new selector string, nothing else. Examples:
- [data-testid="submit-button"]
- button[aria-label="Close dialog"]
- #login-form button[type="submit"]
- //button[normalize-space()="Submit"]

NEW SELECTOR:"""


def build_repair_prompt(
    identifier: str,
    description: str | None,
    elements: Sequence[dict[str, Any]],
) -> str:
    """Formats the repair instruction for the failed identifier."""

    description_line = f"This element should be: {description}\n" if description else ""
    return REPAIR_PROMPT_TEMPLATE.format(
        identifier=identifier,
        description_line=description_line,
        elements=json.dumps(list(elements), indent=2, sort_keys=True),
    )
