from __future__ import annotations

from selfheal.core.exceptions import SelectorValidationError

_QUOTES = "\"'`"


def infer_selector_type(selector: str) -> str:
    stripped = selector.strip()
    if stripped.startswith("/") or stripped.startswith("("):
        return "xpath"
    return "css"


def parse_selector_response(response: str) -> tuple[str, str]:
    selector = (response or "").strip()
    if selector.startswith("```"):
        selector = selector.split("\n", 1)[1] if "\n" in selector else selector[3:]
        selector = selector.rsplit("```", 1)[0].strip()
    if len(selector) >= 2 and selector[0] in _QUOTES and selector[-1] == selector[0]:
        selector = selector[1:-1].strip()
    if not selector:
        raise SelectorValidationError("LLM returned an empty selector")
    if "\n" in selector or "\r" in selector:
        raise SelectorValidationError("LLM returned a multiline selector")
    if "```" in selector:
        raise SelectorValidationError("LLM returned markdown instead of a selector")
    return selector, infer_selector_type(selector)
