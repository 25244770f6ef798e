from __future__ import annotations

from selfheal.core.exceptions import SelectorValidationError
from selfheal.core.locators import infer_selector_type


def parse_selector_response(response: str) -> tuple[str, str]:
    selector = (response or "").strip()
    if selector.startswith("`") and selector.endswith("`") and "```" not in selector:
        selector = selector.strip("`").strip()
    if not selector:
        raise SelectorValidationError("Suggestion service returned an empty selector")
    if "\n" in selector or "\r" in selector:
        raise SelectorValidationError("Suggestion service returned a multiline selector")
    if "```" in selector:
        raise SelectorValidationError("Suggestion service returned markdown instead of a selector")
    return selector, infer_selector_type(selector)
