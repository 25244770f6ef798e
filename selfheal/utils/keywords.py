from __future__ import annotations

import re

# Words that belong to selector syntax rather than to the element being described.
SELECTOR_SYNTAX_WORDS = {
    "and", "not", "or", "of", "nth", "child", "first", "last", "type", "contains",
    "text", "normalize", "space", "starts", "with", "div", "span", "css", "xpath",
    "visible", "true", "false", "has", "role", "name", "class", "id", "data",
    "testid", "old", "broken", "legacy", "v1", "v2",
}

CONTEXT_BUCKETS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("input", ("input", "type", "enter", "fill")),
    ("toggle", ("toggle", "check", "complete", "mark")),
    ("button", ("button", "click", "submit")),
    ("link", ("link", "filter", "navigate")),
)

INPUT_HINTS = ("input", "field", "textbox", "textarea", "enter", "fill", "type", "search")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_QUOTED = re.compile(r"\"((?:[^\"\\]|\\.)*)\"|'((?:[^'\\]|\\.)*)'")


def extract_keywords(text: str) -> list[str]:
    """Lowercase alphabetic words longer than three characters, in first-seen order."""

    words = re.sub(r"[^a-z\s]", " ", _split_camel(text).lower()).split()
    return _unique(word for word in words if len(word) > 3)


def selector_tokens(expression: str) -> list[str]:
    """Descriptive words found in identifiers of a locator expression."""

    without_literals = _QUOTED.sub(" ", expression)
    words = re.findall(r"[A-Za-z][A-Za-z0-9]*", _split_camel(without_literals))
    return _unique(
        word.lower()
        for word in words
        if len(word) > 1 and word.lower() not in SELECTOR_SYNTAX_WORDS
    )


def quoted_literals(expression: str) -> list[str]:
    literals = []
    for match in _QUOTED.finditer(expression):
        value = match.group(1) if match.group(1) is not None else match.group(2)
        value = " ".join(value.split())
        if value:
            literals.append(value)
    return _unique(literals)


def classify_context(context: str | None) -> list[str]:
    if not context:
        return []
    lowered = context.lower()
    return [bucket for bucket, hints in CONTEXT_BUCKETS if any(hint in lowered for hint in hints)]


def implies_input(original_selector: str, context: str | None) -> bool:
    """True when a selector identifier or context word names an input-like target."""

    words = set(selector_tokens(original_selector)) | set(extract_keywords(context or ""))
    return any(hint in words for hint in INPUT_HINTS)


def shares_keyword(value: str | None, keywords: list[str]) -> bool:
    if not value:
        return False
    lowered = _split_camel(value).lower()
    return any(keyword in lowered for keyword in keywords)


def _split_camel(text: str) -> str:
    return _CAMEL_BOUNDARY.sub(" ", text)


def _unique(items) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered
