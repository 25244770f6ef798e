from __future__ import annotations

SYSTEM_PROMPT = """You repair UI test locators. Return exactly one locator string and nothing else.
Rules:
1. Use only elements present in the provided DOM excerpt.
2. Do not invent tags, attributes, text, or hierarchy.
3. Prefer user-facing attributes: role, label, placeholder, visible text.
4. Use data-testid when the element carries one.
5. Avoid fragile CSS selectors built from generated class names.
6. The locator must match exactly one element.
7. Output must be a single line CSS selector or XPath with no explanation, no quotes, no markdown, and no code fence."""


def build_user_prompt(selector: str, dom_excerpt: str, context: str) -> str:
    """Formats the failing locator and page excerpt for the model."""

    return (
        f"Current Selector: {selector}\n"
        f"Context: {context}\n"
        f"Element HTML:\n{dom_excerpt}\n\n"
        "Return ONLY the selector string, nothing else."
    )
