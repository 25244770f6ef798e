"""Locator expression dialect understood by :class:`SeleniumDocument`.

An expression is a base selector optionally followed by ``>>`` filters::

    #login-button
    //ul/li[3]/label
    text="Clear completed"
    role=button[name="Add todo"]
    .todo-list li >> visible=true >> nth=0

The base is XPath when it starts with ``/`` or ``(``, a text or role query when
prefixed with ``text=`` or ``role=``, and CSS otherwise.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from selenium.webdriver.common.by import By

from selfheal.core.exceptions import LocatorSyntaxError

CHAIN_SEPARATOR = " >> "

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"

ROLE_XPATHS = {
    "button": (
        "//button | //input[@type='button' or @type='submit' or @type='reset']"
        " | //*[@role='button']"
    ),
    "link": "//a[@href] | //*[@role='link']",
    "textbox": (
        "//textarea | //input[not(@type) or @type='text' or @type='email'"
        " or @type='search' or @type='tel' or @type='url'] | //*[@role='textbox']"
    ),
    "heading": "//h1 | //h2 | //h3 | //h4 | //h5 | //h6 | //*[@role='heading']",
    "listitem": "//li | //*[@role='listitem']",
    "checkbox": "//input[@type='checkbox'] | //*[@role='checkbox']",
}

FILTER_KEYS = {"visible", "nth", "has-text"}

_ROLE_PATTERN = re.compile(r"role=([a-z]+)(?:\[name=(.+)\])?", re.DOTALL)


@dataclass(slots=True)
class LocatorPlan:
    expression: str
    by: str
    value: str
    accessible_name: str | None = None
    filters: list[tuple[str, str]] = field(default_factory=list)


def infer_selector_type(selector: str) -> str:
    stripped = selector.strip()
    if stripped.startswith("text="):
        return "text"
    if stripped.startswith("role="):
        return "role"
    if stripped.startswith("/") or stripped.startswith("("):
        return "xpath"
    return "css"


def compile_locator(expression: str) -> LocatorPlan:
    parts = split_chain(expression)
    if not parts or any(not part for part in parts):
        raise LocatorSyntaxError(f"Empty locator segment in: {expression!r}")

    base = parts[0]
    selector_type = infer_selector_type(base)
    if selector_type == "text":
        text = unquote(base[len("text="):])
        if not text:
            raise LocatorSyntaxError(f"text= locator needs a value: {expression!r}")
        plan = LocatorPlan(expression, By.XPATH, text_equals_xpath(text))
    elif selector_type == "role":
        match = _ROLE_PATTERN.fullmatch(base)
        if not match or match.group(1) not in ROLE_XPATHS:
            raise LocatorSyntaxError(f"Unsupported role locator: {base!r}")
        name = unquote(match.group(2)) if match.group(2) else None
        plan = LocatorPlan(expression, By.XPATH, ROLE_XPATHS[match.group(1)], accessible_name=name)
    elif selector_type == "xpath":
        plan = LocatorPlan(expression, By.XPATH, base)
    else:
        plan = LocatorPlan(expression, By.CSS_SELECTOR, base)

    for part in parts[1:]:
        key, separator, raw_value = part.partition("=")
        key = key.strip()
        if not separator or key not in FILTER_KEYS:
            raise LocatorSyntaxError(f"Unknown locator filter: {part!r}")
        value = unquote(raw_value)
        if key == "visible" and value not in {"true", "false"}:
            raise LocatorSyntaxError(f"visible= expects true or false, got {value!r}")
        if key == "nth":
            try:
                int(value)
            except ValueError as exc:
                raise LocatorSyntaxError(f"nth= expects an integer, got {value!r}") from exc
        plan.filters.append((key, value))
    return plan


def split_chain(expression: str) -> list[str]:
    """Splits on ``>>`` separators that are not inside quotes."""

    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    index = 0
    while index < len(expression):
        char = expression[index]
        if quote:
            current.append(char)
            if char == "\\" and index + 1 < len(expression):
                current.append(expression[index + 1])
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in {'"', "'"}:
            quote = char
            current.append(char)
        elif expression.startswith(">>", index):
            parts.append("".join(current).strip())
            current = []
            index += 2
            continue
        else:
            current.append(char)
        index += 1
    parts.append("".join(current).strip())
    return parts


def unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        inner = value[1:-1]
        return re.sub(r"\\(.)", r"\1", inner)
    return value


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    pieces = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{piece}'" for piece in pieces) + ")"


def text_equals_xpath(text: str) -> str:
    normalized = " ".join(text.split()).lower()
    folded = f"translate(normalize-space(.), '{_UPPER}', '{_LOWER}')"
    literal = xpath_literal(normalized)
    return (
        f"//*[not(self::script or self::style or self::head)]"
        f"[{folded}={literal}][not(*[{folded}={literal}])]"
    )


def attribute_equals_xpath(attribute: str, text: str) -> str:
    """Case-insensitive, whitespace-normalised match on an attribute value."""

    normalized = " ".join(text.split()).lower()
    folded = f"translate(normalize-space(@{attribute}), '{_UPPER}', '{_LOWER}')"
    return f"//*[{folded}={xpath_literal(normalized)}]"


def tag_text_xpath(tag: str, text: str) -> str:
    return f"//{tag}[normalize-space(.)={xpath_literal(' '.join(text.split()))}]"


def css_escape_identifier(identifier: str) -> str:
    escaped: list[str] = []
    for position, char in enumerate(identifier):
        if char.isascii() and (char.isalnum() or char in "-_"):
            if position == 0 and char.isdigit():
                escaped.append(f"\\{ord(char):x} ")
            else:
                escaped.append(char)
        else:
            escaped.append(f"\\{char}")
    return "".join(escaped)


def attribute_selector(attribute: str, value: str) -> str:
    return f"[{attribute}={quote(value)}]"


def class_selector(class_name: str) -> str:
    return f".{css_escape_identifier(class_name)}"


def text_selector(text: str) -> str:
    return f"text={quote(' '.join(text.split()))}"


def role_selector(role: str, name: str | None = None) -> str:
    if name is None:
        return f"role={role}"
    return f"role={role}[name={quote(name)}]"


def with_filter(expression: str, filter_expression: str) -> str:
    return f"{expression}{CHAIN_SEPARATOR}{filter_expression}"


def first_of_kind(expression: str) -> str | None:
    """Restricts a plain CSS or XPath selector to the first sibling of its kind."""

    if len(split_chain(expression)) > 1:
        return None
    selector_type = infer_selector_type(expression)
    if selector_type == "css":
        return f"{expression}:first-of-type"
    if selector_type == "xpath" and not expression.rstrip().endswith(")"):
        return f"{expression}[1]"
    return None


def accessible_name(element) -> str:
    label = element.get_attribute("aria-label")
    if label and label.strip():
        return label.strip()
    text = (element.text or "").strip()
    if text:
        return text
    for attribute in ("value", "placeholder", "title", "alt"):
        value = element.get_attribute(attribute)
        if value and value.strip():
            return value.strip()
    return ""
