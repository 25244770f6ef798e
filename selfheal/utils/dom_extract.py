from __future__ import annotations

import re

_NOISE_BLOCKS = re.compile(r"<(script|style|noscript)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_COMMENTS = re.compile(r"<!--.*?-->", re.DOTALL)
_WHITESPACE_RUNS = re.compile(r"\s{2,}")


def build_dom_excerpt(page_source: str, max_chars: int = 5000) -> str:
    """Bounded, markup-preserving excerpt of the page for the suggestion service."""

    cleaned = _NOISE_BLOCKS.sub("", page_source or "")
    cleaned = _COMMENTS.sub("", cleaned)
    cleaned = _WHITESPACE_RUNS.sub(" ", cleaned)
    return cleaned[:max_chars]
