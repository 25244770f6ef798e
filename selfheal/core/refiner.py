from __future__ import annotations

import logging

from selfheal.core.document import QUERY_ERRORS, Document
from selfheal.core.locators import first_of_kind, with_filter
from selfheal.core.metadata import Candidate

log = logging.getLogger(__name__)

FIRST_MATCH_REASON = "Multiple matches, using first"


class RefinementResolver:
    """Narrows a selector that matches several elements down to one.

    Never fails: when neither first-of-kind nor visibility narrowing yields a
    unique match, the first match in document order is taken. Repeated rows in
    list-like UI make the first match a reasonable stand-in, but this also
    hides selectors that match unrelated elements.
    """

    def refine(self, document: Document, original_selector: str) -> Candidate:
        refinements: list[tuple[str, str]] = []
        first_sibling = first_of_kind(original_selector)
        if first_sibling:
            refinements.append((first_sibling, "Refined to first element of its kind"))
        refinements.append((with_filter(original_selector, "visible=true"), "Refined to the only visible match"))

        for selector, reason in refinements:
            try:
                count = document.locate(selector).count()
            except QUERY_ERRORS as exc:
                log.debug("Refinement %r failed: %s", selector, exc)
                continue
            if count == 1:
                return Candidate(selector, reason)
        return Candidate(with_filter(original_selector, "nth=0"), FIRST_MATCH_REASON)
