from __future__ import annotations

from selenium.common.exceptions import ElementNotInteractableException, StaleElementReferenceException

RETRYABLE_ERRORS = (ElementNotInteractableException, StaleElementReferenceException)


class SafeActions:
    """High-level element interactions; a stale or blocked element is resolved once more."""

    def __init__(self, finder) -> None:
        self.finder = finder

    def click(self, element_key: str) -> None:
        try:
            self.finder.find(element_key).click()
        except RETRYABLE_ERRORS:
            self.finder.find(element_key).click()

    def fill(self, element_key: str, value: str, clear_first: bool = True) -> None:
        try:
            self._fill(self.finder.find(element_key), value, clear_first)
        except RETRYABLE_ERRORS:
            self._fill(self.finder.find(element_key), value, clear_first)

    def press(self, element_key: str, key: str) -> None:
        try:
            self.finder.find(element_key).send_keys(key)
        except RETRYABLE_ERRORS:
            self.finder.find(element_key).send_keys(key)

    @staticmethod
    def _fill(element, value: str, clear_first: bool) -> None:
        if clear_first:
            element.clear()
        element.send_keys(value)
