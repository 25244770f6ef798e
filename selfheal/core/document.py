from __future__ import annotations

from abc import ABC, abstractmethod

from selenium.common.exceptions import NoSuchElementException, WebDriverException

from selfheal.core.exceptions import LocatorSyntaxError
from selfheal.core.locators import LocatorPlan, accessible_name, compile_locator

# Errors a live query can raise; callers treat them as "did not match".
QUERY_ERRORS = (WebDriverException, LocatorSyntaxError)


class ElementQuery:
    """Lazy, re-evaluatable query against the live document."""

    def __init__(self, document: Document, expression: str) -> None:
        self.document = document
        self.expression = expression

    def all(self) -> list:
        return self.document.find_all(self.expression)

    def count(self) -> int:
        return len(self.all())

    def first(self):
        elements = self.all()
        if not elements:
            raise NoSuchElementException(f"No element matches: {self.expression}")
        return elements[0]

    def __repr__(self) -> str:
        return f"ElementQuery({self.expression!r})"


class Document(ABC):
    """Capability the resolver needs from the browser layer."""

    def locate(self, expression: str) -> ElementQuery:
        return ElementQuery(self, expression)

    @abstractmethod
    def find_all(self, expression: str) -> list:
        raise NotImplementedError

    @abstractmethod
    def content(self) -> str:
        raise NotImplementedError


class SeleniumDocument(Document):
    """Evaluates locator expressions against a Selenium WebDriver session."""

    def __init__(self, driver) -> None:
        self.driver = driver

    def find_all(self, expression: str) -> list:
        plan = compile_locator(expression)
        elements = list(self.driver.find_elements(plan.by, plan.value))
        return apply_plan_filters(elements, plan)

    def content(self) -> str:
        return self.driver.page_source or ""


def apply_plan_filters(elements: list, plan: LocatorPlan) -> list:
    if plan.accessible_name is not None:
        wanted = plan.accessible_name.lower()
        elements = [item for item in elements if wanted in accessible_name(item).lower()]
    for key, value in plan.filters:
        if key == "visible":
            expected = value == "true"
            elements = [item for item in elements if bool(item.is_displayed()) is expected]
        elif key == "has-text":
            wanted = value.lower()
            elements = [item for item in elements if wanted in (item.text or "").lower()]
        elif key == "nth":
            position = int(value)
            try:
                elements = [elements[position]]
            except IndexError:
                elements = []
    return elements
