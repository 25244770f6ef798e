from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator
from urllib.parse import quote as url_quote

import pytest
from selenium.common.exceptions import WebDriverException

from selfheal.core.actions import SafeActions
from selfheal.core.browser import BrowserSession
from selfheal.core.document import Document, SeleniumDocument, apply_plan_filters
from selfheal.core.finder import SafeFinder
from selfheal.core.locators import compile_locator, split_chain
from selfheal.core.metadata import Candidate
from selfheal.core.resolver import AdaptiveResolver
from selfheal.core.strategies import ResolutionStrategy

TODO_APP_HTML = """<!doctype html>
<html>
<body>
  <section class="todoapp">
    <header class="header">
      <h1>todos</h1>
      <input class="new-todo" placeholder="What needs to be done?" autofocus>
    </header>
    <section class="main">
      <ul class="todo-list">
        <li><div class="view"><input class="toggle" type="checkbox"><label>Buy milk</label><button class="destroy"></button></div></li>
        <li><div class="view"><input class="toggle" type="checkbox"><label>Walk the dog</label><button class="destroy"></button></div></li>
        <li><div class="view"><input class="toggle" type="checkbox"><label>Write report</label><button class="destroy"></button></div></li>
      </ul>
    </section>
    <footer class="footer">
      <a href="#/" class="selected">All</a>
      <a href="#/active">Active</a>
      <button class="clear-completed">Clear completed</button>
    </footer>
  </section>
</body>
</html>
"""


class FakeElement:
    """Minimal stand-in for a Selenium WebElement."""

    def __init__(self, tag: str = "div", text: str = "", attributes: dict[str, str] | None = None, visible: bool = True):
        self.tag_name = tag
        self.text = text
        self.attributes = dict(attributes or {})
        self.visible = visible
        self.clicks = 0
        self.typed: list[str] = []

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def is_displayed(self) -> bool:
        return self.visible

    def click(self) -> None:
        self.clicks += 1

    def clear(self) -> None:
        self.typed.clear()

    def send_keys(self, value: str) -> None:
        self.typed.append(value)

    def __repr__(self) -> str:
        return f"FakeElement({self.tag_name!r}, {self.attributes!r})"


class FakeDocument(Document):
    """Scripted document: known expressions map to their matches, anything else matches nothing.

    Filters chained onto a scripted base (``>> visible=true``, ``>> nth=0``) are
    applied to the base matches, so only the base needs scripting.
    """

    def __init__(
        self,
        matches: dict[str, list] | None = None,
        page_source: str = "",
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.matches = dict(matches or {})
        self.page_source = page_source
        self.errors = dict(errors or {})
        self.queries: list[str] = []

    def find_all(self, expression: str) -> list:
        self.queries.append(expression)
        if expression in self.errors:
            raise self.errors[expression]
        if expression in self.matches:
            return list(self.matches[expression])
        parts = split_chain(expression)
        if len(parts) > 1 and parts[0] in self.matches:
            plan = compile_locator(expression)
            plan.accessible_name = None
            return apply_plan_filters(list(self.matches[parts[0]]), plan)
        return []

    def content(self) -> str:
        return self.page_source


class FixedStrategy(ResolutionStrategy):
    """Strategy double returning a preset candidate and counting its calls."""

    def __init__(self, name: str, candidate: Candidate | None = None, error: Exception | None = None) -> None:
        self.name = name
        self.candidate = candidate
        self.error = error
        self.calls = 0

    def probe(self, ctx):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.candidate


class RecordingSuggestionClient:
    provider_name = "recording"

    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def suggest(self, selector: str, dom_excerpt: str, context: str) -> str:
        self.calls.append((selector, dom_excerpt, context))
        if self.error is not None:
            raise self.error
        return self.response


@dataclass(slots=True)
class BrowserRuntime:
    session: BrowserSession
    document: SeleniumDocument
    resolver: AdaptiveResolver
    finder: SafeFinder
    actions: SafeActions


def todo_app_url() -> str:
    return "data:text/html;charset=utf-8," + url_quote(TODO_APP_HTML)


@contextmanager
def managed_runtime(suite_config, browser_name: str = "chrome") -> Iterator[BrowserRuntime]:
    session = BrowserSession(suite_config.environment)
    try:
        session.start(browser_name)
    except WebDriverException as exc:
        pytest.skip(f"WebDriver could not start for {browser_name}: {exc}")
    try:
        document = session.open(todo_app_url())
        resolver = AdaptiveResolver.from_config(suite_config)
        finder = SafeFinder(document, suite_config, resolver)
        yield BrowserRuntime(
            session=session,
            document=document,
            resolver=resolver,
            finder=finder,
            actions=SafeActions(finder),
        )
    finally:
        session.stop()
