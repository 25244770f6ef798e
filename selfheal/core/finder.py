from __future__ import annotations

from selfheal.config.schema import SuiteConfig
from selfheal.core.document import Document
from selfheal.core.metadata import ResolutionResult
from selfheal.core.resolver import AdaptiveResolver


class SafeFinder:
    """Element lookup by suite key, routed through the adaptive resolver."""

    def __init__(self, document: Document, suite_config: SuiteConfig, resolver: AdaptiveResolver) -> None:
        self.document = document
        self.suite_config = suite_config
        self.resolver = resolver
        self.last_result: ResolutionResult | None = None

    def find(self, element_key: str):
        element_definition = self.suite_config.get_element(element_key)
        return self.find_by_selector(element_definition.selector, element_definition.context)

    def find_by_selector(self, selector: str, context: str | None = None):
        self.last_result = self.resolver.resolve(self.document, selector, context)
        return self.last_result.element
