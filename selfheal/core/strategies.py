"""Fallback strategies tried, in order, when a locator matches nothing.

Order runs from specific, stable signals to generic or expensive ones and is
part of the contract: two strategies can both succeed on the same page with
different answers, so the first success wins.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from selfheal.config.schema import HeuristicSelector, ResolverConfig, SuggestionConfig
from selfheal.core.document import QUERY_ERRORS, Document
from selfheal.core.exceptions import CollaboratorUnavailable, SelectorValidationError
from selfheal.core.locators import (
    attribute_equals_xpath,
    attribute_selector,
    class_selector,
    infer_selector_type,
    role_selector,
    tag_text_xpath,
    text_selector,
    with_filter,
)
from selfheal.core.metadata import Candidate, ChainOutcome
from selfheal.llm.client import SuggestionClient
from selfheal.llm.parser import parse_selector_response
from selfheal.utils.dom_extract import build_dom_excerpt
from selfheal.utils.keywords import (
    classify_context,
    extract_keywords,
    implies_input,
    quoted_literals,
    selector_tokens,
    shares_keyword,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ProbeContext:
    document: Document
    original_selector: str
    element_context: str | None = None

    @property
    def hint_text(self) -> str:
        return f"{self.original_selector} {self.element_context or ''}"

    def elements(self, expression: str) -> list:
        return self.document.locate(expression).all()

    def is_unique(self, expression: str) -> bool:
        try:
            return self.document.locate(expression).count() == 1
        except QUERY_ERRORS as exc:
            log.debug("Probe %r failed: %s", expression, exc)
            return False


class ResolutionStrategy(ABC):
    name = "strategy"

    @abstractmethod
    def probe(self, ctx: ProbeContext) -> Candidate | None:
        """Returns a candidate locator or ``None`` for no opinion."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PlaceholderStrategy(ResolutionStrategy):
    name = "placeholder"

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        keywords = extract_keywords(ctx.hint_text)
        relevant: list[str] = []
        others: list[str] = []
        for element in ctx.elements("input, textarea"):
            placeholder = element.get_attribute("placeholder")
            if not placeholder or not placeholder.strip():
                continue
            bucket = relevant if shares_keyword(placeholder, keywords) else others
            bucket.append(placeholder)
        ordered = relevant + (others if implies_input(ctx.original_selector, ctx.element_context) else [])
        for placeholder in dict.fromkeys(ordered):
            selector = attribute_selector("placeholder", placeholder)
            if ctx.is_unique(selector):
                return Candidate(selector, f'Found input using placeholder: "{placeholder}"')
        return None


class ContextKeywordStrategy(ResolutionStrategy):
    name = "context_keyword"

    skipped_input_types = {"hidden", "submit", "button", "checkbox", "radio"}

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        keywords = extract_keywords(ctx.element_context or "")
        for bucket in classify_context(ctx.element_context):
            probe_bucket = getattr(self, f"_probe_{bucket}")
            candidate = probe_bucket(ctx, keywords)
            if candidate is not None:
                return candidate
        return None

    def _probe_input(self, ctx: ProbeContext, keywords: list[str]) -> Candidate | None:
        inputs = ctx.elements("input, textarea >> visible=true")
        for element in self._ranked(inputs, keywords, ("placeholder", "name", "id", "aria-label")):
            input_type = (element.get_attribute("type") or "").lower()
            if input_type in self.skipped_input_types:
                continue
            for attribute in ("placeholder", "name"):
                value = element.get_attribute(attribute)
                if not value:
                    continue
                selector = attribute_selector(attribute, value)
                if ctx.is_unique(selector):
                    return Candidate(
                        selector,
                        f'Context "{ctx.element_context}" -> found visible input by {attribute}',
                    )
        return None

    def _probe_toggle(self, ctx: ProbeContext, keywords: list[str]) -> Candidate | None:
        toggles = ctx.elements('input[type="checkbox"], .toggle >> visible=true')
        for element in self._ranked(toggles, keywords, ("class", "id", "name", "aria-label")):
            options: list[str] = []
            classes = (element.get_attribute("class") or "").split()
            if classes:
                options.append(class_selector(classes[0]))
            for attribute in ("id", "name", "aria-label"):
                value = element.get_attribute(attribute)
                if value:
                    options.append(attribute_selector(attribute, value))
            options.append('input[type="checkbox"]')
            for selector in options:
                if ctx.is_unique(selector):
                    return Candidate(
                        selector,
                        f'Context "{ctx.element_context}" -> found toggle/checkbox element',
                    )
        return None

    def _probe_button(self, ctx: ProbeContext, keywords: list[str]) -> Candidate | None:
        return self._probe_by_text(ctx, keywords, "button", "button")

    def _probe_link(self, ctx: ProbeContext, keywords: list[str]) -> Candidate | None:
        return self._probe_by_text(ctx, keywords, "a", "link")

    @staticmethod
    def _ranked(elements: list, keywords: list[str], attributes: tuple[str, ...]) -> list:
        """Elements whose attributes mention a context keyword come first, otherwise document order."""

        def unrelated(element) -> bool:
            return not any(shares_keyword(element.get_attribute(name), keywords) for name in attributes)

        return sorted(elements, key=unrelated)

    def _probe_by_text(self, ctx: ProbeContext, keywords: list[str], tag: str, label: str) -> Candidate | None:
        texts = [
            (element.text or "").strip()
            for element in ctx.elements(f"{tag} >> visible=true")
        ]
        texts = [text for text in dict.fromkeys(texts) if text]
        texts.sort(key=lambda text: not shares_keyword(text, keywords))
        for text in texts:
            selector = tag_text_xpath(tag, text)
            if ctx.is_unique(selector):
                return Candidate(selector, f'Context "{ctx.element_context}" -> found {label} with text')
        return None


class RoleStrategy(ResolutionStrategy):
    name = "role"

    roles = ("button", "link", "textbox", "heading", "listitem", "checkbox")

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        for name in self._names(ctx):
            for role in self.roles:
                selector = role_selector(role, name)
                if ctx.is_unique(selector):
                    return Candidate(selector, "Switched to role-based selector for better stability")
        selector = role_selector("textbox")
        if ctx.is_unique(selector):
            return Candidate(selector, "Found single textbox using role selector")
        return None

    @staticmethod
    def _names(ctx: ProbeContext) -> list[str]:
        names = list(quoted_literals(ctx.original_selector))
        if ctx.element_context and ctx.element_context.strip():
            names.append(" ".join(ctx.element_context.split()))
        phrase = " ".join(selector_tokens(ctx.original_selector))
        if phrase:
            names.append(phrase)
        return list(dict.fromkeys(names))


class VisibleTextStrategy(ResolutionStrategy):
    name = "visible_text"

    # Text content first, then the attributes that carry visible text on inputs.
    content_attributes = ("value", "placeholder")

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        for token in self._tokens(ctx.original_selector):
            options = [(text_selector(token), "visible text")]
            options.extend(
                (attribute_equals_xpath(attribute, token), attribute) for attribute in self.content_attributes
            )
            for expression, source in options:
                selector = with_filter(expression, "visible=true")
                if ctx.is_unique(selector):
                    return Candidate(selector, f'Found element by {source}: "{token}"')
        return None

    @staticmethod
    def _tokens(expression: str) -> list[str]:
        words = selector_tokens(expression)
        tokens = list(quoted_literals(expression))
        if len(words) > 1:
            tokens.append(" ".join(words))
        tokens.extend(word for word in words if len(word) > 2)
        return list(dict.fromkeys(tokens))


class StableAttributeStrategy(ResolutionStrategy):
    name = "stable_attribute"

    attributes = ("data-testid", "id", "name", "aria-label", "placeholder", "type", "class")

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        keywords = extract_keywords(ctx.hint_text)
        relevant: list[tuple[str, str, str]] = []
        others: list[tuple[str, str, str]] = []
        for attribute in self.attributes:
            for element in ctx.elements(f"[{attribute}]"):
                value = (element.get_attribute(attribute) or "").strip()
                for selector, related in self._options(attribute, value, keywords):
                    bucket = relevant if related else others
                    bucket.append((selector, attribute, value))
        tried: set[str] = set()
        for selector, attribute, value in relevant + others:
            if selector in tried:
                continue
            tried.add(selector)
            if ctx.is_unique(selector):
                return Candidate(selector, f'Found stable element using {attribute}="{value}"')
        return None

    @staticmethod
    def _options(attribute: str, value: str, keywords: list[str]) -> list[tuple[str, bool]]:
        """Selectors for one attribute value, each flagged by keyword relevance."""

        if not value:
            return []
        if attribute == "class":
            return [(class_selector(name), shares_keyword(name, keywords)) for name in value.split()]
        return [(attribute_selector(attribute, value), shares_keyword(value, keywords))]


class DomainHeuristicStrategy(ResolutionStrategy):
    name = "domain_heuristic"

    def __init__(self, heuristics: Iterable[HeuristicSelector]) -> None:
        self.heuristics = list(heuristics)

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        for entry in self.heuristics:
            if ctx.is_unique(entry.selector):
                return Candidate(entry.selector, entry.reason)
        return None


class StructuralVariantStrategy(ResolutionStrategy):
    name = "structural_variant"

    _index_predicate = re.compile(r"\[\d+\]")
    _nth_pseudo = re.compile(r":nth-(?:child|of-type)\([^)]*\)")
    _div_tag = re.compile(r"(?<![\w.#\-\[@'\"=])div(?![\w\-])")

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        for selector in self.variants(ctx.original_selector):
            if ctx.is_unique(selector):
                return Candidate(selector, "Found using alternative structural path")
        return None

    def variants(self, expression: str) -> list[str]:
        selector_type = infer_selector_type(expression)
        if selector_type not in {"css", "xpath"}:
            return []
        index_pattern = self._index_predicate if selector_type == "xpath" else self._nth_pseudo
        stripped = index_pattern.sub("", expression, count=1)
        wildcard = self._div_tag.sub("*", expression)
        rewrites = [stripped, wildcard]
        rewrites.extend(self._first_of(item, selector_type) for item in (expression, stripped, wildcard))
        return [item for item in dict.fromkeys(rewrites) if item != expression]

    @staticmethod
    def _first_of(expression: str, selector_type: str) -> str:
        if selector_type == "xpath":
            return f"({expression})[1]"
        return with_filter(expression, "nth=0")


class SemanticSuggestionStrategy(ResolutionStrategy):
    name = "semantic_suggestion"

    def __init__(
        self,
        client: SuggestionClient | None,
        excerpt_chars: int = 5000,
        default_context: str = "General page interaction",
    ) -> None:
        self.client = client
        self.excerpt_chars = excerpt_chars
        self.default_context = default_context

    def probe(self, ctx: ProbeContext) -> Candidate | None:
        if self.client is None:
            return None
        excerpt = build_dom_excerpt(ctx.document.content(), self.excerpt_chars)
        context = ctx.element_context or self.default_context
        try:
            response = self.client.suggest(ctx.original_selector, excerpt, context)
        except Exception as exc:  # noqa: BLE001 - any provider failure downgrades to no opinion.
            failure = exc if isinstance(exc, CollaboratorUnavailable) else CollaboratorUnavailable(str(exc))
            log.warning("Selector suggestion unavailable via %s: %s", self.client.provider_name, failure)
            return None
        try:
            selector, _ = parse_selector_response(response)
        except SelectorValidationError as exc:
            log.debug("Discarding suggestion %r: %s", response, exc)
            return None
        if selector != ctx.original_selector and ctx.is_unique(selector):
            return Candidate(selector, "AI-suggested selector based on page context")
        return None


class StrategyChain:
    """Runs strategies sequentially; the first unique candidate wins."""

    def __init__(self, strategies: Iterable[ResolutionStrategy]) -> None:
        self.strategies = list(strategies)

    def run(self, ctx: ProbeContext) -> ChainOutcome:
        attempted = 0
        for strategy in self.strategies:
            attempted += 1
            try:
                candidate = strategy.probe(ctx)
            except Exception as exc:  # noqa: BLE001 - a failing probe must not abort the chain.
                log.debug("Strategy %s raised %s: %s", strategy.name, type(exc).__name__, exc)
                continue
            if candidate is None:
                continue
            if not ctx.is_unique(candidate.selector):
                log.debug("Strategy %s proposed non-unique selector %s", strategy.name, candidate.selector)
                continue
            return ChainOutcome(candidate=candidate, strategy=strategy.name, attempted=attempted)
        return ChainOutcome(candidate=None, strategy=None, attempted=attempted)


def default_strategies(
    resolver_config: ResolverConfig | None = None,
    suggestion_client: SuggestionClient | None = None,
    suggestion_config: SuggestionConfig | None = None,
) -> list[ResolutionStrategy]:
    resolver_config = resolver_config or ResolverConfig()
    suggestion_config = suggestion_config or SuggestionConfig()
    return [
        PlaceholderStrategy(),
        ContextKeywordStrategy(),
        RoleStrategy(),
        VisibleTextStrategy(),
        StableAttributeStrategy(),
        DomainHeuristicStrategy(resolver_config.domain_heuristics),
        StructuralVariantStrategy(),
        SemanticSuggestionStrategy(
            suggestion_client,
            excerpt_chars=suggestion_config.excerpt_chars,
            default_context=suggestion_config.default_context,
        ),
    ]
