from __future__ import annotations

import logging
import warnings

from selfheal.config.schema import SuiteConfig
from selfheal.core.document import QUERY_ERRORS, Document
from selfheal.core.exceptions import ElementUnresolvable, LedgerWriteConflict, LedgerWriteWarning
from selfheal.core.metadata import Candidate, HealingEvent, HealingStats, ResolutionResult
from selfheal.core.refiner import RefinementResolver
from selfheal.core.strategies import ProbeContext, StrategyChain, default_strategies
from selfheal.llm.client import SuggestionClient, create_suggestion_client
from selfheal.logging.ledger import HealingLedger

log = logging.getLogger(__name__)

REFINEMENT = "refinement"


class AdaptiveResolver:
    """Resolves a locator to exactly one live element, healing it when needed.

    One match is returned untouched. No match (or a query error) runs the
    strategy chain; several matches run the refinement resolver. Every
    substitution is appended to the healing ledger exactly once.
    """

    def __init__(
        self,
        ledger: HealingLedger,
        chain: StrategyChain | None = None,
        refiner: RefinementResolver | None = None,
    ) -> None:
        self.ledger = ledger
        self.chain = chain or StrategyChain(default_strategies())
        self.refiner = refiner or RefinementResolver()

    @classmethod
    def from_config(
        cls,
        config: SuiteConfig,
        suggestion_client: SuggestionClient | None = None,
    ) -> AdaptiveResolver:
        client = suggestion_client or create_suggestion_client(config.suggestion)
        chain = StrategyChain(default_strategies(config.resolver, client, config.suggestion))
        return cls(HealingLedger(config.ledger), chain=chain)

    def resolve(
        self,
        document: Document,
        original_selector: str,
        element_context: str | None = None,
    ) -> ResolutionResult:
        count = self._count(document, original_selector)
        if count == 1:
            return ResolutionResult(element=document.locate(original_selector).first(), healed=False)

        if count == 0:
            log.info("Element not found with selector: %s. Attempting self-healing", original_selector)
            outcome = self.chain.run(ProbeContext(document, original_selector, element_context))
            if not outcome.succeeded:
                log.info("No strategy healed %s after %s attempts", original_selector, outcome.attempted)
                raise ElementUnresolvable(original_selector, outcome.attempted)
            candidate, strategy = outcome.candidate, outcome.strategy
        else:
            log.info("Multiple elements found (%s) for %s. Refining selector", count, original_selector)
            candidate, strategy = self.refiner.refine(document, original_selector), REFINEMENT

        element = document.locate(candidate.selector).first()
        self._record(original_selector, candidate)
        return ResolutionResult(
            element=element,
            healed=True,
            new_selector=candidate.selector,
            reason=candidate.reason,
            strategy=strategy,
        )

    def stats(self) -> HealingStats:
        return self.ledger.stats()

    @staticmethod
    def _count(document: Document, selector: str) -> int:
        try:
            return document.locate(selector).count()
        except QUERY_ERRORS as exc:
            log.debug("Query for %s failed, treating as not found: %s", selector, exc)
            return 0

    def _record(self, original_selector: str, candidate: Candidate) -> None:
        event = HealingEvent(
            original_selector=original_selector,
            new_selector=candidate.selector,
            reason=candidate.reason,
        )
        try:
            self.ledger.append(event)
        except (LedgerWriteConflict, OSError) as exc:
            log.warning("Healing for %s was applied but not recorded: %s", original_selector, exc)
            warnings.warn(
                f"Healing ledger write failed for {original_selector}: {exc}",
                LedgerWriteWarning,
                stacklevel=3,
            )
            return
        log.info("Self-healing applied: %s -> %s (%s)", original_selector, candidate.selector, candidate.reason)
