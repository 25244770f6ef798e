from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(slots=True)
class Candidate:
    selector: str
    reason: str


@dataclass(frozen=True, slots=True)
class HealingEvent:
    original_selector: str
    new_selector: str
    reason: str
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_record(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_record(cls, payload: dict[str, Any]) -> HealingEvent:
        return cls(
            original_selector=payload["original_selector"],
            new_selector=payload["new_selector"],
            reason=payload["reason"],
            timestamp=payload["timestamp"],
        )


@dataclass(slots=True)
class HealingStats:
    """Read-side summary of the healing ledger.

    ``success_rate_estimate`` is ``total / (total + 1) * 100``. Failed healing
    attempts are never recorded, so this is a rough heuristic that approaches
    100 as the ledger grows, not a true success ratio.
    """

    total_healings: int
    recent_healings: list[HealingEvent] = field(default_factory=list)
    success_rate_estimate: float = 0.0


@dataclass(slots=True)
class ResolutionResult:
    element: Any
    healed: bool
    new_selector: str | None = None
    reason: str | None = None
    strategy: str | None = None


@dataclass(slots=True)
class ChainOutcome:
    candidate: Candidate | None
    strategy: str | None
    attempted: int

    @property
    def succeeded(self) -> bool:
        return self.candidate is not None
