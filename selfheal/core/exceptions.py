class HealingError(RuntimeError):
    """Base class for element resolution failures."""


class ElementUnresolvable(HealingError):
    """Raised when no strategy produced a unique match for a selector."""

    def __init__(self, original_selector: str, attempted: int) -> None:
        super().__init__(
            f"Self-healing failed for selector: {original_selector} "
            f"({attempted} strategies attempted)"
        )
        self.original_selector = original_selector
        self.attempted = attempted


class AmbiguousExhausted(HealingError):
    """Reserved for ambiguous selectors that cannot be narrowed.

    The refinement resolver always falls back to the first match, so this is
    never raised today.
    """


class CollaboratorUnavailable(HealingError):
    """Raised when the selector suggestion service fails or times out."""


class LedgerWriteConflict(HealingError):
    """Raised when the healing ledger lock cannot be obtained in time."""


class SelectorValidationError(HealingError):
    """Raised when a suggested selector is unusable."""


class LocatorSyntaxError(ValueError):
    """Raised when a locator expression cannot be parsed."""


class LedgerWriteWarning(UserWarning):
    """Emitted when a healing succeeded but could not be recorded."""
