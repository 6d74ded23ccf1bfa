"""Error taxonomy for payload acquisition."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sources import TierFailure


class PayloadError(RuntimeError):
    """Generic failure while acquiring a payload."""


class RetrievalError(PayloadError):
    """Network, HTTP status, or file read failure."""


class ParseError(PayloadError):
    """Payload body was not valid JSON."""


class ValidationError(PayloadError):
    """Payload parsed but violated the expected structure."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: tuple[str, ...] = tuple(errors)
        super().__init__(f"Validation failed: {' | '.join(self.errors)}")


class CacheError(PayloadError):
    """Read or write failure on the durable cache."""


class ConfigError(RuntimeError):
    """Configuration document could not be read."""


class ContentUnavailableError(PayloadError):
    """Every content tier failed; the kiosk has nothing to render."""

    def __init__(self, failures: Sequence[TierFailure]) -> None:
        self.failures = tuple(failures)
        details = " ".join(f"{failure.tier.capitalize()} error: {failure.reason}" for failure in self.failures)
        message = "Unable to load content."
        super().__init__(f"{message} {details}" if details else message)
