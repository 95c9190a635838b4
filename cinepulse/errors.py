"""
Exception hierarchy for Cine Pulse.

Collaborators translate third-party failures (HTTP, SQLite, SMTP,
provider SDKs) into these types so the run driver can decide whether a
failure skips a source, a provider or a single record.  None of them
aborts a run; only ``DeadlineExceeded`` ends one early.
"""

from __future__ import annotations


class CinePulseError(Exception):
    """Base class for all Cine Pulse errors."""


class ConfigError(CinePulseError):
    """Configuration is missing or unusable."""


class FetchError(CinePulseError):
    """A source could not be fetched."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ProviderError(CinePulseError):
    """A text-generation provider call failed (auth, quota, timeout, transport)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ParseError(CinePulseError):
    """Model output could not be parsed at a recovery tier.

    ``text`` carries the repaired text that failed to parse so the next
    tier can continue from it.
    """

    def __init__(self, message: str, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class ValidationError(CinePulseError):
    """A field bag failed a required-field rule."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PersistenceError(CinePulseError):
    """A write to the content store failed."""


class NotifyError(CinePulseError):
    """A notification could not be delivered."""


class DeadlineExceeded(CinePulseError):
    """A run exceeded its wall-clock budget."""
