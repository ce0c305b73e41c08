"""Error kinds raised by the availability core and the calendar boundary."""

from __future__ import annotations


class InvalidConfigError(ValueError):
    """Malformed business-window configuration (hours, zone, slot length)."""


class InvalidDateError(ValueError):
    """Malformed or out-of-range calendar date or instant input."""


class UpstreamUnavailableError(RuntimeError):
    """The external calendar provider (or its auth) failed."""
