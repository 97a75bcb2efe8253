from __future__ import annotations

import datetime as dt
from typing import Optional


class VitalPulseError(Exception):
    """Base for all errors raised by vitalpulse."""


class AuthorizationDenied(VitalPulseError):
    def __init__(self, message: str = "Health data access was not granted") -> None:
        super().__init__(message)


class InvalidRange(VitalPulseError):
    def __init__(self, start: dt.date, end: dt.date) -> None:
        self.start = start
        self.end = end
        super().__init__(f"start date {start.isoformat()} is after end date {end.isoformat()}")


class ProviderError(VitalPulseError):
    """A provider could not serve a read (unavailable, denied, malformed data)."""


class QueryFailed(VitalPulseError):
    """A single metric query failed; callers degrade it to an absent value."""

    def __init__(
        self,
        metric: str,
        reason: str,
        window: Optional[tuple[dt.datetime, dt.datetime]] = None,
    ) -> None:
        self.metric = metric
        self.reason = reason
        self.window = window
        super().__init__(f"{metric}: {reason}")


class ProviderUnavailable(VitalPulseError):
    """Every query of a range failed, so nothing useful came back."""


class SerializationFailed(VitalPulseError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(reason)
