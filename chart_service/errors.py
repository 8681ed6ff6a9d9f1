"""
Chart Service Errors

Request-scoped error taxonomy. Every failure aborts only the request that
raised it; the request server logs it with context and moves on.
"""


class ChartServiceError(Exception):
    """Base class for all chart service errors."""


class ConfigError(ChartServiceError):
    """Service configuration is missing or invalid (startup only)."""


class MalformedRequest(ChartServiceError):
    """Payload could not be decoded as JSON."""


class SchemaError(ChartServiceError):
    """Payload decoded but required fields are missing or have the wrong shape."""


class InvalidColor(ChartServiceError):
    """Color string is not #RRGGBB or #RRGGBBAA."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid color: {value!r} (expected #RRGGBB or #RRGGBBAA)")


class EmptySeries(ChartServiceError):
    """Chart request carries no candles."""


class ArtifactIOError(ChartServiceError):
    """Rendered image could not be written to the output directory."""
