"""Error taxonomy shared by the service layers and the HTTP handlers."""


class RiverMonitorError(Exception):
    """Base class for all service errors."""


class ValidationError(RiverMonitorError):
    """Malformed client input. Surfaced as a 4xx, never retried."""


class InvalidGeometry(ValidationError):
    """Coordinates that cannot form a valid region."""


class UpstreamError(RiverMonitorError):
    """Failure reported by Earth Engine or the weather archive."""


class UpstreamTimeout(UpstreamError):
    """An upstream call exceeded its time budget."""


class ServiceNotReadyError(UpstreamError):
    """Earth Engine session has not been initialized (or failed to)."""


class SinkClosedError(RiverMonitorError):
    """Write attempted on a CSV sink that was already closed."""
