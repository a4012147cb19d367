"""
Monitor Errors

Exception taxonomy shared by the fetcher, the stores and the web layer.
Only ConfigMissing is fatal; everything else is logged and the polling
loop carries on.
"""


class MonitorError(Exception):
    """Base class for all refuge monitor errors."""


class ConfigMissing(MonitorError):
    """A required configuration value is absent or malformed."""

    def __init__(self, key, message=None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class TransportError(MonitorError):
    """Network failure reaching the booking site or the messaging API."""


class UpstreamError(MonitorError):
    """The booking site answered with a non-200 status."""

    def __init__(self, status_code, refuge_name=None):
        self.status_code = status_code
        self.refuge_name = refuge_name
        super().__init__(f"Unexpected status code {status_code} for {refuge_name}")


class ReauthRequired(MonitorError):
    """The upstream session cookie expired and must be refreshed by hand."""


class WaitingRoomExhausted(MonitorError):
    """The booking site kept us in its waiting room past the retry ceiling."""

    def __init__(self, refuge_name, attempts):
        self.refuge_name = refuge_name
        self.attempts = attempts
        super().__init__(f"Still in waiting room for {refuge_name} after {attempts} attempts")


class ParseAnomaly(MonitorError):
    """No dates were extracted for any refuge in a cycle."""


class StoreError(MonitorError):
    """Persistence failure in a subscriber store backend."""


class NotFound(StoreError):
    """The requested subscriber does not exist."""


class ValidationError(MonitorError):
    """Malformed subscription input."""

    def __init__(self, field, message):
        self.field = field
        super().__init__(message)
