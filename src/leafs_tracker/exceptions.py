"""
Error taxonomy for the Leafs result tracker.

Every failure here is recoverable: callers catch at the point of call, log,
and fall back to an absent/default value for the current poll cycle.
"""


class LeafsTrackerError(Exception):
    """Base class for all tracker errors."""


class UpstreamUnavailable(LeafsTrackerError):
    """The NHL schedule/detail API failed or returned a malformed payload."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class GenerationFailed(LeafsTrackerError):
    """Recap generation failed or is disabled (no credential)."""


class StoreUnavailable(LeafsTrackerError):
    """The key-value persistence layer failed."""


class ConfigurationMissing(LeafsTrackerError):
    """An optional credential or URL is not configured; the feature is disabled."""
