class LaunchWatchError(Exception):
    pass


class DecodeError(LaunchWatchError):
    """Payload is truncated or malformed; the single event is skipped."""


class RateLimited(LaunchWatchError):
    """Upstream rejected an enrichment fetch (HTTP or RPC code 429)."""


class FetchError(LaunchWatchError):
    """Enrichment fetch failed for a reason other than rate limiting."""


class ConnectError(LaunchWatchError):
    """Startup connectivity check failed or timed out."""
