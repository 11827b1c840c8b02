from typing import Optional


class BeatBridgeError(Exception):
    """Base class for all BeatBridge errors."""


class ProviderError(BeatBridgeError):
    """A provider API call failed. ``message`` is short and safe to show.

    ``detail`` is the platform part of the message without the operation
    prefix, used for per-track failure reasons.
    """

    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.detail = detail or message


class RateLimited(ProviderError):
    """Operation was rate limited by provider. Includes suggested wait time in milliseconds."""

    def __init__(self, retry_after_ms: int, message: str = "Rate limited", status: Optional[int] = 429) -> None:
        super().__init__(message, status, detail="rate limited")
        self.retry_after_ms = retry_after_ms


class TransferError(BeatBridgeError):
    """A failure that aborts a whole transfer."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthMissing(TransferError):
    """No access token is available for a provider the transfer needs."""

    def __init__(self, provider) -> None:
        self.provider = provider
        name = getattr(provider, 'display_name', str(provider))
        super().__init__(f"Connect {name} first")


class SourceUnreadable(TransferError):
    """The source playlist could not be listed."""


class DestinationCreateFailed(TransferError):
    """The destination playlist could not be created."""
