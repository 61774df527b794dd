"""
Upstream failure types shared by the RPC reader, the Privacy Cash client
and the request queue.
"""
from typing import Optional


class UpstreamError(Exception):
    """An upstream (RPC or Privacy Cash) call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RpcError(UpstreamError):
    """Solana JSON-RPC request failed or returned an error object."""


class TokenAccountNotFound(RpcError):
    """The associated token account has not been created yet."""


class ShieldingError(UpstreamError):
    """Privacy Cash request failed."""


class QueueCleared(Exception):
    """A queued request was dropped before it started (user was cleared)."""


def is_rate_limited(error: BaseException) -> bool:
    """True if the error looks like an HTTP 429 / rate-limit response."""
    if getattr(error, "status_code", None) == 429:
        return True
    message = str(error).lower()
    return "429" in message or "too many requests" in message
