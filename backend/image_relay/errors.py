"""
Image Relay Errors

Every failure a request handler can hit is one of these. The application
turns them into plain-text responses carrying ``status_code`` and ``detail``.
"""

from typing import Optional


class RelayError(Exception):
    """Base error for the relay, mapped 1:1 onto an HTTP response."""

    status_code: int = 500
    detail: str = "Server error"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        if detail is not None:
            self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)


class BadRequest(RelayError):
    """Caller supplied insufficient input (missing URL, empty upload body)."""
    status_code = 400
    detail = "Bad request"


class UpstreamFailure(RelayError):
    """Remote fetch answered with a non-success status; that status is forwarded."""
    detail = "Failed to fetch image"

    def __init__(self, status_code: int, detail: Optional[str] = None):
        super().__init__(detail, status_code)


class PayloadTooLarge(RelayError):
    status_code = 413
    detail = "Payload too large"


class InternalError(RelayError):
    """Unexpected fault: network error while proxying, filesystem error while storing."""
    status_code = 500
    detail = "Server error"
