"""Domain-specific exceptions for signaling operations.

These exceptions are safe to import from API layers; each carries the HTTP
status used when it reaches the application boundary.
"""

from __future__ import annotations


class SignalingError(Exception):
    status_code: int = 500
    default_detail: str = "Signaling error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class RemoteError(SignalingError):
    """The SFU or the realtime endpoint reported an error."""

    status_code = 502
    default_detail = "Remote service returned an error."


class MissingAnswerError(SignalingError):
    """A session description was required but the result carried none."""

    status_code = 502
    default_detail = "Remote service returned no session description."


class NotFoundError(SignalingError):
    status_code = 404
    default_detail = "not found"


class UnsupportedMethodError(SignalingError):
    status_code = 400
    default_detail = "Not supported"


class InvalidRequestError(SignalingError):
    """The caller's request could not be read."""

    status_code = 400
    default_detail = "Invalid request"
