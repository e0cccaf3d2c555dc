"""Error taxonomy for the enrolment and validation workflows.

Handlers catch these, log them with request context and map them to a
bare HTTP status code.  None of them is ever rendered into a response
body.

Configuration problems are reported separately through
:class:`mfaserver.config.ConfigValidationError`.
"""

from __future__ import annotations


class MFAError(Exception):
    """Base class for every request-time failure.

    Parameters
    ----------
    detail:
        Human-readable description.  Logged, never returned to the
        caller.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class RequestDecodeError(MFAError):
    """The request body was oversized, not JSON, or the wrong shape."""


class RequestFieldError(MFAError):
    """A required request field was missing or empty."""


class DirectoryAuthError(MFAError):
    """Bad primary credentials, or the directory could not be reached.

    Both collapse to the same outcome for the caller.
    """


class ConflictError(MFAError):
    """The identity already has an enrolled secret."""


class SecretStoreError(MFAError):
    """Reading from or writing to the secret store failed."""


class SecretNotFoundError(SecretStoreError):
    """No secret is stored under the requested key."""


class OTPComputeError(MFAError):
    """Secret generation or TOTP computation failed."""


class DeadlineExceededError(MFAError):
    """The per-request time budget ran out before the work finished."""
