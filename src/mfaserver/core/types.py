"""Request types for the enrolment and validation endpoints.

Both requests address the same stored secret through
:func:`secret_key`, which is the join key between enrolling an identity
and later validating its codes.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from mfaserver.core.errors import RequestDecodeError, RequestFieldError

# Field name under which the TOTP secret is stored at each key.
SECRET_FIELD = "mfa"


def secret_key(issuer: str, domain: str, username: str) -> str:
    """Return the secret-store key for an identity.

    The parts are joined verbatim: case is preserved and nothing is
    trimmed, so enrolment and validation must pass identical values.
    """
    return "/" + issuer + "/" + domain + "/" + username


def printable(value: str) -> str:
    """Escape control characters so a value cannot break a log line."""
    return "".join(c if c.isprintable() else repr(c)[1:-1] for c in value)


def _string_fields(cls: type, data: Any) -> dict[str, str]:  # noqa: ANN401
    if not isinstance(data, dict):
        msg = f"request body must be a JSON object, got {type(data).__name__}"
        raise RequestDecodeError(msg)
    values: dict[str, str] = {}
    for f in fields(cls):
        value = data.get(f.name, "")
        if value is None:
            value = ""
        if not isinstance(value, str):
            msg = f"field '{f.name}' must be a string"
            raise RequestDecodeError(msg)
        values[f.name] = value
    return values


def _require(obj: object, names: tuple[str, ...]) -> None:
    missing = [n for n in names if not getattr(obj, n)]
    if missing:
        msg = f"missing required fields: {', '.join(missing)}"
        raise RequestFieldError(msg)


@dataclass(frozen=True)
class EnrolmentRequest:
    """Body of ``POST /enrol``."""

    issuer: str
    domain: str
    username: str
    password: str

    REQUIRED = ("domain", "username", "issuer", "password")

    @classmethod
    def from_json(cls, data: Any) -> EnrolmentRequest:  # noqa: ANN401
        return cls(**_string_fields(cls, data))

    def validate(self) -> None:
        """Raise :class:`RequestFieldError` if a required field is empty."""
        _require(self, self.REQUIRED)

    @property
    def key(self) -> str:
        return secret_key(self.issuer, self.domain, self.username)

    @property
    def label(self) -> str:
        return f"{printable(self.domain)}/{printable(self.username)}"


@dataclass(frozen=True)
class ValidationRequest:
    """Body of ``POST /validate``."""

    issuer: str
    domain: str
    username: str
    password: str
    otp: str

    # An empty password is left to fail the directory bind (401).
    REQUIRED = ("domain", "username", "issuer", "otp")

    @classmethod
    def from_json(cls, data: Any) -> ValidationRequest:  # noqa: ANN401
        return cls(**_string_fields(cls, data))

    def validate(self) -> None:
        """Raise :class:`RequestFieldError` if a required field is empty."""
        _require(self, self.REQUIRED)

    @property
    def key(self) -> str:
        return secret_key(self.issuer, self.domain, self.username)

    @property
    def label(self) -> str:
        return f"{printable(self.domain)}/{printable(self.username)}"


@dataclass(frozen=True)
class EnrolmentResponse:
    """JSON body returned by a successful enrolment."""

    secret: str

    def to_dict(self) -> dict[str, str]:
        return {"secret": self.secret}
