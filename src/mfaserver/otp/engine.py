"""TOTP engine (RFC 6238) built on :mod:`pyotp`.

Secrets are unpadded base32 strings from :func:`pyotp.random_base32`,
the form expected by authenticator apps.  Codes use a 30-second step.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import math
import time
from typing import Any, Callable

import pyotp

from mfaserver.core.errors import OTPComputeError

SECRET_BYTES = 32
DIGITS = 6
PERIOD = 30


class TotpEngine:
    """Generates secrets and computes/compares TOTP codes."""

    def __init__(self, period: int = PERIOD) -> None:
        self.period = period

    def generate_secret(self, byte_length: int = SECRET_BYTES) -> str:
        """Return a base32 secret carrying at least *byte_length* random bytes."""
        if byte_length < 20:
            msg = f"secret length {byte_length} is below the 160-bit minimum"
            raise OTPComputeError(msg)
        return pyotp.random_base32(length=math.ceil(byte_length * 8 / 5))

    def current_code(
        self,
        secret: str,
        digest: Callable[..., Any] = hashlib.sha1,
        digits: int = DIGITS,
        *,
        for_time: float | None = None,
    ) -> tuple[str, int]:
        """Return the code for the current step and seconds until it rolls over."""
        now = time.time() if for_time is None else for_time
        try:
            totp = pyotp.TOTP(secret, digits=digits, digest=digest, interval=self.period)
            code = totp.at(int(now))
        except (binascii.Error, ValueError, TypeError) as exc:
            msg = f"could not compute TOTP: {exc}"
            raise OTPComputeError(msg) from exc
        remaining = self.period - int(now) % self.period
        return code, remaining

    def verify(self, secret: str, otp: str) -> bool:
        """Exact, constant-time comparison of *otp* with the current code."""
        code, _ = self.current_code(secret)
        return hmac.compare_digest(code.encode("ascii"), otp.encode("utf-8"))
