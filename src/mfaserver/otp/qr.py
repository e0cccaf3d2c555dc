"""Authenticator provisioning URI and its QR-code rendering."""

from __future__ import annotations

import io
import urllib.parse

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from mfaserver.otp.engine import DIGITS, PERIOD


def provisioning_uri(issuer: str, username: str, domain: str, secret: str) -> str:
    """Build the ``otpauth://totp/`` URI scanned by authenticator apps."""
    quoted = urllib.parse.quote_plus(issuer)
    account = urllib.parse.quote(username, safe="@") + "@" + urllib.parse.quote(domain, safe="")
    return (
        f"otpauth://totp/{quoted}:{account}"
        f"?secret={secret}&issuer={quoted}&algorithm=SHA1&digits={DIGITS}&period={PERIOD}"
    )


def qr_png(data: str) -> bytes:
    """Encode *data* as a PNG QR code with high error correction."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
