"""TOTP secret generation, code computation and QR provisioning."""

from mfaserver.otp.engine import TotpEngine
from mfaserver.otp.qr import provisioning_uri, qr_png

__all__ = ["TotpEngine", "provisioning_uri", "qr_png"]
