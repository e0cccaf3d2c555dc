"""mfaserver: TOTP second-factor enrolment and validation service."""

__version__ = "1.0.0"
