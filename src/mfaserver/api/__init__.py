"""HTTP API layer: Flask blueprint registration.

Call :func:`register_blueprints` during application startup to mount
``/enrol`` and ``/validate``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask


def register_blueprints(app: Flask) -> None:
    """Mount the enrolment and validation blueprints."""
    from mfaserver.api.enrol import enrol_bp  # noqa: PLC0415
    from mfaserver.api.validate import validate_bp  # noqa: PLC0415

    app.register_blueprint(enrol_bp, url_prefix="/enrol")
    app.register_blueprint(validate_bp, url_prefix="/validate")
