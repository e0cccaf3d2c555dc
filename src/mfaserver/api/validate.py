"""Validation endpoint.

``POST /validate`` with ``{issuer, domain, username, password, otp}``:

* 204: directory credentials and the current TOTP code both match
* 400: a required field is empty
* 401: everything else

Fail-closed: a malformed body, an unknown identity, a secret-store or
OTP error, an exceeded deadline and any unexpected exception all end
in 401.  No path answers 204 without a positive match.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Blueprint, make_response, request

from mfaserver.api.decoding import read_json_body
from mfaserver.app.context import get_container
from mfaserver.core.deadline import Deadline
from mfaserver.core.errors import (
    DeadlineExceededError,
    DirectoryAuthError,
    OTPComputeError,
    RequestDecodeError,
    RequestFieldError,
    SecretStoreError,
)
from mfaserver.core.types import SECRET_FIELD, ValidationRequest, printable

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from mfaserver.app.context import Container

validate_bp = Blueprint("validate", __name__)


def _status(code: int) -> ResponseReturnValue:
    response = make_response("", code)
    response.headers["Cache-Control"] = "no-store"
    return response


def _check_otp(container: Container, data: ValidationRequest, deadline: Deadline) -> bool:
    cfg = container.config
    container.directory.authenticate(
        data.username,
        data.password,
        cfg,
        timeout=deadline.remaining(),
    )

    record = container.secret_store.read(cfg, data.key, timeout=deadline.remaining())
    secret = record.get(SECRET_FIELD)
    if not isinstance(secret, str) or not secret:
        msg = f"secret record for {data.label} has no '{SECRET_FIELD}' field"
        raise SecretStoreError(msg)

    deadline.remaining()
    return container.otp.verify(secret, data.otp)


@validate_bp.route("", methods=["POST"])
def validate() -> ResponseReturnValue:
    """POST /validate: check an OTP for an enrolled identity."""
    container = get_container()
    loggers = container.config.server.loggers
    addr = request.remote_addr
    deadline = Deadline(container.config.server.request_timeout)

    try:
        data = ValidationRequest.from_json(read_json_body())
    except RequestDecodeError as exc:
        loggers.error("%s, Could not parse data posted to the validate api: %s", addr, printable(exc.detail))
        return _status(401)
    except Exception:
        loggers.error.exception("%s, Unexpected error parsing data posted to the validate api", addr)
        return _status(401)
    try:
        data.validate()
    except RequestFieldError as exc:
        loggers.warning(
            "%s, Could not extract values from the validation request: %s",
            addr, printable(exc.detail),
        )
        return _status(400)

    loggers.info("%s, OTP validation request received for %s", addr, data.label)

    try:
        ok = _check_otp(container, data, deadline)
    except DirectoryAuthError as exc:
        loggers.info(
            "%s, OTP validation failed for %s. LDAP authentication failed: %s",
            addr, data.label, printable(exc.detail),
        )
        return _status(401)
    except (SecretStoreError, OTPComputeError, DeadlineExceededError) as exc:
        loggers.error(
            "%s, Error during the validation of OTP for %s: %s",
            addr, data.label, printable(exc.detail),
        )
        return _status(401)
    except Exception:
        loggers.error.exception(
            "%s, Unexpected error validating OTP for %s",
            addr, data.label,
        )
        return _status(401)

    if ok:
        loggers.info("%s, OTP validation passed for %s", addr, data.label)
        return _status(204)

    loggers.info("%s, OTP validation failed for %s", addr, data.label)
    return _status(401)
