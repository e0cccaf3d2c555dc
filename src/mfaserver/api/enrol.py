"""Enrolment endpoint.

``POST /enrol`` with ``{issuer, domain, username, password}``:

* 201: ``{"secret": "..."}``, or a PNG QR code when the client asks
  for ``image/png``
* 400: malformed body or a required field is empty
* 401: directory authentication failed
* 403: the identity is already enrolled
* 500: secret generation, storage, QR rendering or the deadline failed

The existence check before writing is a plain read, not a
compare-and-set: two concurrent enrolments of the same identity can
both pass it and the later write wins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Blueprint, jsonify, make_response, request
from qrcode.exceptions import DataOverflowError

from mfaserver.api.decoding import read_json_body
from mfaserver.app.context import get_container
from mfaserver.core.deadline import Deadline
from mfaserver.core.errors import (
    ConflictError,
    DeadlineExceededError,
    DirectoryAuthError,
    OTPComputeError,
    RequestDecodeError,
    RequestFieldError,
    SecretNotFoundError,
    SecretStoreError,
)
from mfaserver.core.types import SECRET_FIELD, EnrolmentRequest, EnrolmentResponse, printable
from mfaserver.otp.engine import SECRET_BYTES
from mfaserver.otp.qr import provisioning_uri, qr_png

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from mfaserver.app.context import Container

enrol_bp = Blueprint("enrol", __name__)


def _status(code: int) -> ResponseReturnValue:
    response = make_response("", code)
    response.headers["Cache-Control"] = "no-store"
    return response


def _wants_image() -> bool:
    # Older clients signal the preference through Accept-Encoding.
    if request.headers.get("Accept-Encoding", "") == "image/png":
        return True
    best = request.accept_mimetypes.best_match(["application/json", "image/png"])
    return best == "image/png"


def _create_secret(
    container: Container,
    data: EnrolmentRequest,
    deadline: Deadline,
    *,
    as_image: bool,
) -> tuple[str, bytes | None]:
    """Authenticate, generate the secret and its QR code, then store it.

    Everything that can fail before the write happens before it, so a
    failed enrolment leaves nothing stored and can be retried.
    """
    cfg = container.config
    container.directory.authenticate(
        data.username,
        data.password,
        cfg,
        timeout=deadline.remaining(),
    )

    try:
        container.secret_store.read(cfg, data.key, timeout=deadline.remaining())
    except SecretNotFoundError:
        pass
    else:
        msg = f"a secret is already enrolled for {data.label}"
        raise ConflictError(msg)

    secret = container.otp.generate_secret(SECRET_BYTES)
    png = None
    if as_image:
        uri = provisioning_uri(data.issuer, data.username, data.domain, secret)
        try:
            png = qr_png(uri)
        except (DataOverflowError, ValueError, OSError) as exc:
            msg = f"could not render QR code: {exc}"
            raise OTPComputeError(msg) from exc

    container.secret_store.store(
        cfg,
        data.key,
        SECRET_FIELD,
        secret,
        timeout=deadline.remaining(),
    )
    cfg.server.loggers.info(
        "Successfully created and stored secret for %s",
        data.label,
    )
    return secret, png


@enrol_bp.route("", methods=["POST"])
def enrol() -> ResponseReturnValue:
    """POST /enrol: create and store a new TOTP secret."""
    container = get_container()
    loggers = container.config.server.loggers
    addr = request.remote_addr
    deadline = Deadline(container.config.server.request_timeout)

    try:
        data = EnrolmentRequest.from_json(read_json_body())
        data.validate()
    except RequestDecodeError as exc:
        loggers.error("%s, Could not parse data posted to the enrol api: %s", addr, printable(exc.detail))
        return _status(400)
    except RequestFieldError as exc:
        loggers.warning(
            "%s, Could not extract values from the enrolment request: %s",
            addr, printable(exc.detail),
        )
        return _status(400)

    loggers.info("%s, OTP enrolment request received for %s", addr, data.label)

    try:
        secret, png = _create_secret(container, data, deadline, as_image=_wants_image())
    except DirectoryAuthError as exc:
        loggers.info(
            "%s, OTP enrolment failed for %s. LDAP authentication failed: %s",
            addr, data.label, printable(exc.detail),
        )
        return _status(401)
    except ConflictError as exc:
        loggers.warning("%s, OTP enrolment refused: %s", addr, printable(exc.detail))
        return _status(403)
    except (SecretStoreError, OTPComputeError, DeadlineExceededError) as exc:
        loggers.error(
            "%s, OTP enrolment failed for %s whilst generating and storing secret: %s",
            addr, data.label, printable(exc.detail),
        )
        return _status(500)

    if png is not None:
        response = make_response(png, 201)
        response.headers["Content-Type"] = "image/png"
    else:
        response = jsonify(EnrolmentResponse(secret).to_dict())
        response.status_code = 201
    response.headers["Cache-Control"] = "no-store"
    return response
