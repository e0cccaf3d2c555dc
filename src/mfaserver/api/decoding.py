"""Size-capped JSON body decoding shared by both endpoints."""

from __future__ import annotations

import json
from typing import Any

from flask import request

from mfaserver.core.errors import RequestDecodeError

# Request bodies are a handful of short strings; anything bigger is
# refused rather than buffered.
MAX_BODY_BYTES = 1024


def read_json_body(max_bytes: int = MAX_BODY_BYTES) -> Any:  # noqa: ANN401
    """Read and decode the request body, refusing more than *max_bytes*."""
    raw = request.stream.read(max_bytes + 1)
    if len(raw) > max_bytes:
        msg = f"request body exceeds {max_bytes} bytes"
        raise RequestDecodeError(msg)
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as exc:
        msg = f"request body is not valid JSON: {exc}"
        raise RequestDecodeError(msg) from exc
