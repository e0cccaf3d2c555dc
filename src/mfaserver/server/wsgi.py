"""WSGI entry point for external servers (gunicorn, uWSGI, etc.).

The config file path is read from the ``MFASERVER_CONFIG`` environment
variable.

Example::

    export MFASERVER_CONFIG=/etc/mfaserver/config.json
    gunicorn "mfaserver.server.wsgi:app"
"""

from __future__ import annotations

import os
import sys

_config_path = os.environ.get("MFASERVER_CONFIG")
if _config_path is None:
    sys.exit("MFASERVER_CONFIG is not set")

from mfaserver.config import load  # noqa: E402

_config = load(_config_path)

from mfaserver.logging import configure_logging  # noqa: E402

configure_logging(_config)

from mfaserver.app import create_app  # noqa: E402

app = create_app(_config)
