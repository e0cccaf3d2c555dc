"""Flask application layer.

Public API::

    from mfaserver.app import create_app
"""

from mfaserver.app.factory import create_app

__all__ = ["create_app"]
