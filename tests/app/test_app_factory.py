"""Tests for the application factory, container, error handlers and hooks."""

from __future__ import annotations

from unittest.mock import patch

from flask import Flask

from mfaserver.app import create_app
from mfaserver.app.context import Container, get_container
from mfaserver.app.errors import register_error_handlers
from mfaserver.directory import LdapAuthenticator
from mfaserver.otp import TotpEngine
from mfaserver.secretstore import VaultSecretStore


class TestCreateApp:
    def test_default_gateways(self, config):
        app = create_app(config)

        container = app.extensions["container"]
        assert isinstance(container.secret_store, VaultSecretStore)
        assert isinstance(container.directory, LdapAuthenticator)
        assert isinstance(container.otp, TotpEngine)
        assert app.config["MFASERVER_CONFIG"] is config

    def test_injected_gateways(self, app, secret_store, directory, otp_engine):
        with app.app_context():
            container = get_container()
        assert container.secret_store is secret_store
        assert container.directory is directory
        assert container.otp is otp_engine

    def test_routes(self, app):
        rules = {r.rule: r.methods for r in app.url_map.iter_rules()}
        assert "POST" in rules["/enrol"]
        assert "POST" in rules["/validate"]
        assert "GET" in rules["/livez"]

    def test_container_repr(self, config):
        assert "VaultSecretStore" in repr(Container(config))


class TestLivez:
    def test_alive(self, client):
        with patch("mfaserver.__version__", "9.9.9-test"):
            resp = client.get("/livez")

        assert resp.status_code == 200
        assert resp.get_json() == {"alive": True, "version": "9.9.9-test"}


class TestErrorHandlers:
    def test_unknown_route_is_bare_404(self, client):
        resp = client.get("/nope")

        assert resp.status_code == 404
        assert resp.data == b""

    def test_unhandled_exception_is_bare_500(self):
        app = Flask(__name__)
        register_error_handlers(app)

        @app.route("/boom")
        def _boom():
            raise RuntimeError("kaboom")

        resp = app.test_client().get("/boom")

        assert resp.status_code == 500
        assert resp.data == b""


class TestRequestHooks:
    def test_request_id_generated(self, client):
        resp = client.get("/livez")
        assert len(resp.headers["X-Request-ID"]) == 32

    def test_request_id_passthrough(self, client):
        resp = client.get("/livez", headers={"X-Request-ID": "trace-abc-123"})
        assert resp.headers["X-Request-ID"] == "trace-abc-123"

    def test_security_headers(self, client):
        resp = client.post("/enrol", json={})

        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in resp.headers["Content-Security-Policy"]

    def test_access_log(self, client, caplog):
        with caplog.at_level("INFO", logger="mfaserver.access"):
            client.get("/livez")

        record = next(r for r in caplog.records if r.name == "mfaserver.access")
        assert "GET /livez 200" in record.getMessage()
