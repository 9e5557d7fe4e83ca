"""Tests for the application: error boundary, fallbacks and ASGI lifecycle."""

from typing import Any, Dict, List

import httpx
import pytest

from plantgate.cli import cli, create_parser
from plantgate.core.application import GENERIC_ERROR, PlantGateApp
from plantgate.core.exceptions import CollaboratorError, HTTPException


def raising(error: Exception):
    async def handler(request, response):
        raise error

    return handler


class TestHealth:
    async def test_health(self, client) -> None:
        reply = await client.get("/health")

        assert reply.status_code == 200
        body = reply.json()
        assert body["status"] == "ok"
        assert isinstance(body["timestamp"], int)

    async def test_security_headers(self, client) -> None:
        reply = await client.get("/health")
        assert reply.headers["x-content-type-options"] == "nosniff"
        assert reply.headers["x-frame-options"] == "SAMEORIGIN"


class TestFallbacks:
    async def test_unknown_route(self, client) -> None:
        reply = await client.post("/api/v1/nothing-here")

        assert reply.status_code == 404
        assert reply.json() == {
            "success": False,
            "message": "Resource not found",
            "error": "Not Found",
            "status_code": 404,
        }

    async def test_wrong_method(self, client) -> None:
        reply = await client.get("/api/v1/auth/login")

        assert reply.status_code == 405
        assert reply.headers["allow"] == "POST"
        assert reply.json()["message"] == "Method not allowed: GET"

    async def test_preflight(self, client) -> None:
        reply = await client.options("/api/v1/auth/login", headers={"Origin": "https://mes.example"})

        assert reply.status_code == 204
        assert reply.content == b""
        assert reply.headers["allow"] == "POST, OPTIONS"
        assert reply.headers["access-control-allow-origin"] == "*"


class TestErrorBoundary:
    async def test_unexpected_error_with_debug(self, app, client) -> None:
        app.router.get("/boom", raising(RuntimeError("kaboom")))
        reply = await client.get("/boom")

        assert reply.status_code == 500
        body = reply.json()
        assert body["message"] == GENERIC_ERROR
        assert body["debug"]["type"] == "RuntimeError"
        assert body["debug"]["message"] == "kaboom"
        assert body["debug"]["trace"]

    async def test_unexpected_error_without_debug(self, app, client) -> None:
        app.debug = False
        app.router.get("/boom", raising(KeyError("secret")))
        reply = await client.get("/boom")

        assert reply.json() == {"status_code": 500, "message": GENERIC_ERROR}

    async def test_http_exception_keeps_status(self, app, client) -> None:
        app.router.get("/teapot", raising(HTTPException("Short and stout", 418)))
        reply = await client.get("/teapot")

        assert reply.status_code == 418
        assert reply.json() == {"status_code": 418, "message": "Short and stout"}

    async def test_collaborator_error_is_502(self, app, client) -> None:
        app.router.get("/upstream", raising(CollaboratorError("Upstream service unavailable")))
        reply = await client.get("/upstream")

        assert reply.status_code == 502
        assert reply.json()["message"] == "Upstream service unavailable"

    async def test_request_counters(self, app, client) -> None:
        await client.get("/health")
        await client.get("/health")
        assert app.state.request_count == 2
        assert app.state.active_requests == 0


class TestLifespan:
    async def test_startup_and_shutdown(self, config, administration) -> None:
        app = PlantGateApp(config=config, transport=httpx.MockTransport(administration))
        hooks: List[str] = []

        @app.on_startup
        async def started():
            hooks.append("startup")

        @app.on_shutdown
        async def stopped():
            hooks.append("shutdown")

        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: List[Dict[str, Any]] = []

        async def receive():
            return incoming.pop(0)

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert [message["type"] for message in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert hooks == ["startup", "shutdown"]
        assert not app.state.is_running

    async def test_unknown_scope(self, app) -> None:
        async def receive():
            return {}

        async def send(message):
            pass

        with pytest.raises(ValueError):
            await app({"type": "websocket"}, receive, send)


class TestCli:
    def test_parser(self) -> None:
        args = create_parser().parse_args(["--config", "/etc/plantgate", "serve", "--port", "9000"])
        assert (args.command, args.port, args.config) == ("serve", 9000, "/etc/plantgate")

    def test_no_command_prints_help(self, capsys) -> None:
        assert cli([]) == 0
        assert "PlantGate API server" in capsys.readouterr().out

    def test_routes(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        assert cli(["--config", str(tmp_path / "config"), "routes"]) == 0

        output = capsys.readouterr().out
        assert "/api/v1/notification-center/create" in output
        assert "NotificationCenterController@create" in output
