"""Tests for the administration service client."""

import httpx
import pytest

from plantgate.core.config import Config
from plantgate.core.exceptions import CollaboratorError
from plantgate.services import administration
from plantgate.services.administration import AdministrationClient


@pytest.fixture
def client_kwargs(monkeypatch):
    seen = {}
    real = httpx.AsyncClient

    def capture(**kwargs):
        seen.update(kwargs)
        return real(**kwargs)

    monkeypatch.setattr(administration.httpx, "AsyncClient", capture)
    return seen


class TestTLSVerification:
    async def test_verified_by_default(self, client_kwargs) -> None:
        config = Config.defaults()
        config.set("administration.url", "https://admin.test")

        admin = AdministrationClient.from_config(config)
        assert admin.client is not None
        await admin.close()

        assert admin.verify_tls is True
        assert client_kwargs["verify"] is True

    async def test_disabled_by_setting(self, client_kwargs) -> None:
        config = Config.defaults()
        config.set("administration.url", "https://admin.test")
        config.set("administration.verify_tls", False)

        admin = AdministrationClient.from_config(config)
        assert admin.client is not None
        await admin.close()

        assert client_kwargs["verify"] is False

    def test_disabled_from_environment(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("PLANTGATE_ADMINISTRATION__VERIFY_TLS", "false")

        config = Config.load(tmp_path / "config")

        assert AdministrationClient.from_config(config).verify_tls is False


class TestReplies:
    async def test_non_json_reply(self) -> None:
        admin = AdministrationClient(
            "http://admin.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(502, text="<html>Bad gateway</html>")),
        )

        with pytest.raises(CollaboratorError):
            await admin.auth_check({"accessUsername": "alice"})
        await admin.close()

    async def test_none_values_are_not_sent(self) -> None:
        forms = []

        def handler(request: httpx.Request) -> httpx.Response:
            forms.append(request.content.decode())
            return httpx.Response(200, json={"status_code": 200, "message": "OK"})

        admin = AdministrationClient("http://admin.test", transport=httpx.MockTransport(handler))
        result = await admin.auth_check({"accessUsername": "alice", "accessToken": None})
        await admin.close()

        assert result == {"status_code": 200, "message": "OK"}
        assert forms == ["accessUsername=alice"]
