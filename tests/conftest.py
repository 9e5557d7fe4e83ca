"""Shared fixtures: an app on in-memory SQLite with a scripted administration service."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple
from urllib.parse import parse_qsl

import httpx
import pytest

from plantgate.core.application import PlantGateApp
from plantgate.core.config import Config
from plantgate.models import ALL_MODELS
from plantgate.models.user_login import UserLogin
from plantgate.orm.repository import create_tables
from plantgate.services import administration as endpoints

ALICE = {
    "username": "alice",
    "db_code": "LU0001",
    "pl_db_code": "PL0001",
    "lu_name": "Alice Tan",
    "user_access": {
        "mes_system_log": {"read": True},
        "notification_center": {"read": True, "write": True},
    },
}


class FakeAdministration:
    """
    Scripted administration service behind ``httpx.MockTransport``.

    Unscripted endpoints answer with a 404 envelope; ``down`` refuses
    every connection.
    """

    def __init__(self) -> None:
        self.down = False
        self.replies: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    def reply(self, endpoint: str, envelope: Dict[str, Any]) -> None:
        self.replies[endpoint] = envelope

    def ok(self, endpoint: str, data: Any = None, message: str = "OK") -> None:
        self.reply(endpoint, {"status_code": 200, "message": message, "data": data})

    def called(self, endpoint: str) -> List[Dict[str, str]]:
        return [form for path, form in self.calls if path == endpoint]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode(), keep_blank_values=True))
        self.calls.append((request.url.path, form))
        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)
        envelope = self.replies.get(request.url.path, {"status_code": 404, "message": "Not scripted"})
        return httpx.Response(200, json=envelope)


@pytest.fixture
def config() -> Config:
    config = Config.defaults()
    config.set("app.environment", "development")
    config.set("app.debug", True)
    config.set("app.timezone", None)
    config.set("administration.url", "http://admin.test")
    config.set("administration.wms_url", "http://wms.test")
    config.set("database.connections", {"default": {"url": "sqlite:///:memory:"}})
    config.set("logging.level", "CRITICAL")
    return config


@pytest.fixture
def administration() -> FakeAdministration:
    fake = FakeAdministration()
    fake.ok(endpoints.ACCOUNT_ME, ALICE, "User found")
    return fake


@pytest.fixture
async def app(config: Config, administration: FakeAdministration):
    app = PlantGateApp(config=config, transport=httpx.MockTransport(administration))
    await create_tables(await app.connections.default(), ALL_MODELS)
    yield app
    await app.admin.close()
    await app.connections.close()


@pytest.fixture
async def client(app: PlantGateApp):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def session(app: PlantGateApp) -> Dict[str, str]:
    """Credentials with a matching user_login row."""
    token = "token-alice"
    await UserLogin(await app.connections.default()).create({
        "ul_pl_db_code": ALICE["pl_db_code"],
        "ul_lu_db_code": ALICE["db_code"],
        "ul_access_token": token,
        "ul_last_login": "2024-01-01 08:00:00",
    })
    return {"accessUsername": ALICE["username"], "accessToken": token}


@pytest.fixture
def alice() -> Dict[str, Any]:
    return ALICE
