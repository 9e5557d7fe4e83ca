"""
PlantGate Administration Client
===============================

Async client for the administration (identity, plant, user) service and
the warehouse (WMS) service.

Every call is a form-encoded POST to ``base_url + endpoint`` answered
with a JSON envelope:

    {"status_code": 200, "message": "...", "data": {...}}

A non-200 envelope is returned as-is for the caller to propagate. A
transport failure or a reply that is not a JSON object raises
``CollaboratorError``.

Example:
    client = AdministrationClient("http://admin:8082", timeout=10.0)
    result = await client.auth_check({
        "accessUsername": "alice",
        "accessToken": token,
        "plDbCode": row["ul_pl_db_code"],
        "luDbCode": row["ul_lu_db_code"],
        "platform": client.platform,
    })
    if is_ok(result):
        user = result["data"]
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx
import orjson

from plantgate.core.exceptions import CollaboratorError
from plantgate.utils.logger import get_logger


logger = get_logger("plantgate.administration")


# Administration service endpoints
PLANT_LIST_TO_SELECT = "/api/v1/plant/plant-list-to-select"
SITE_LIST_TO_SELECT = "/api/v1/site/site-list-to-select"
USER_LIST_TO_SELECT = "/api/v1/user/user-list-to-select"
BUILDING_LIST_TO_SELECT = "/api/v1/building/building-list-to-select"
ENTITY_LIST_TO_SELECT = "/api/v1/entity/entity-list-to-select"
USER_PROFILE = "/api/v1/user/get-user-profile"
USER_PLANT_LIST = "/api/v1/user/get-user-plant-list"
PLATFORM_LIST = "/api/v1/user/get-platform-list"
ACCOUNT_VERIFY = "/api/v1/account/verify"
ACCOUNT_ME = "/api/v1/account/me"
ACCOUNT_VERIFY_SECONDARY_PASSWORD = "/api/v1/account/verify-secondary-password"
ACCOUNT_VERIFY_PLATFORM_ACCESS_TOKEN = "/api/v1/account/verify-platform-access-token"
ACCOUNT_GET_PLATFORM_ACCESS_TOKEN = "/api/v1/account/get-platform-access-token"
ACCOUNT_VERIFY_PUBLIC_ACCESS_KEY = "/api/v1/account/verify-public-access-key"
ACCOUNT_LOGOUT = "/api/v1/account/logout"

# WMS endpoints
WAREHOUSE_LIST_TO_SELECT = "/api/v1/warehouse/all-warehouse-list-to-select"
ITEM_INFO_BY_ID_LIST = "/api/v1/item-external/item-info-by-id-list"


def is_ok(result: Mapping[str, Any]) -> bool:
    """True when the envelope reports status 200 (number or string)."""
    return str(result.get("status_code")) == "200"


def status_of(result: Mapping[str, Any], default: int = 502) -> int:
    try:
        return int(result.get("status_code"))
    except (TypeError, ValueError):
        return default


def message_of(result: Mapping[str, Any], default: str = "Upstream service error") -> str:
    message = result.get("message")
    return str(message) if message else default


class AdministrationClient:
    """
    Form-POST client over one shared ``httpx.AsyncClient``.

    Args:
        base_url: Administration service root
        wms_url: Warehouse service root
        timeout: Per-call timeout in seconds
        verify_tls: Check the services' TLS certificates
        platform: Platform name sent with identity calls
        from_platform: Originating platform sent on login
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests
    """

    def __init__(
        self,
        base_url: str,
        wms_url: Optional[str] = None,
        timeout: float = 10.0,
        verify_tls: bool = True,
        platform: str = "admin",
        from_platform: str = "qa",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.wms_url = (wms_url or base_url).rstrip("/")
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.platform = platform
        self.from_platform = from_platform
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config: Any, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AdministrationClient":
        return cls(
            base_url=config.get("administration.url", ""),
            wms_url=config.get("administration.wms_url"),
            timeout=config.get_float("administration.timeout", 10.0),
            verify_tls=config.get_bool("administration.verify_tls", True),
            platform=config.get("app.platform", "admin"),
            from_platform=config.get("app.from_platform", "qa"),
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                verify=self.verify_tls,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, url: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        form = {key: value for key, value in payload.items() if value is not None}

        try:
            reply = await self.client.post(url, data=form)
        except httpx.HTTPError as e:
            logger.error("Collaborator request failed", url=url, exception=e)
            raise CollaboratorError() from e

        try:
            result = orjson.loads(reply.content)
        except orjson.JSONDecodeError as e:
            logger.error("Collaborator reply is not JSON", url=url, status=reply.status_code)
            raise CollaboratorError() from e

        if not isinstance(result, dict):
            logger.error("Collaborator reply is not an object", url=url, status=reply.status_code)
            raise CollaboratorError()

        logger.debug("Collaborator replied", url=url, status_code=result.get("status_code"))
        return result

    async def admin_api(self, endpoint: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._post(self.base_url + endpoint, payload)

    async def wms_api(self, endpoint: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._post(self.wms_url + endpoint, payload)

    # Lists

    async def plant_list_to_select(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(PLANT_LIST_TO_SELECT, credentials)

    async def site_list_to_select(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(SITE_LIST_TO_SELECT, credentials)

    async def user_list_to_select(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(USER_LIST_TO_SELECT, credentials)

    async def building_list_to_select(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(BUILDING_LIST_TO_SELECT, credentials)

    async def entity_list_to_select(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ENTITY_LIST_TO_SELECT, credentials)

    async def basic_profile(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(USER_PROFILE, credentials)

    async def user_plant_list(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(USER_PLANT_LIST, credentials)

    async def platform_list(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(PLATFORM_LIST, credentials)

    async def warehouse_list_to_select(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.wms_api(WAREHOUSE_LIST_TO_SELECT, credentials)

    async def item_info_by_id_list(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.wms_api(ITEM_INFO_BY_ID_LIST, credentials)

    # Account

    async def verify_account(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_VERIFY, credentials)

    async def auth_check(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_ME, credentials)

    async def verify_secondary_password(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_VERIFY_SECONDARY_PASSWORD, credentials)

    async def verify_platform_access_token(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_VERIFY_PLATFORM_ACCESS_TOKEN, credentials)

    async def get_platform_access_token(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_GET_PLATFORM_ACCESS_TOKEN, credentials)

    async def verify_public_access_key(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_VERIFY_PUBLIC_ACCESS_KEY, credentials)

    async def logout(self, credentials: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.admin_api(ACCOUNT_LOGOUT, credentials)
