"""
PlantGate Auth Middleware
=========================

Middleware that authenticates callers against the administration service.
Credentials travel in the request body as ``accessUsername`` and
``accessToken``.

Each middleware binds the caller's database connection to ``request.db``
before the handler runs.

Registered names:
    auth       Token check against user_login, then ``account/me``
    basic      Same as ``auth``, with 422 on missing credentials
    verifyPw   Secondary password check
    publicKey  Public access key check, optional connection switch

Example:
    registry.register("auth", lambda: AuthMiddleware(admin, connections))

    router.post("/system-log/list", "SystemLogController@list").with_middleware(["auth"])
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from plantgate.core.middleware import Middleware
from plantgate.models.user_login import UserLogin
from plantgate.services.administration import AdministrationClient, is_ok, message_of, status_of
from plantgate.utils.logger import get_logger

if TYPE_CHECKING:
    from plantgate.core.request import Request
    from plantgate.core.response import Response
    from plantgate.orm.connection import ConnectionRegistry


logger = get_logger("plantgate.auth")


class AdministrationMiddleware(Middleware):
    """
    Base for middleware that consult the administration service.

    Args:
        admin: Administration service client
        connections: Named database connections
    """

    def __init__(self, admin: AdministrationClient, connections: "ConnectionRegistry") -> None:
        self.admin = admin
        self.connections = connections

    async def bind_database(self, request: "Request", username: Optional[str]) -> None:
        request.db = await self.connections.for_user(username)

    def reject(self, response: "Response", result: Dict[str, Any]) -> "Response":
        """Propagate a non-200 administration envelope."""
        return response.error(message_of(result), status_of(result))


class AuthMiddleware(AdministrationMiddleware):
    """
    Requires a token that exists in user_login and that the administration
    service accepts for the username.
    """

    missing_message = "Authentication required"

    async def check_credentials(self, request: "Request", response: "Response") -> Optional["Response"]:
        if not request.get_data("accessToken") or not request.get_data("accessUsername"):
            return response.unauthorized(self.missing_message)
        return None

    async def before(self, request: "Request", response: "Response") -> Optional["Response"]:
        rejected = await self.check_credentials(request, response)
        if rejected is not None:
            return rejected

        token = request.get_data("accessToken")
        username = request.get_data("accessUsername")

        await self.bind_database(request, username)

        login = await UserLogin(request.db).find_by_token(token)
        if not login:
            logger.info("Unknown access token", username=username, path=request.path)
            return response.unauthorized("Invalid token")

        result = await self.admin.auth_check({
            "accessUsername": username,
            "accessToken": token,
            "plDbCode": login.get("ul_pl_db_code"),
            "luDbCode": login.get("ul_lu_db_code"),
            "platform": self.admin.platform,
        })
        if not is_ok(result):
            logger.info("Administration rejected token", username=username, status=result.get("status_code"))
            return self.reject(response, result)

        request.set_user(result.get("data"))
        return None


class BasicAuthMiddleware(AuthMiddleware):
    """``auth`` with missing credentials reported as a validation failure."""

    async def check_credentials(self, request: "Request", response: "Response") -> Optional["Response"]:
        errors = request.validate({
            "accessUsername": "required",
            "accessToken": "required",
        })
        if errors:
            return response.validation_error(errors)
        return None


class VerifySecondaryPasswordMiddleware(AdministrationMiddleware):
    """Requires ``verifySecondaryPassword`` to be accepted for the caller."""

    async def before(self, request: "Request", response: "Response") -> Optional["Response"]:
        errors = request.validate({"verifySecondaryPassword": "required"})
        if errors:
            return response.validation_error(errors)

        username = request.get_data("accessUsername")
        result = await self.admin.verify_secondary_password({
            "accessUsername": username,
            "accessToken": request.get_data("accessToken"),
            "verifySecondaryPassword": request.get_data("verifySecondaryPassword"),
        })
        if not is_ok(result):
            return self.reject(response, result)

        if request.db is None:
            await self.bind_database(request, username)
        return None


class PublicKeyAuthMiddleware(AdministrationMiddleware):
    """
    Machine access with ``publicAccessKey``.

    A ``connectionName`` in the body becomes the caller's active
    connection for this and later requests.
    """

    async def before(self, request: "Request", response: "Response") -> Optional["Response"]:
        errors = request.validate({
            "accessUsername": "required",
            "publicAccessKey": "required",
        })
        if errors:
            return response.validation_error(errors)

        username = request.get_data("accessUsername")
        result = await self.admin.verify_public_access_key({
            "accessUsername": username,
            "publicAccessKey": request.get_data("publicAccessKey"),
        })
        if not is_ok(result):
            return self.reject(response, result)

        connection_name = request.get_data("connectionName")
        if connection_name:
            if connection_name not in self.connections:
                return response.bad_request(f"Unknown connection: {connection_name}")
            self.connections.set_active(username, connection_name)

        await self.bind_database(request, username)
        return None
