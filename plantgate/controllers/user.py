"""
User Controller
===============

Login, logout and platform access tokens. Login state lives in the
``user_login`` table; identity is owned by the administration service.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from plantgate.controllers.base import Controller
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.models.user_login import UserLogin
from plantgate.services.administration import is_ok, message_of, status_of
from plantgate.utils.helpers import generate_token, now_string
from plantgate.utils.logger import get_logger


logger = get_logger("plantgate.controllers.user")

ROTATED_TOKEN_LENGTH = 50


class UserController(Controller):
    """Handle authentication requests."""

    async def _record_login(self, request: Request, response: Response, user: Mapping[str, Any]) -> Optional[Response]:
        """Store the issued token; returns an error response on failure."""
        db = await self.database(request, user.get("username"))
        outcome = await UserLogin(db).upsert_login(
            user_db_code=user.get("db_code"),
            platform_login_db_code=user.get("pl_db_code"),
            access_token=user.get("access_token"),
            last_login=now_string(self.timezone),
        )

        if outcome["affected"]:
            return None
        if outcome["created"]:
            return response.error("Failed to create record", 401)
        return response.error("Failed to update record", 500)

    async def login(self, request: Request, response: Response) -> Response:
        errors = request.validate({
            "username": "required",
            "password": "required",
        })
        if errors:
            return response.validation_error(errors)

        result = await self.admin.verify_account({
            "username": request.get_data("username"),
            "password": request.get_data("password"),
            "platform": self.admin.platform,
            "fromPlatform": self.admin.from_platform,
        })
        if not is_ok(result):
            return response.error(message_of(result), status_of(result))

        user: Dict[str, Any] = result.get("data") or {}
        failed = await self._record_login(request, response, user)
        if failed is not None:
            return failed

        logger.info("User logged in", username=request.get_data("username"))
        return response.success(user, "Login successful")

    async def validate_platform_access_token(self, request: Request, response: Response) -> Response:
        """Exchange a platform access token for a session on this platform."""
        errors = request.validate({"platformAccessToken": "required"})
        if errors:
            return response.validation_error(errors)

        result = await self.admin.verify_platform_access_token({
            "platformAccessToken": request.get_data("platformAccessToken"),
            "platform": self.admin.platform,
        })
        if not is_ok(result):
            return response.error(message_of(result), status_of(result))

        user: Dict[str, Any] = result.get("data") or {}
        failed = await self._record_login(request, response, user)
        if failed is not None:
            return failed

        return response.success(user, "Access via token successful.")

    async def generate_platform_access_token(self, request: Request, response: Response) -> Response:
        result = await self.admin.get_platform_access_token(self.credentials(request))
        return self.forward(response, result, "The platform access token was generated successfully.")

    async def logout(self, request: Request, response: Response) -> Response:
        """
        Invalidate the caller's token locally, then tell the administration
        service. The local rotation stands whatever the service answers.
        """
        token = request.get_data("accessToken")
        user_login = UserLogin(await self.database(request))

        row = await user_login.find_by_token(token)
        if not row:
            return response.unauthorized("Invalid token")

        await user_login.update(row["ul_id"], {"ul_access_token": generate_token(ROTATED_TOKEN_LENGTH)})

        result = await self.admin.logout(self.credentials(request))
        if not is_ok(result):
            logger.warning("Administration logout failed", status=result.get("status_code"), upstream_message=message_of(result))

        return response.success(None, "Logout successful")

    async def me(self, request: Request, response: Response) -> Response:
        return response.success(request.user, "User found")
