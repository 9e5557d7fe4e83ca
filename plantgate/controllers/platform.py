"""
Platform Controller
===================

Lookup lists and profile data proxied from the administration and
warehouse services. Each action forwards the caller's credentials and
passes a non-200 reply through unchanged.
"""

from __future__ import annotations

from plantgate.controllers.base import Controller
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.models.user_login import UserLogin
from plantgate.services.administration import is_ok, message_of, status_of
from plantgate.utils.helpers import get_nested


class PlatformController(Controller):
    """Handle platform lookup requests."""

    async def plant_list_to_select(self, request: Request, response: Response) -> Response:
        result = await self.admin.plant_list_to_select(self.credentials(request))
        return self.forward(response, result, "Plants list retrieved successfully")

    async def site_list_to_select(self, request: Request, response: Response) -> Response:
        result = await self.admin.site_list_to_select(self.credentials(request))
        return self.forward(response, result, "Site information retrieved successfully")

    async def user_list_to_select(self, request: Request, response: Response) -> Response:
        result = await self.admin.user_list_to_select(self.credentials(request))
        return self.forward(response, result, "User list retrieved successfully")

    async def building_list_to_select(self, request: Request, response: Response) -> Response:
        result = await self.admin.building_list_to_select(self.credentials(request))
        return self.forward(response, result, "Building list retrieved successfully")

    async def entity_list_to_select(self, request: Request, response: Response) -> Response:
        result = await self.admin.entity_list_to_select(self.credentials(request))
        return self.forward(response, result, "Entity list retrieved successfully")

    async def warehouse_list_to_select(self, request: Request, response: Response) -> Response:
        result = await self.admin.warehouse_list_to_select(self.credentials(request))
        return self.forward(response, result, "Warehouse list retrieved successfully")

    async def basic_profile(self, request: Request, response: Response) -> Response:
        """Profile from the administration service plus the local last login."""
        result = await self.admin.basic_profile(self.credentials(request))
        if not is_ok(result):
            return response.error(message_of(result), status_of(result))

        profile = result.get("data") or {}
        user = profile.get("user")
        if isinstance(user, dict):
            login = await UserLogin(await self.database(request)).find_by_record(get_nested(profile, "user.db_code"))
            user["last_login"] = login.get("ul_last_login") if login else None

        return response.success(profile, "User found")

    async def user_plant_list(self, request: Request, response: Response) -> Response:
        result = await self.admin.user_plant_list(self.credentials(request))
        return self.forward(response, result, "User Plant List found")

    async def platform_list(self, request: Request, response: Response) -> Response:
        errors = request.validate({"currentPlatformType": "required"})
        if errors:
            return response.validation_error(errors)

        credentials = self.credentials(request)
        credentials["currentPlatformType"] = request.get_data("currentPlatformType")

        result = await self.admin.platform_list(credentials)
        return self.forward(response, result, "User platform list found")
