"""
PlantGate Routes
================

The service's route table. Every API route is a POST under ``/api/v1``
taking form or JSON input; middleware is named and resolved through the
application's middleware registry.
"""

from __future__ import annotations

from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.core.router import Router

API_PREFIX = "/api/v1"


def not_found(request: Request, response: Response) -> Response:
    return response.json({
        "success": False,
        "message": "Resource not found",
        "error": "Not Found",
        "status_code": 404,
    }, 404)


def register_routes(router: Router) -> Router:
    router.get("/health", "HealthController@check", name="health")

    with router.group(API_PREFIX):

        with router.group("auth"):
            router.post("/login", "UserController@login", name="auth.login").with_middleware(["log"])
            router.post("/logout", "UserController@logout", name="auth.logout").with_middleware(["log"])
            router.post(
                "/verify-platform-access-token", "UserController@validate_platform_access_token"
            ).with_middleware(["log"])
            router.post(
                "/get-platform-access-token", "UserController@generate_platform_access_token"
            ).with_middleware(["basic"])
            router.post("/verify-redirect", "UserController@validate_platform_access_token")

        with router.group("auth", middleware=["auth"]):
            router.map(["GET", "POST"], "/me", "UserController@me")

        with router.group("building"):
            router.post("/building-list-to-select", "PlatformController@building_list_to_select").with_middleware(["basic"])

        with router.group("site"):
            router.post("/site-list-to-select", "PlatformController@site_list_to_select").with_middleware(["basic"])

        with router.group("entity"):
            router.post("/entity-list-to-select", "PlatformController@entity_list_to_select").with_middleware(["basic"])

        with router.group("plant"):
            router.post("/plant-list-to-select", "PlatformController@plant_list_to_select").with_middleware(["basic"])

        with router.group("warehouse"):
            router.post("/all-warehouse-list-to-select", "PlatformController@warehouse_list_to_select")

        with router.group("user", middleware=["basic"]):
            router.post("/get-platform-list", "PlatformController@platform_list")
            router.post("/user-list-to-select", "PlatformController@user_list_to_select")
            router.post("/get-user-plant-list", "PlatformController@user_plant_list")
            router.post("/get-user-profile", "PlatformController@basic_profile")

        with router.group("system-log", middleware=["auth"]):
            router.post("/list", "SystemLogController@list", name="system-log.list")
            router.post("/create", "SystemLogController@create", name="system-log.create")
            router.post("/get", "SystemLogController@show", name="system-log.get")
            router.post("/modules", "SystemLogController@modules", name="system-log.modules")
            router.post("/users", "SystemLogController@users", name="system-log.users")

        with router.group("notification-center", middleware=["auth"]):
            router.post("/list", "NotificationCenterController@list", name="notification-center.list")
            router.post("/create", "NotificationCenterController@create", name="notification-center.create").with_middleware(["log"])
            router.post("/get", "NotificationCenterController@show", name="notification-center.get")
            router.post("/update", "NotificationCenterController@update", name="notification-center.update").with_middleware(["log"])
            router.post("/delete", "NotificationCenterController@delete", name="notification-center.delete").with_middleware(["log"])

        with router.group("notification", middleware=["auth"]):
            router.post("/list", "NotificationController@list", name="notification.list")
            router.post("/count", "NotificationController@count", name="notification.count")
            router.post("/get", "NotificationController@show", name="notification.get")

        with router.group("qa-inspection", middleware=["auth"]):
            router.post("/list", "QaInspectionController@list", name="qa-inspection.list")
            router.post("/get", "QaInspectionController@show", name="qa-inspection.get")
            router.post("/item-list", "QaInspectionController@item_list", name="qa-inspection.item-list")
            router.post("/reserve", "QaInspectionController@reserve", name="qa-inspection.reserve").with_middleware(["log"])
            router.post(
                "/update-item-list", "QaInspectionController@update_item_list", name="qa-inspection.update-item-list"
            ).with_middleware(["log"])
            router.post(
                "/update-item-serial-list",
                "QaInspectionController@update_item_serial_list",
                name="qa-inspection.update-item-serial-list",
            ).with_middleware(["log"])
            router.post(
                "/update-result", "QaInspectionController@update_result", name="qa-inspection.update-result"
            ).with_middleware(["log"])

    return router
