"""
PlantGate Controllers
=====================

Route handlers, registered by name so routes can reference them as
``"Controller@action"``.
"""

from __future__ import annotations

from typing import Optional

from plantgate.controllers.base import Controller
from plantgate.controllers.health import HealthController
from plantgate.controllers.notification import NotificationController
from plantgate.controllers.notification_center import NotificationCenterController
from plantgate.controllers.platform import PlatformController
from plantgate.controllers.qa_inspection import QaInspectionController
from plantgate.controllers.system_log import SystemLogController
from plantgate.controllers.user import UserController
from plantgate.core.router import HandlerRegistry
from plantgate.orm.connection import ConnectionRegistry
from plantgate.services.administration import AdministrationClient


def build_handlers(
    admin: AdministrationClient,
    connections: ConnectionRegistry,
    timezone: Optional[str] = None,
) -> HandlerRegistry:
    """A handler registry holding one instance of every controller."""
    handlers = HandlerRegistry()
    for controller in (
        UserController,
        PlatformController,
        SystemLogController,
        NotificationCenterController,
        NotificationController,
        QaInspectionController,
    ):
        handlers.register(controller.__name__, controller(admin, connections, timezone))
    handlers.register("HealthController", HealthController())
    return handlers


__all__ = [
    "Controller",
    "HealthController",
    "NotificationCenterController",
    "NotificationController",
    "PlatformController",
    "QaInspectionController",
    "SystemLogController",
    "UserController",
    "build_handlers",
]
