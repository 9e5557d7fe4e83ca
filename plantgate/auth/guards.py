"""
PlantGate Route Guards
======================

Authorization checks against the principal the auth middleware stored on
the request. The administration service describes permissions as a
nested mapping:

    {"user_access": {"notification_center": {"read": true, "write": false}}}

Features:
- Permission lookup by dotted path
- Decorator for controller actions

Example:
    class NotificationCenterController(Controller):
        @require_permission("user_access.notification_center.write")
        async def create(self, request, response):
            ...
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Union

from plantgate.core.exceptions import HTTPException
from plantgate.utils.helpers import get_nested


class UnauthorizedError(HTTPException):
    """Caller is not authenticated or lacks a permission."""

    status_code = 401
    default_message = "Authentication required"


def has_permission(user: Any, permission: str) -> bool:
    """
    True when the dotted ``permission`` path is truthy in ``user``.

    Example:
        >>> has_permission({"user_access": {"mes_system_log": {"read": 1}}}, "user_access.mes_system_log.read")
        True
    """
    if not isinstance(user, dict):
        return False
    return bool(get_nested(user, permission, False))


class Guard(ABC):
    """
    Abstract base guard.

    Implement ``can_access`` to create custom guards.
    """

    @abstractmethod
    def can_access(self, user: Any) -> bool:
        ...

    def get_error(self) -> HTTPException:
        return UnauthorizedError()


class PermissionGuard(Guard):
    """
    Requires permission path(s) to be granted.

    Denial is reported as 401 ``Permission denied``, the status clients of
    the administration service already expect.
    """

    def __init__(
        self,
        permissions: Union[str, List[str]],
        require_all: bool = True,
        message: str = "Permission denied",
    ) -> None:
        self.permissions = [permissions] if isinstance(permissions, str) else list(permissions)
        self.require_all = require_all
        self.message = message

    def can_access(self, user: Any) -> bool:
        checks = (has_permission(user, permission) for permission in self.permissions)
        return all(checks) if self.require_all else any(checks)

    def get_error(self) -> HTTPException:
        return UnauthorizedError(self.message)


def guard(check: Guard) -> Callable:
    """
    Decorator for ``action(self, request, response)`` controller methods.

    A denied request gets the guard's error envelope; the action does
    not run.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self: Any, request: Any, response: Any, *args: Any, **kwargs: Any) -> Any:
            if not check.can_access(request.user):
                error = check.get_error()
                return response.error(error.message, error.status_code)
            return await func(self, request, response, *args, **kwargs)
        return wrapper
    return decorator


def require_permission(*permissions: str, message: str = "Permission denied") -> Callable:
    """
    Example:
        @require_permission("user_access.mes_system_log.read")
        async def list(self, request, response):
            ...
    """
    return guard(PermissionGuard(list(permissions), message=message))
