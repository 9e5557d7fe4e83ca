"""
PlantGate Authentication
========================

Auth-family middleware backed by the administration service, and guards
for controller actions.
"""

from plantgate.auth.guards import (
    Guard,
    PermissionGuard,
    UnauthorizedError,
    guard,
    has_permission,
    require_permission,
)
from plantgate.auth.middleware import (
    AdministrationMiddleware,
    AuthMiddleware,
    BasicAuthMiddleware,
    PublicKeyAuthMiddleware,
    VerifySecondaryPasswordMiddleware,
)

__all__ = [
    # Middleware
    "AdministrationMiddleware",
    "AuthMiddleware",
    "BasicAuthMiddleware",
    "PublicKeyAuthMiddleware",
    "VerifySecondaryPasswordMiddleware",
    # Guards
    "Guard",
    "PermissionGuard",
    "UnauthorizedError",
    "guard",
    "has_permission",
    "require_permission",
]
