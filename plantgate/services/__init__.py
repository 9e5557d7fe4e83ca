"""
PlantGate Services
==================

Clients for the remote services the API delegates to.
"""

from plantgate.services.administration import (
    AdministrationClient,
    is_ok,
    message_of,
    status_of,
)

__all__ = [
    "AdministrationClient",
    "is_ok",
    "message_of",
    "status_of",
]
