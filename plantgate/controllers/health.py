"""Liveness check."""

from __future__ import annotations

from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.utils.helpers import timestamp


class HealthController:
    async def check(self, request: Request, response: Response) -> Response:
        return response.json({"status": "ok", "timestamp": timestamp()})
