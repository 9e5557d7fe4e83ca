"""Audit trail of successful requests."""

from plantgate.audit.middleware import (
    RequestLoggerMiddleware,
    determine_module,
    determine_subject,
)

__all__ = ["RequestLoggerMiddleware", "determine_module", "determine_subject"]
