"""
PlantGate Utils Package
=======================

Logging, environment loading and small helpers.
"""

from __future__ import annotations

from plantgate.utils.env import Env
from plantgate.utils.logger import (
    Logger,
    LogLevel,
    configure_logging,
    get_logger,
    redact,
)
from plantgate.utils.helpers import (
    generate_db_code,
    generate_token,
    get_nested,
    now_string,
    random_string,
    remove_first_prefix,
    remove_prefix_from_keys,
    timestamp,
)

__all__ = [
    # Environment
    "Env",
    # Logging
    "Logger",
    "LogLevel",
    "get_logger",
    "configure_logging",
    "redact",
    # Helpers
    "generate_db_code",
    "generate_token",
    "get_nested",
    "now_string",
    "random_string",
    "remove_first_prefix",
    "remove_prefix_from_keys",
    "timestamp",
]
