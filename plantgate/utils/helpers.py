"""
PlantGate Helpers
=================

Token and code generators, row key helpers and time helpers.
"""

from __future__ import annotations

import hashlib
import os
import re
import secrets
import string
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo


ALPHANUMERIC = string.digits + string.ascii_lowercase + string.ascii_uppercase


# =============================================================================
# Token Helpers
# =============================================================================

def random_string(length: int = 16, keyspace: str = ALPHANUMERIC) -> str:
    """
    Generate a random string from a keyspace.

    Args:
        length: Number of characters
        keyspace: Allowed characters

    Raises:
        ValueError: If length is not positive
    """
    if length < 1:
        raise ValueError("Length must be a positive integer")

    return "".join(secrets.choice(keyspace) for _ in range(length))


def generate_token(length: int = 32) -> str:
    """
    Generate a hex token of the given length.

    Example:
        >>> len(generate_token(50))
        50
    """
    return secrets.token_hex(length // 2)


def generate_db_code(length: int = 28) -> str:
    """
    Generate a record code: unix timestamp followed by a hash fragment.

    Codes sort roughly by creation time and are upper-cased.

    Args:
        length: Total length, at least 10

    Returns:
        Code such as ``1718000000A3F09C...``
    """
    if length < 10:
        raise ValueError("Length must be at least 10 characters for uniqueness.")

    now_ns = time.time_ns()
    seconds = str(now_ns // 1_000_000_000)
    seed = f"{now_ns}{os.getpid()}{secrets.randbits(64)}"
    digest = hashlib.sha256(seed.encode()).hexdigest()

    return (seconds + digest[: max(length - len(seconds), 0)]).upper()[:length]


# =============================================================================
# Input Helpers
# =============================================================================

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def as_int(value: Any, default: int = 0) -> int:
    """
    Integer form of client input.

    A string is read up to its first non-digit; anything without a
    leading integer is ``default``.

    Example:
        >>> as_int("12 units"), as_int("active"), as_int(None, 1)
        (12, 0, 1)
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group()) if match else default
    return default


# =============================================================================
# Row Helpers
# =============================================================================

def remove_first_prefix(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop everything up to the first underscore in each key.

    Example:
        >>> remove_first_prefix({"nc_db_code": "X", "id": 1})
        {'db_code': 'X', 'id': 1}
    """
    result = {}

    for key, value in row.items():
        _, sep, rest = key.partition("_")
        result[rest if sep and rest else key] = value

    return result


def remove_prefix_from_keys(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Apply ``remove_first_prefix`` to every row."""
    return [remove_first_prefix(row) for row in rows]


def get_nested(obj: Any, path: str, default: Any = None, separator: str = ".") -> Any:
    """
    Get nested value from dict/list using dot notation.

    Example:
        >>> get_nested({"user_access": {"report": {"read": True}}}, "user_access.report.read")
        True
    """
    current = obj

    for key in path.split(separator):
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return default

    return current


# =============================================================================
# Time Helpers
# =============================================================================

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def now(timezone: Optional[Union[str, ZoneInfo]] = None) -> datetime:
    """Current time in the given zone (naive local time when omitted)."""
    if timezone is None:
        return datetime.now()
    if isinstance(timezone, str):
        timezone = ZoneInfo(timezone)
    return datetime.now(timezone)


def now_string(timezone: Optional[Union[str, ZoneInfo]] = None) -> str:
    """Current time as ``YYYY-mm-dd HH:MM:SS``, the format stored in audit columns."""
    return now(timezone).strftime(DATETIME_FORMAT)


def format_datetime(value: Optional[str], fmt: str = "%d/%m/%Y %I:%M%p") -> str:
    """
    Reformat a stored ``YYYY-MM-DD HH:MM:SS`` string; unparsable input is
    returned unchanged.

    Example:
        >>> format_datetime("2024-02-01 09:05:00")
        '01/02/2024 09:05AM'
    """
    if not value:
        return ""
    try:
        return datetime.strptime(str(value), DATETIME_FORMAT).strftime(fmt)
    except ValueError:
        return str(value)


def timestamp() -> int:
    """Current Unix timestamp in whole seconds."""
    return int(time.time())
