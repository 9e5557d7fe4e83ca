"""
PlantGate Validation Rules
==========================

Built-in field rules.

Every rule except ``Required`` passes on an absent value (``None`` or an
empty string); presence is the job of ``Required`` alone.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Pattern, Union


def is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


class Rule(ABC):
    """
    Abstract validation rule.

    Example:
        class PlantCode(Rule):
            message = "The {field} must be a plant code."

            def check(self, value, field, data):
                return str(value).isdigit()
    """

    message: str = "The {field} field is invalid."

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        """Run the rule, passing absent values through."""
        if is_absent(value):
            return True
        return self.check(value, field, data)

    @abstractmethod
    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        """
        Check a present value.

        Args:
            value: Value to validate
            field: Field name
            data: Full data being validated

        Returns:
            True if valid
        """
        ...

    def get_message(self, field: str) -> str:
        return self.message.format(field=field)


@dataclass
class Required(Rule):
    """Require field to be present and not empty."""

    message: str = "The {field} field is required."

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return self.check(value, field, data)

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return not is_absent(value)


@dataclass
class Nullable(Rule):
    """Mark a field as optional; documents intent only."""

    message: str = ""

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return True


@dataclass
class Email(Rule):
    message: str = "The {field} must be a valid email address."

    _pattern: Pattern = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and bool(self._pattern.match(value))


@dataclass
class Url(Rule):
    message: str = "The {field} must be a valid URL."

    _pattern: Pattern = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and bool(self._pattern.match(value))


@dataclass
class Numeric(Rule):
    """Value must be a number or a numeric string."""

    message: str = "The {field} must be numeric."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return True
        if isinstance(value, str):
            try:
                float(value)
                return True
            except ValueError:
                return False
        return False


@dataclass
class Integer(Rule):
    message: str = "The {field} must be an integer."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        if isinstance(value, str):
            try:
                int(value)
                return True
            except ValueError:
                return False
        return False


@dataclass
class Boolean(Rule):
    message: str = "The {field} must be a boolean."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return value in (True, False, 0, 1, "0", "1")


@dataclass
class Min(Rule):
    """Minimum value for numbers, length for strings."""

    min_value: Union[int, float]
    message: str = "The {field} must be at least {min}."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        number = _as_number(value)
        if number is not None:
            return number >= self.min_value
        return isinstance(value, str) and len(value) >= self.min_value

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, min=_plain(self.min_value))


@dataclass
class Max(Rule):
    """Maximum value for numbers, length for strings."""

    max_value: Union[int, float]
    message: str = "The {field} may not be greater than {max}."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        number = _as_number(value)
        if number is not None:
            return number <= self.max_value
        return isinstance(value, str) and len(value) <= self.max_value

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, max=_plain(self.max_value))


@dataclass
class Length(Rule):
    """String length range, measured on the string form of the value."""

    min_length: int
    max_length: Optional[int] = None
    message: str = "The {field} must be between {min} and {max} characters."

    def __post_init__(self) -> None:
        if self.max_length is None:
            self.max_length = self.min_length

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return self.min_length <= len(str(value)) <= self.max_length

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, min=self.min_length, max=self.max_length)


@dataclass
class Regex(Rule):
    pattern: Union[str, Pattern]
    message: str = "The {field} format is invalid."

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            self.pattern = re.compile(self.pattern)

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and bool(self.pattern.search(value))


@dataclass
class In(Rule):
    allowed: List[Any]
    message: str = "The {field} must be one of the following: {allowed}."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return value in self.allowed or str(value) in [str(a) for a in self.allowed]

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, allowed=", ".join(map(str, self.allowed)))


@dataclass
class NotIn(Rule):
    disallowed: List[Any]
    message: str = "The {field} may not be one of the following: {disallowed}."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return str(value) not in [str(d) for d in self.disallowed]

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, disallowed=", ".join(map(str, self.disallowed)))


@dataclass
class Same(Rule):
    other_field: str
    message: str = "The {field} and {other} must match."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return value == data.get(self.other_field)

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, other=self.other_field)


@dataclass
class Alpha(Rule):
    message: str = "The {field} may only contain letters."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and value.isalpha()


@dataclass
class AlphaNumeric(Rule):
    message: str = "The {field} may only contain letters and numbers."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and value.isalnum()


@dataclass
class Date(Rule):
    format: str = "%Y-%m-%d"
    message: str = "The {field} must be a valid date."

    def check(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if not isinstance(value, str):
            return False
        try:
            datetime.strptime(value, self.format)
            return True
        except ValueError:
            return False


def _plain(number: Union[int, float]) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None
