"""
PlantGate Validator
===================

Field-rule engine consumed by ``Request.validate``.

Rules per field are given as a pipe string, a list of names and Rule
objects, or a single Rule:

    {
        "type": "required|length:2,20",
        "title": ["required"],
        "status": [Required(), Numeric()],
        "lpPlantDbCode": [],
    }

The result is a field to messages map; an empty map means the data is
valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from plantgate.validation.rules import (
    Alpha,
    AlphaNumeric,
    Boolean,
    Date,
    Email,
    In,
    Integer,
    Length,
    Max,
    Min,
    NotIn,
    Nullable,
    Numeric,
    Regex,
    Required,
    Rule,
    Same,
    Url,
)


@dataclass
class ValidationResult:
    """Validated data and per-field errors."""

    valid: bool
    data: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.valid


RuleSpec = Union[str, Rule, List[Union[str, Rule]]]


RULE_MAP: Dict[str, Callable[[List[str]], Rule]] = {
    "required": lambda p: Required(),
    "nullable": lambda p: Nullable(),
    "email": lambda p: Email(),
    "url": lambda p: Url(),
    "numeric": lambda p: Numeric(),
    "integer": lambda p: Integer(),
    "boolean": lambda p: Boolean(),
    "min": lambda p: Min(min_value=float(p[0])),
    "max": lambda p: Max(max_value=float(p[0])),
    "length": lambda p: Length(min_length=int(p[0]), max_length=int(p[-1])),
    "between": lambda p: Length(min_length=int(p[0]), max_length=int(p[-1])),
    "regex": lambda p: Regex(pattern=",".join(p)),
    "in": lambda p: In(allowed=p),
    "not_in": lambda p: NotIn(disallowed=p),
    "same": lambda p: Same(other_field=p[0]),
    "alpha": lambda p: Alpha(),
    "alpha_num": lambda p: AlphaNumeric(),
    "date": lambda p: Date(),
}


class Validator:
    """
    Validates a mapping against per-field rules.

    Example:
        validator = Validator({
            "username": "required",
            "password": "required",
        })

        result = validator.validate({"username": "alice"})
        result.errors  # {"password": ["The password field is required."]}
    """

    def __init__(
        self,
        rules: Dict[str, RuleSpec],
        messages: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Initialize validator.

        Args:
            rules: Validation rules per field
            messages: Custom messages keyed by ``field.rule`` (e.g. ``type.length``)

        Raises:
            ValueError: If a rule name is unknown
        """
        self.rules = {name: self._parse_rule_spec(spec) for name, spec in rules.items()}
        self.messages = messages or {}

    def _parse_rule_spec(self, spec: RuleSpec) -> List[Rule]:
        if spec is None:
            return []

        if isinstance(spec, Rule):
            return [spec]

        if isinstance(spec, (list, tuple)):
            rules: List[Rule] = []
            for item in spec:
                rules.extend(self._parse_rule_spec(item))
            return rules

        if isinstance(spec, str):
            return self._parse_string_rules(spec)

        raise TypeError(f"Unsupported rule specification: {spec!r}")

    def _parse_string_rules(self, rule_string: str) -> List[Rule]:
        """
        Parse pipe-separated rule string.

        Example: "required|length:2,20"
        """
        rules = []

        for part in rule_string.split("|"):
            part = part.strip()
            if not part:
                continue

            name, _, params_str = part.partition(":")
            params = [p.strip() for p in params_str.split(",")] if params_str else []

            creator = RULE_MAP.get(name.lower())
            if creator is None:
                raise ValueError(f"Unknown validation rule: {name}")

            rules.append(creator(params))

        return rules

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        errors: Dict[str, List[str]] = {}
        validated: Dict[str, Any] = {}

        for field_name, rules in self.rules.items():
            value = data.get(field_name)
            field_errors = self._validate_field(value, field_name, rules, data)

            if field_errors:
                errors[field_name] = field_errors
            elif field_name in data:
                validated[field_name] = value

        return ValidationResult(valid=not errors, data=validated, errors=errors)

    def _validate_field(
        self,
        value: Any,
        field: str,
        rules: List[Rule],
        data: Dict[str, Any],
    ) -> List[str]:
        errors = []

        for rule in rules:
            if not rule.validate(value, field, data):
                errors.append(self._get_message(field, rule))

        return errors

    def _get_message(self, field: str, rule: Rule) -> str:
        key = f"{field}.{type(rule).__name__.lower()}"
        if key in self.messages:
            return self.messages[key]
        return rule.get_message(field)


def validate(
    data: Dict[str, Any],
    rules: Dict[str, RuleSpec],
    messages: Optional[Dict[str, str]] = None,
) -> Dict[str, List[str]]:
    """Validate data and return the error map."""
    return Validator(rules, messages).validate(data).errors
