"""
PlantGate Validation Package
============================

Field rules and the validator behind ``Request.validate``.
"""

from __future__ import annotations

from plantgate.validation.rules import (
    Boolean,
    Email,
    In,
    Integer,
    Length,
    Max,
    Min,
    Nullable,
    Numeric,
    Regex,
    Required,
    Rule,
)
from plantgate.validation.validator import (
    ValidationResult,
    Validator,
    validate,
)

__all__ = [
    "Validator",
    "ValidationResult",
    "validate",
    "Rule",
    "Required",
    "Nullable",
    "Email",
    "Numeric",
    "Integer",
    "Boolean",
    "Min",
    "Max",
    "Length",
    "Regex",
    "In",
]
