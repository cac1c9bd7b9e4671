# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parameter validation against a capability's schema.

Validation coerces loosely typed input (LLM arguments, chat replies),
applies defaults of optional parameters, and reports every violation it
finds. A required parameter is never satisfied by its default.
"""

import re
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.core.capabilities.models import (
    Capability,
    ParameterSpec,
    ParameterType,
    is_missing_value,
)
from src.core.errors import ParameterValidationError

FieldErrorCode = Literal[
    "missing",
    "invalid_type",
    "invalid_enum",
    "too_short",
    "too_long",
    "below_min",
    "above_max",
    "pattern_mismatch",
]

_TRUE_VALUES = {"true", "yes", "1", "כן"}
_FALSE_VALUES = {"false", "no", "0", "לא"}


class FieldError(BaseModel):
    """A single field violation."""

    field: str
    code: FieldErrorCode
    message: str


class ValidationOutcome(BaseModel):
    """Coerced parameters plus every violation found."""

    params: dict[str, Any] = Field(default_factory=dict)
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def failing_fields(self) -> list[str]:
        """Top-level names of the fields that failed."""
        seen: list[str] = []
        for error in self.errors:
            name = error.field.split(".", 1)[0]
            if name not in seen:
                seen.append(name)
        return seen

    def raise_for_errors(self, capability_id: str) -> dict[str, Any]:
        """Return the coerced params.

        Raises:
            ParameterValidationError: With every field error, if any.
        """
        if self.errors:
            raise ParameterValidationError(capability_id, list(self.errors))
        return self.params


class _CoercionError(ValueError):
    pass


def _coerce(spec: ParameterSpec, value: Any) -> Any:
    if spec.type == ParameterType.NUMBER:
        if isinstance(value, bool):
            raise _CoercionError("expected a number")
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise _CoercionError("expected a number") from None
            return int(number) if number.is_integer() else number
        raise _CoercionError("expected a number")

    if spec.type == ParameterType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().casefold()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise _CoercionError("expected a boolean")

    if spec.type == ParameterType.ARRAY:
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        raise _CoercionError("expected a list")

    if spec.type == ParameterType.OBJECT:
        if isinstance(value, dict):
            return value
        raise _CoercionError("expected an object")

    # string and enum
    if isinstance(value, (dict, list)):
        raise _CoercionError("expected a string")
    return str(value).strip() if isinstance(value, str) else str(value)


def _check_rules(path: str, spec: ParameterSpec, value: Any) -> list[FieldError]:
    errors: list[FieldError] = []

    if spec.enum_values and isinstance(value, str) and value not in spec.enum_values:
        errors.append(
            FieldError(
                field=path,
                code="invalid_enum",
                message=f"must be one of {', '.join(spec.enum_values)}",
            )
        )

    rules = spec.validation_rules
    if rules is None:
        return errors

    if isinstance(value, (str, list)):
        if rules.min_length is not None and len(value) < rules.min_length:
            errors.append(
                FieldError(field=path, code="too_short", message=f"minimum length is {rules.min_length}")
            )
        if rules.max_length is not None and len(value) > rules.max_length:
            errors.append(
                FieldError(field=path, code="too_long", message=f"maximum length is {rules.max_length}")
            )

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if rules.min is not None and value < rules.min:
            errors.append(FieldError(field=path, code="below_min", message=f"minimum is {rules.min:g}"))
        if rules.max is not None and value > rules.max:
            errors.append(FieldError(field=path, code="above_max", message=f"maximum is {rules.max:g}"))

    if rules.pattern and isinstance(value, str):
        try:
            matched = re.fullmatch(rules.pattern, value) is not None
        except re.error:
            matched = True
        if not matched:
            errors.append(
                FieldError(field=path, code="pattern_mismatch", message=f"must match {rules.pattern}")
            )

    return errors


def _validate_fields(
    schema: dict[str, ParameterSpec],
    params: dict[str, Any],
    prefix: str = "",
) -> tuple[dict[str, Any], list[FieldError]]:
    coerced: dict[str, Any] = {}
    errors: list[FieldError] = []

    for name, spec in schema.items():
        path = f"{prefix}{name}"
        raw = params.get(name)

        if is_missing_value(raw):
            if spec.required:
                errors.append(FieldError(field=path, code="missing", message="required"))
            elif spec.has_default:
                coerced[name] = spec.default_value
            continue

        try:
            value = _coerce(spec, raw)
        except _CoercionError as e:
            errors.append(FieldError(field=path, code="invalid_type", message=str(e)))
            continue

        if spec.type == ParameterType.OBJECT and spec.properties:
            value, nested = _validate_fields(spec.properties, value, prefix=f"{path}.")
            errors.extend(nested)

        errors.extend(_check_rules(path, spec, value))
        coerced[name] = value

    return coerced, errors


def validate_parameters(capability: Capability, params: dict[str, Any]) -> ValidationOutcome:
    """Validate and coerce parameters for a capability.

    Unknown keys are dropped. Every violation is reported, so N missing
    required parameters yield N ``missing`` errors.

    Args:
        capability: Capability whose schema applies.
        params: Raw parameters.

    Returns:
        ValidationOutcome with coerced params and all errors.
    """
    coerced, errors = _validate_fields(capability.parameters, params or {})
    return ValidationOutcome(params=coerced, errors=errors)
