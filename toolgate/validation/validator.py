"""Payload validation against a tool's declared input fields.

Validation is pure: it never mutates the payload and always reports every
violation it finds in one pass.

Coercion rules:
    * booleans are never integers or numbers;
    * strings are never converted unless the field sets ``coerce``, in which
      case integer fields accept ``"42"``, number fields accept ``"4.2"``
      and boolean fields accept ``"true"``/``"false"``;
    * a ``null`` value is treated the same as a missing field.
"""

import copy
import json
import math
import re
from functools import lru_cache
from typing import Any

from toolgate.registry.models import FieldSpec, FieldType, Tool

from .exceptions import PAYLOAD_FIELD, FieldViolation, SchemaValidationError


DEFAULT_MAX_PAYLOAD_BYTES = 1024 * 1024  # 1 MB

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

_MISSING = object()


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def validate_payload_size(
    arguments: Any,
    max_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
) -> FieldViolation | None:
    """Check that the serialized payload is within size limits.

    Args:
        arguments: Tool arguments to measure.
        max_bytes: Maximum allowed size in bytes.

    Returns:
        A violation if the payload is too large or not serializable, else None.
    """
    try:
        payload_str = json.dumps(arguments)
    except (TypeError, ValueError):
        return FieldViolation(field=PAYLOAD_FIELD, reason="payload is not JSON-serializable")
    size = len(payload_str.encode("utf-8"))
    if size > max_bytes:
        return FieldViolation(
            field=PAYLOAD_FIELD,
            reason=f"payload size {size} bytes exceeds limit of {max_bytes} bytes",
        )
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce(spec: FieldSpec, value: Any) -> tuple[Any, str | None]:
    """Return the value converted to the declared type, or a reason it cannot be."""
    expected = spec.type

    if expected == FieldType.string:
        if isinstance(value, str):
            return value, None
    elif expected == FieldType.integer:
        if isinstance(value, int) and not isinstance(value, bool):
            return value, None
        if spec.coerce and isinstance(value, str) and _INTEGER_RE.match(value.strip()):
            return int(value.strip()), None
    elif expected == FieldType.number:
        if _is_number(value):
            if isinstance(value, float) and not math.isfinite(value):
                return value, "must be a finite number"
            return value, None
        if spec.coerce and isinstance(value, str) and _NUMBER_RE.match(value.strip()):
            text = value.strip()
            return (int(text) if _INTEGER_RE.match(text) else float(text)), None
    elif expected == FieldType.boolean:
        if isinstance(value, bool):
            return value, None
        if spec.coerce and isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true", None
    elif expected == FieldType.array:
        if isinstance(value, list):
            return value, None
    elif expected == FieldType.object:
        if isinstance(value, dict):
            return value, None

    return value, f"expected {expected.value}, got {type(value).__name__}"


def _constraint_reasons(spec: FieldSpec, value: Any) -> list[str]:
    reasons: list[str] = []

    if spec.enum is not None and value not in spec.enum:
        allowed = ", ".join(repr(item) for item in spec.enum)
        reasons.append(f"must be one of {allowed}")

    if _is_number(value):
        if spec.minimum is not None and value < spec.minimum:
            reasons.append(f"must be >= {spec.minimum:g}")
        if spec.maximum is not None and value > spec.maximum:
            reasons.append(f"must be <= {spec.maximum:g}")

    if isinstance(value, (str, list)):
        unit = "characters" if isinstance(value, str) else "items"
        if spec.min_length is not None and len(value) < spec.min_length:
            reasons.append(f"must have at least {spec.min_length} {unit}")
        if spec.max_length is not None and len(value) > spec.max_length:
            reasons.append(f"must have at most {spec.max_length} {unit}")

    if spec.pattern is not None and isinstance(value, str):
        if not _compiled(spec.pattern).search(value):
            reasons.append(f"must match pattern {spec.pattern!r}")

    return reasons


def check_fields(
    fields: list[FieldSpec],
    payload: Any,
    closed: bool = True,
) -> tuple[dict[str, Any], list[FieldViolation]]:
    """Validate a payload against a field list.

    Args:
        fields: Declared fields, in order.
        payload: Raw payload.
        closed: Reject fields that are not declared.

    Returns:
        Tuple of (validated values, violations). The values are only
        meaningful when the violation list is empty.
    """
    if not isinstance(payload, dict):
        return {}, [FieldViolation(field=PAYLOAD_FIELD, reason="payload must be an object")]

    validated: dict[str, Any] = {}
    violations: list[FieldViolation] = []

    for spec in fields:
        value = payload.get(spec.name, _MISSING)
        if value is _MISSING or value is None:
            if spec.required:
                violations.append(FieldViolation(field=spec.name, reason="is required"))
                continue
            if spec.default is None:
                continue
            value = copy.deepcopy(spec.default)

        value, type_reason = _coerce(spec, value)
        if type_reason is not None:
            violations.append(FieldViolation(field=spec.name, reason=type_reason))
            continue

        reasons = _constraint_reasons(spec, value)
        if reasons:
            violations.extend(FieldViolation(field=spec.name, reason=r) for r in reasons)
            continue

        validated[spec.name] = value

    declared = {spec.name for spec in fields}
    for name, value in payload.items():
        if name in declared:
            continue
        if closed:
            violations.append(FieldViolation(field=str(name), reason="unknown field"))
        else:
            validated[name] = value

    return validated, violations


class SchemaValidator:
    """Validates tool payloads against declared input fields.

    Attributes:
        closed_by_default: Reject undeclared fields unless a tool opts out.
        max_payload_bytes: Largest accepted serialized payload.
    """

    def __init__(
        self,
        closed_by_default: bool = True,
        max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
    ):
        self.closed_by_default = closed_by_default
        self.max_payload_bytes = max_payload_bytes

    def is_closed(self, tool: Tool) -> bool:
        if tool.allow_unknown_fields is None:
            return self.closed_by_default
        return not tool.allow_unknown_fields

    def check(
        self,
        tool: Tool,
        payload: Any,
        closed: bool | None = None,
    ) -> tuple[dict[str, Any], list[FieldViolation]]:
        """Validate without raising. See ``validate``."""
        size_violation = validate_payload_size(payload, self.max_payload_bytes)
        if size_violation is not None:
            return {}, [size_violation]
        if closed is None:
            closed = self.is_closed(tool)
        return check_fields(tool.input_fields, payload, closed=closed)

    def validate(
        self,
        tool: Tool,
        payload: Any,
        closed: bool | None = None,
    ) -> dict[str, Any]:
        """Validate a raw payload against a tool's input schema.

        Args:
            tool: Tool whose input fields apply.
            payload: Raw payload from the caller.
            closed: Override the closed-schema policy for this call.

        Returns:
            The validated input with defaults applied.

        Raises:
            SchemaValidationError: With the complete list of violations.
        """
        validated, violations = self.check(tool, payload, closed=closed)
        if violations:
            raise SchemaValidationError(tool.name, violations)
        return validated

    def check_output(self, tool: Tool, output: Any) -> list[FieldViolation]:
        """Check executor output against declared output fields (open schema)."""
        if not tool.output_fields:
            return []
        if not isinstance(output, dict):
            return [FieldViolation(field=PAYLOAD_FIELD, reason="output must be an object")]
        _, violations = check_fields(tool.output_fields, output, closed=False)
        return violations
