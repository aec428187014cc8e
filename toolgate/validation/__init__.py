"""Validation module - Tool input schema checks."""

from .exceptions import PAYLOAD_FIELD, FieldViolation, SchemaValidationError
from .validator import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    SchemaValidator,
    check_fields,
    validate_payload_size,
)


__all__ = [
    "PAYLOAD_FIELD",
    "FieldViolation",
    "SchemaValidationError",
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "SchemaValidator",
    "check_fields",
    "validate_payload_size",
]
