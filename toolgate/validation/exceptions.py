"""Validation exceptions."""

from pydantic import BaseModel, Field

from toolgate.auth.exceptions import ErrorKind, ToolGatewayError


PAYLOAD_FIELD = "$"


class FieldViolation(BaseModel):
    """One problem found in a payload.

    Attributes:
        field: Offending field name, or "$" for the payload as a whole.
        reason: Human-readable description.
    """

    field: str = Field(..., description="Field name or '$' for the whole payload")
    reason: str = Field(..., description="What is wrong with the field")


class SchemaValidationError(ToolGatewayError):
    """Raised when a payload violates a tool's input schema.

    Attributes:
        tool_name: Tool whose schema was violated.
        violations: Every violation found, never empty.
    """

    kind = ErrorKind.validation_error

    def __init__(self, tool_name: str, violations: list[FieldViolation]):
        if not violations:
            raise ValueError("SchemaValidationError requires at least one violation")
        fields = ", ".join(v.field for v in violations)
        super().__init__(
            message=f"Invalid input for tool '{tool_name}': {fields}",
            code="VALIDATION_ERROR"
        )
        self.tool_name = tool_name
        self.violations = violations
