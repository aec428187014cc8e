"""Tool and field declaration models for the registry."""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldType(str, Enum):
    """Primitive types a tool field may declare.

    Attributes:
        string: Text value.
        integer: Whole number (booleans are not integers).
        number: Integer or float.
        boolean: True or False.
        array: List of values.
        object: Mapping of values.
    """

    string = "string"
    integer = "integer"
    number = "number"
    boolean = "boolean"
    array = "array"
    object = "object"


class FieldSpec(BaseModel):
    """Declaration of one input or output field.

    Attributes:
        name: Field name in the payload.
        type: Declared primitive type.
        required: Whether the caller must supply the field.
        default: Value applied when an optional field is missing.
        description: Human-readable description.
        minimum: Inclusive lower bound for numbers.
        maximum: Inclusive upper bound for numbers.
        min_length: Minimum length for strings and arrays.
        max_length: Maximum length for strings and arrays.
        enum: Allowed values.
        pattern: Regular expression a string must match.
        coerce: Allow string values to be converted to the declared type.
    """

    name: str = Field(..., min_length=1)
    type: FieldType = FieldType.string
    required: bool = False
    default: Any = None
    description: str = ""
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    enum: list[Any] | None = None
    pattern: str | None = None
    coerce: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> "FieldSpec":
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(f"field '{self.name}': minimum exceeds maximum")
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(f"field '{self.name}': min_length exceeds max_length")
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"field '{self.name}': invalid pattern: {e}") from e
        return self

    def to_json_schema(self) -> dict[str, Any]:
        """Project this field onto a JSON Schema property."""
        schema: dict[str, Any] = {"type": self.type.value}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.pattern is not None:
            schema["pattern"] = self.pattern
        if self.type == FieldType.array:
            length_keys = ("minItems", "maxItems")
        else:
            length_keys = ("minLength", "maxLength")
        if self.min_length is not None:
            schema[length_keys[0]] = self.min_length
        if self.max_length is not None:
            schema[length_keys[1]] = self.max_length
        return schema


def fields_to_json_schema(fields: list[FieldSpec], closed: bool = True) -> dict[str, Any]:
    """Build an object JSON Schema from an ordered field list."""
    return {
        "type": "object",
        "properties": {field.name: field.to_json_schema() for field in fields},
        "required": [field.name for field in fields if field.required],
        "additionalProperties": not closed,
    }


class Tool(BaseModel):
    """Tool definition held by the registry.

    Instances are immutable; enabling or disabling a tool publishes a new
    copy, so a request that already read a tool keeps a consistent view.

    Attributes:
        name: Unique tool identifier (e.g., "check_order").
        description: Human-readable description of the tool.
        input_fields: Ordered input field declarations.
        output_fields: Output field declarations.
        cost: Rate-limit units one invocation consumes.
        enabled: Whether the tool can be discovered and invoked.
        rate_limit: Default per-client budget per window for this tool.
        backend_url: URL to route tool requests to, for HTTP-backed tools.
        allow_unknown_fields: Per-tool override of the closed-schema policy.
    """

    name: str = Field(..., min_length=1, max_length=100, description="Unique tool identifier")
    description: str = Field(..., description="Human-readable tool description")
    input_fields: list[FieldSpec] = Field(default_factory=list)
    output_fields: list[FieldSpec] = Field(default_factory=list)
    cost: int = Field(default=1, ge=1, description="Budget units per invocation")
    enabled: bool = Field(default=True, description="Whether the tool is available")
    rate_limit: int | None = Field(default=None, ge=1, description="Per-client budget per window")
    backend_url: str | None = Field(default=None, description="URL to route requests to")
    allow_unknown_fields: bool | None = Field(default=None, description="Override closed schema")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _unique_field_names(self) -> "Tool":
        for label, fields in (("input", self.input_fields), ("output", self.output_fields)):
            names = [field.name for field in fields]
            if len(names) != len(set(names)):
                raise ValueError(f"tool '{self.name}' declares duplicate {label} field names")
        return self

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Tool(name='{self.name}', cost={self.cost}, enabled={self.enabled})>"
