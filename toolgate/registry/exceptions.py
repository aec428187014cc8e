"""Registry exceptions."""

from toolgate.auth.exceptions import ErrorKind, ToolGatewayError


class RegistryError(ToolGatewayError):
    """Base exception for registry errors."""
    pass


class DuplicateToolError(RegistryError):
    """Raised when registering a name that already exists and replacement is off."""

    def __init__(self, tool_name: str):
        super().__init__(
            message=f"Tool '{tool_name}' is already registered",
            code="DUPLICATE_TOOL"
        )
        self.tool_name = tool_name


class ToolNotFoundError(RegistryError):
    """Raised when requested tool is not in the registry.

    Attributes:
        tool_name: Name of the tool that was not found.
    """

    kind = ErrorKind.tool_not_found

    def __init__(self, tool_name: str):
        super().__init__(
            message=f"Tool '{tool_name}' not found in registry",
            code="TOOL_NOT_FOUND"
        )
        self.tool_name = tool_name


class ToolDisabledError(RegistryError):
    """Raised when a registered tool is currently disabled."""

    kind = ErrorKind.tool_disabled

    def __init__(self, tool_name: str):
        super().__init__(
            message=f"Tool '{tool_name}' is disabled",
            code="TOOL_DISABLED"
        )
        self.tool_name = tool_name
