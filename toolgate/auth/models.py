"""Pydantic models for authentication and client identity."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, ConfigDict, field_validator


WILDCARD = "*"


class CredentialState(str, Enum):
    """Outcome of checking a credential. Only ``valid`` lets a call through."""

    valid = "valid"
    expired = "expired"
    revoked = "revoked"
    malformed = "malformed"
    unknown = "unknown"


class UserClaims(BaseModel):
    """JWT claims extracted from the token.

    Attributes:
        user_id: Unique identifier for the user.
        email: User's email address (optional).
        roles: List of roles assigned to the user.
        expires_at: When the token stops being valid.
    """

    user_id: str = Field(..., description="Unique user identifier")
    email: str | None = Field(None, description="User email address")
    roles: list[str] = Field(default_factory=list, description="User roles")
    expires_at: datetime | None = Field(None, description="Token expiry")

    # Allow extra fields from JWT without raising validation errors
    model_config = ConfigDict(extra="allow")


class ClientIdentity(BaseModel):
    """A caller resolved from a validated credential.

    Attributes:
        client_id: Stable client identifier.
        allowed_tools: Tool names this client may see and invoke ("*" = all).
        rate_limit: Global requests per window (None = gateway default).
        tool_rate_limits: Per-tool budget overrides.
        roles: Roles used for admin checks.
        expires_at: When the credential stops being valid (None = no expiry).
        revoked: Whether the credential was explicitly invalidated.
    """

    client_id: str = Field(..., min_length=1, description="Client identifier")
    allowed_tools: frozenset[str] = Field(default_factory=frozenset, description="Permitted tools")
    rate_limit: int | None = Field(default=None, ge=1, description="Global budget per window")
    tool_rate_limits: dict[str, int] = Field(default_factory=dict, description="Per-tool budgets")
    roles: list[str] = Field(default_factory=list, description="Client roles")
    expires_at: datetime | None = Field(default=None, description="Credential expiry")
    revoked: bool = Field(default=False, description="Credential revoked")

    model_config = ConfigDict(frozen=True)

    @field_validator("expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def can_use_tool(self, tool_name: str) -> bool:
        """Check if the client has permission to see or invoke a tool.

        Discovery and invocation both go through this predicate.

        Args:
            tool_name: Name of the tool to check.

        Returns:
            True if the client can use the tool, False otherwise.
        """
        return WILDCARD in self.allowed_tools or tool_name in self.allowed_tools

    def budget_for_tool(self, tool_name: str) -> int | None:
        return self.tool_rate_limits.get(tool_name)

    def credential_state(self, now: datetime | None = None) -> CredentialState:
        """Classify the credential this identity was resolved from."""
        if self.revoked:
            return CredentialState.revoked
        if self.expires_at is not None:
            now = now or datetime.now(timezone.utc)
            if now >= self.expires_at:
                return CredentialState.expired
        return CredentialState.valid
