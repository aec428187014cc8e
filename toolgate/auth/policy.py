"""Role policy mapping token roles to tool permissions and budgets."""

from pathlib import Path
from functools import lru_cache
import yaml

from pydantic import BaseModel, Field

from .models import ClientIdentity, UserClaims, WILDCARD


class RolePolicy(BaseModel):
    """What one role grants.

    Attributes:
        allowed_tools: Tool names, or ["*"] for all tools.
        rate_limit: Global requests per window.
        tool_rate_limits: Per-tool budget overrides.
    """

    allowed_tools: list[str] = Field(default_factory=list)
    rate_limit: int | None = Field(default=None, ge=1)
    tool_rate_limits: dict[str, int] = Field(default_factory=dict)


class PolicyConfig(BaseModel):
    """Configuration loaded from policy.yaml."""

    roles: dict[str, RolePolicy] = Field(default_factory=dict)


@lru_cache()
def load_policy(policy_path: str | None = None) -> PolicyConfig:
    """Load role policy from YAML file.

    Args:
        policy_path: Path to policy.yaml file. If None, uses default location.

    Returns:
        PolicyConfig object with parsed policy rules.
    """
    if policy_path is None:
        # Default to config/policy.yaml relative to project root
        policy_path = Path(__file__).parent.parent.parent / "config" / "policy.yaml"
    else:
        policy_path = Path(policy_path)

    if not policy_path.exists():
        # Deny-all policy if file doesn't exist
        return PolicyConfig()

    with open(policy_path, "r") as f:
        data = yaml.safe_load(f) or {}

    return PolicyConfig(**data)


def identity_from_claims(claims: UserClaims, policy: PolicyConfig) -> ClientIdentity:
    """Build a client identity from JWT claims.

    Permissions are the union over the client's roles. Where several roles
    set a budget, the most generous one applies.

    Args:
        claims: User claims from JWT token.
        policy: Role policy.

    Returns:
        ClientIdentity for the token's subject.
    """
    allowed_tools: set[str] = set()
    rate_limit: int | None = None
    tool_rate_limits: dict[str, int] = {}

    for role in claims.roles:
        role_policy = policy.roles.get(role)
        if role_policy is None:
            continue

        if WILDCARD in role_policy.allowed_tools:
            allowed_tools.add(WILDCARD)
        else:
            allowed_tools.update(role_policy.allowed_tools)

        if role_policy.rate_limit is not None:
            rate_limit = max(rate_limit or 0, role_policy.rate_limit)
        for tool_name, budget in role_policy.tool_rate_limits.items():
            tool_rate_limits[tool_name] = max(tool_rate_limits.get(tool_name, 0), budget)

    return ClientIdentity(
        client_id=claims.user_id,
        allowed_tools=frozenset(allowed_tools),
        rate_limit=rate_limit,
        tool_rate_limits=tool_rate_limits,
        roles=list(claims.roles),
        expires_at=claims.expires_at,
    )
