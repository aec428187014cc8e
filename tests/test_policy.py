"""Unit tests for the role policy."""

import yaml

from toolgate.auth.models import UserClaims
from toolgate.auth.policy import PolicyConfig, RolePolicy, identity_from_claims, load_policy

from conftest import REPO_ROOT


POLICY = PolicyConfig(
    roles={
        "support": RolePolicy(
            allowed_tools=["check_order"],
            rate_limit=60,
            tool_rate_limits={"check_order": 10},
        ),
        "billing": RolePolicy(
            allowed_tools=["check_order", "refund_order"],
            rate_limit=120,
            tool_rate_limits={"check_order": 5},
        ),
        "admin": RolePolicy(allowed_tools=["*"]),
    }
)


class TestPolicyLoading:
    """Tests for policy loading from YAML."""

    def test_load_bundled_policy(self):
        policy = load_policy(str(REPO_ROOT / "config" / "policy.yaml"))

        assert "admin" in policy.roles

    def test_load_policy_from_custom_path(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(yaml.dump({"roles": {"test_role": {"allowed_tools": ["tool_a", "tool_b"]}}}))

        policy = load_policy(str(path))

        assert policy.roles["test_role"].allowed_tools == ["tool_a", "tool_b"]

    def test_missing_file_denies_all(self, tmp_path):
        policy = load_policy(str(tmp_path / "missing.yaml"))

        assert policy.roles == {}


class TestIdentityFromClaims:
    """Tests for mapping JWT claims onto a client identity."""

    def test_union_of_role_permissions(self):
        claims = UserClaims(user_id="u1", roles=["support", "billing"])

        identity = identity_from_claims(claims, POLICY)

        assert identity.allowed_tools == frozenset({"check_order", "refund_order"})

    def test_most_generous_budget_wins(self):
        claims = UserClaims(user_id="u1", roles=["support", "billing"])

        identity = identity_from_claims(claims, POLICY)

        assert identity.rate_limit == 120
        assert identity.tool_rate_limits == {"check_order": 10}

    def test_unknown_roles_grant_nothing(self):
        identity = identity_from_claims(UserClaims(user_id="u1", roles=["ghost"]), POLICY)

        assert identity.allowed_tools == frozenset()
        assert not identity.can_use_tool("check_order")

    def test_admin_wildcard(self):
        identity = identity_from_claims(UserClaims(user_id="root", roles=["admin"]), POLICY)

        assert identity.can_use_tool("anything")
        assert identity.is_admin
