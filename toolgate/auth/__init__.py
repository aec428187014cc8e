"""Auth module initialization."""

from .exceptions import (
    ErrorKind,
    ToolGatewayError,
    InternalError,
    AuthenticationError,
    UnauthorizedError,
    CredentialError,
    InvalidTokenError,
    ExpiredTokenError,
    RevokedCredentialError,
    UnknownCredentialError,
    AuthorizationError,
    ToolNotAllowedError,
)
from .models import WILDCARD, CredentialState, UserClaims, ClientIdentity
from .utils import decode_jwt, extract_user_claims, create_test_jwt
from .policy import RolePolicy, PolicyConfig, load_policy, identity_from_claims
from .store import (
    CredentialStore,
    ClientConfig,
    StaticCredentialStore,
    JWTCredentialStore,
    ChainedCredentialStore,
    build_credential_store,
    credential_digest,
    load_clients,
)
from .gate import AuthGate, is_well_formed

__all__ = [
    # Exceptions
    "ErrorKind",
    "ToolGatewayError",
    "InternalError",
    "AuthenticationError",
    "UnauthorizedError",
    "CredentialError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "RevokedCredentialError",
    "UnknownCredentialError",
    "AuthorizationError",
    "ToolNotAllowedError",
    # Models
    "WILDCARD",
    "CredentialState",
    "UserClaims",
    "ClientIdentity",
    # Utils
    "decode_jwt",
    "extract_user_claims",
    "create_test_jwt",
    # Policy
    "RolePolicy",
    "PolicyConfig",
    "load_policy",
    "identity_from_claims",
    # Stores
    "CredentialStore",
    "ClientConfig",
    "StaticCredentialStore",
    "JWTCredentialStore",
    "ChainedCredentialStore",
    "build_credential_store",
    "credential_digest",
    "load_clients",
    # Gate
    "AuthGate",
    "is_well_formed",
]
