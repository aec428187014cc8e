"""Credential stores resolving credentials to client identities.

A store answers one question: which client does this credential belong to?
It returns ``None`` for credentials it does not recognise. Stores that can
tell *why* a credential is bad (for example an expired JWT) raise a
``CredentialError`` subclass instead, so the reason can be logged.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from ..config import Settings
from .exceptions import CredentialError
from .models import ClientIdentity
from .policy import PolicyConfig, identity_from_claims, load_policy
from .utils import extract_user_claims


def credential_digest(credential: str) -> str:
    """SHA-256 hex digest of a credential."""
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


class CredentialStore(ABC):
    """Lookup contract for credentials."""

    @abstractmethod
    async def lookup(self, credential: str) -> ClientIdentity | None:
        """Resolve a credential, or return None if it is not known."""


class ClientConfig(BaseModel):
    """One API-key client from clients.yaml.

    Either ``api_key`` or ``api_key_sha256`` must be set. Only the digest is
    kept in memory.
    """

    client_id: str
    api_key: str | None = None
    api_key_sha256: str | None = None
    allowed_tools: list[str] = Field(default_factory=list)
    rate_limit: int | None = Field(default=None, ge=1)
    tool_rate_limits: dict[str, int] = Field(default_factory=dict)
    roles: list[str] = Field(default_factory=list)
    expires_at: datetime | None = None
    revoked: bool = False

    @model_validator(mode="after")
    def _has_key(self) -> "ClientConfig":
        if not self.api_key and not self.api_key_sha256:
            raise ValueError(f"client '{self.client_id}' needs api_key or api_key_sha256")
        return self

    @property
    def digest(self) -> str:
        if self.api_key_sha256:
            return self.api_key_sha256.lower()
        return credential_digest(self.api_key)

    def to_identity(self) -> ClientIdentity:
        return ClientIdentity(
            client_id=self.client_id,
            allowed_tools=frozenset(self.allowed_tools),
            rate_limit=self.rate_limit,
            tool_rate_limits=dict(self.tool_rate_limits),
            roles=list(self.roles),
            expires_at=self.expires_at,
            revoked=self.revoked,
        )


class ClientRegistryConfig(BaseModel):
    """Container for API-key clients."""

    clients: list[ClientConfig] = Field(default_factory=list)


def load_clients(config_path: str | None = None) -> ClientRegistryConfig:
    """Load API-key clients from YAML.

    Args:
        config_path: Optional custom path for the clients config.

    Returns:
        Parsed ClientRegistryConfig, or an empty config if the file is missing.
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "clients.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        return ClientRegistryConfig()

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    return ClientRegistryConfig(**data)


class StaticCredentialStore(CredentialStore):
    """API keys held in memory as SHA-256 digests."""

    def __init__(self, clients: list[ClientConfig] | None = None):
        self._identities: dict[str, ClientIdentity] = {}
        for client in clients or []:
            self.add(client)

    @classmethod
    def from_config(cls, config_path: str | None = None) -> "StaticCredentialStore":
        return cls(load_clients(config_path).clients)

    def add(self, client: ClientConfig) -> None:
        digest = client.digest
        if digest in self._identities:
            raise ValueError(f"duplicate api key for client '{client.client_id}'")
        self._identities[digest] = client.to_identity()

    async def lookup(self, credential: str) -> ClientIdentity | None:
        digest = credential_digest(credential)
        match = None
        # Constant-time over every entry.
        for known, identity in self._identities.items():
            if hmac.compare_digest(known, digest):
                match = identity
        return match


class JWTCredentialStore(CredentialStore):
    """Bearer JWTs verified with the configured key, mapped through the role policy."""

    def __init__(self, settings: Settings, policy: PolicyConfig | None = None):
        self.settings = settings
        self.policy = policy if policy is not None else load_policy(settings.POLICY_PATH)

    @staticmethod
    def looks_like_jwt(credential: str) -> bool:
        return credential.count(".") == 2

    async def lookup(self, credential: str) -> ClientIdentity | None:
        if not self.looks_like_jwt(credential):
            return None
        claims = extract_user_claims(credential, self.settings)
        return identity_from_claims(claims, self.policy)


class ChainedCredentialStore(CredentialStore):
    """Asks each store in turn; the first one that resolves the credential wins.

    A ``CredentialError`` from a store is remembered and re-raised only if no
    later store resolves the credential.
    """

    def __init__(self, stores: list[CredentialStore]):
        self.stores = list(stores)

    async def lookup(self, credential: str) -> ClientIdentity | None:
        failure: CredentialError | None = None
        for store in self.stores:
            try:
                identity = await store.lookup(credential)
            except CredentialError as e:
                failure = failure or e
                continue
            if identity is not None:
                return identity
        if failure is not None:
            raise failure
        return None


def build_credential_store(settings: Settings) -> CredentialStore:
    """Assemble the credential store described by the settings."""
    stores: list[CredentialStore] = [StaticCredentialStore.from_config(settings.CLIENTS_CONFIG_PATH)]
    if settings.JWT_ENABLED:
        stores.append(JWTCredentialStore(settings))
    if len(stores) == 1:
        return stores[0]
    return ChainedCredentialStore(stores)
