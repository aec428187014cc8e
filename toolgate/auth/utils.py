"""JWT helpers for the bearer-token credential store."""

import time
from dataclasses import dataclass
from datetime import datetime, timezone

from jose import JWTError, jwt

from ..config import Settings
from .exceptions import ExpiredTokenError, InvalidTokenError
from .models import UserClaims


@dataclass(frozen=True)
class JWTRules:
    """Verification rules derived from settings.

    Attributes:
        secret: Signing key.
        algorithms: Accepted signing algorithms (never "none").
        issuer: Required ``iss`` value.
        audience: Required ``aud`` value.
        leeway: Clock skew tolerated on ``exp``, ``nbf`` and ``iat``.
        max_age: Longest accepted token age in seconds (0 disables).
        subject_claim: Claim holding the client identifier.
    """

    secret: str
    algorithms: tuple[str, ...]
    issuer: str
    audience: str
    leeway: int = 60
    max_age: int = 3600
    subject_claim: str = "sub"

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTRules":
        """Build rules, failing closed on an unsafe or incomplete configuration."""
        if not settings.JWT_ISSUER or not settings.JWT_AUDIENCE:
            raise InvalidTokenError("JWT issuer/audience not configured")

        algorithms = tuple(
            item.strip().upper()
            for item in settings.JWT_ALLOWED_ALGORITHMS.split(",")
            if item.strip()
        )
        if not algorithms or "NONE" in algorithms:
            raise InvalidTokenError("JWT allowed algorithms misconfigured")
        if settings.JWT_ALGORITHM.upper() not in algorithms:
            raise InvalidTokenError("JWT algorithm not in allowed list")

        return cls(
            secret=settings.JWT_SECRET_KEY,
            algorithms=algorithms,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            leeway=max(0, settings.JWT_CLOCK_SKEW_SECONDS),
            max_age=max(0, settings.JWT_MAX_TOKEN_AGE_MINUTES) * 60,
            subject_claim=settings.JWT_USER_ID_CLAIM,
        )


def _check_age(payload: dict, rules: JWTRules, now: float) -> None:
    if not rules.max_age:
        return
    try:
        issued_at = int(payload["iat"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError("JWT token has a missing or invalid 'iat' claim")
    if now - rules.leeway > issued_at + rules.max_age:
        raise ExpiredTokenError("JWT token too old")


def decode_jwt(token: str, settings: Settings, now: float | None = None) -> dict:
    """Verify a JWT and return its payload.

    Signature, issuer, audience, ``exp`` and ``nbf`` are checked by jose with
    the configured leeway; the maximum token age is checked here.

    Args:
        token: JWT string (without the 'Bearer ' prefix).
        settings: Gateway settings holding the JWT configuration.
        now: Unix time to check against (current time if None).

    Raises:
        InvalidTokenError: If the token is malformed, forged or not yet valid.
        ExpiredTokenError: If the token has expired or is too old.
    """
    rules = JWTRules.from_settings(settings)
    try:
        payload = jwt.decode(
            token,
            rules.secret,
            algorithms=list(rules.algorithms),
            audience=rules.audience,
            issuer=rules.issuer,
            options={
                "require_exp": True,
                "require_iss": True,
                "require_aud": True,
                "require_iat": rules.max_age > 0,
                "leeway": rules.leeway,
            },
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredTokenError("JWT token has expired") from e
    except JWTError as e:
        raise InvalidTokenError(f"Invalid JWT token: {e}") from e

    _check_age(payload, rules, time.time() if now is None else now)
    return payload


def extract_user_claims(token: str, settings: Settings) -> UserClaims:
    """Verify a JWT and map it onto ``UserClaims``.

    Raises:
        InvalidTokenError: If the token is invalid or has no subject.
        ExpiredTokenError: If the token has expired.
    """
    payload = decode_jwt(token, settings)

    subject = payload.get(settings.JWT_USER_ID_CLAIM) or payload.get("client_id")
    if not subject:
        raise InvalidTokenError(f"JWT token missing required '{settings.JWT_USER_ID_CLAIM}' claim")

    try:
        return UserClaims(
            user_id=str(subject),
            email=payload.get("email"),
            roles=payload.get("roles", []),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except (TypeError, ValueError) as e:
        raise InvalidTokenError(f"Failed to parse JWT claims: {e}") from e


def create_test_jwt(
    user_id: str,
    settings: Settings,
    roles: list[str] | None = None,
    expire_minutes: int = 30,
) -> str:
    """Sign a token for local runs and tests. Never used by the gateway itself."""
    issued_at = int(time.time())
    payload = {
        settings.JWT_USER_ID_CLAIM: user_id,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "roles": roles or [],
        "iat": issued_at,
        "exp": issued_at + expire_minutes * 60,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
