"""
Verify bearer JWTs and turn them into an ``Identity``.

Tokens are HS256-signed with a shared secret and carry two claims the core
relies on: ``sub`` (user id) and ``role``. Signature and lifetime (exp/nbf,
with leeway) are checked before any claim is read; the issuer is checked
when one is configured.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any

import jwt

from poolops.core.identity import Identity, UnknownRoleError, parse_role
from poolops.settings import Settings

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Raised when a bearer token is rejected. Never carries the token itself."""


@dataclass(frozen=True)
class TokenConfig:
    secret: str
    algorithm: str = "HS256"
    issuer: str | None = None
    leeway_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            leeway_seconds=settings.clock_skew_seconds,
        )


def _extract_identity(payload: dict[str, Any]) -> Identity:
    sub = payload.get("sub")
    if sub is None or str(sub).strip() == "":
        raise TokenError("Invalid token: missing subject")

    try:
        role = parse_role(payload.get("role"))
    except UnknownRoleError as e:
        raise TokenError("Invalid token: unknown role") from e

    return Identity(user_id=str(sub), role=role)


class TokenVerifier:
    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    def verify(self, token: str) -> Identity:
        """Validate ``token`` and return the caller's identity, or raise ``TokenError``."""

        options = {"require": ["exp", "sub"], "verify_signature": True, "verify_exp": True, "verify_nbf": True}
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=[self._config.algorithm],
                issuer=self._config.issuer,
                leeway=self._config.leeway_seconds,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise TokenError("Token expired") from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise TokenError("Invalid token: issuer") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise TokenError("Invalid token") from e

        return _extract_identity(payload)


def issue_token(identity: Identity, config: TokenConfig, expires_in: timedelta = timedelta(hours=8)) -> str:
    """Sign a token for ``identity``. Used by seeding scripts and tests."""

    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": identity.user_id,
        "role": identity.role.value,
        "iat": now,
        "exp": now + expires_in,
    }
    if config.issuer:
        claims["iss"] = config.issuer
    return jwt.encode(claims, config.secret, algorithm=config.algorithm)
