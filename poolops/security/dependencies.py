from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from poolops.db.session import get_db
from poolops.errors import RateLimitedError
from poolops.models.accounts import User
from poolops.security.auth import authenticate, extract_bearer_token, load_region, load_user
from poolops.security.config import SecurityConfig
from poolops.security.context import AuthzContext
from poolops.security.rate_limit import RateLimiter
from poolops.security.tokens import TokenVerifier

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_token_verifier(request: Request) -> TokenVerifier:
    verifier = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        raise RuntimeError("Token verifier not configured. Did app startup run?")
    return verifier


def get_rate_limiter(request: Request) -> RateLimiter | None:
    return getattr(request.app.state, "rate_limiter", None)


def get_current_user(request: Request) -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_authz(request: Request) -> AuthzContext:
    authz = getattr(request.state, "authz", None)
    if authz is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return authz


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    verifier: TokenVerifier = Depends(get_token_verifier),
    limiter: RateLimiter | None = Depends(get_rate_limiter),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency (configuration-driven).

    Authenticates the caller, applies the route's role and rate-limit rules,
    and leaves an `AuthzContext` on `request.state` for the data layer and the
    authorization core. Runs before every route handler.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)
    if not rule.auth_required:
        return

    token = extract_bearer_token(request, config)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    identity = authenticate(token, verifier)
    user = load_user(db, identity)
    request.state.user = user

    if rule.required_roles and identity.role not in rule.required_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient role. Required one of: {sorted(r.value for r in rule.required_roles)}",
        )

    if rule.rate_limited and limiter is not None:
        result = limiter.hit(f"user:{identity.user_id}")
        if not result.allowed:
            raise RateLimitedError(result.retry_after_seconds or 1)

    request.state.authz = AuthzContext(identity=identity, region=load_region(db, identity.user_id))
