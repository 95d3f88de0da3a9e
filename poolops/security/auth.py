from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from poolops.core.identity import Identity
from poolops.core.resources import Region
from poolops.models.accounts import TechnicianProfile, User
from poolops.security.config import SecurityConfig
from poolops.security.tokens import TokenError, TokenVerifier

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request, config: SecurityConfig) -> str | None:
    """
    Read `Authorization: Bearer <token>`.

    Returns None when the header is absent; raises 400 when it is malformed.
    """

    header_name = config.auth.authorization_header
    bearer_prefix = config.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header (auth required) path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )
    return token


def authenticate(token: str, verifier: TokenVerifier) -> Identity:
    try:
        return verifier.verify(token)
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def load_user(db: Session, identity: Identity) -> User:
    user = db.execute(select(User).where(User.id == identity.user_id)).scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    if user.role != identity.role:
        # Role changed since the token was issued; make the caller sign in again.
        logger.info("Token role mismatch user=%s token_role=%s", user.id, identity.role.value)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credential is out of date")

    return user


def load_region(db: Session, user_id: str) -> Region | None:
    """The caller's own profile region, if they have a profile."""

    return db.execute(select(TechnicianProfile.region).where(TechnicianProfile.user_id == user_id)).scalar_one_or_none()
