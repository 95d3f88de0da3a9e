"""Tests for bearer token verification and identity extraction."""
from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from poolops.core.identity import Identity, Role
from poolops.security.tokens import TokenConfig, TokenError, TokenVerifier, _extract_identity, issue_token


CONFIG = TokenConfig(secret="x" * 32, leeway_seconds=0)


def test_extract_identity():
    identity = _extract_identity({"sub": "user-1", "role": "Supervisor"})
    assert identity == Identity(user_id="user-1", role=Role.SUPERVISOR)


def test_extract_identity_unknown_role():
    with pytest.raises(TokenError):
        _extract_identity({"sub": "user-1", "role": "janitor"})


def test_extract_identity_missing_subject():
    with pytest.raises(TokenError):
        _extract_identity({"sub": " ", "role": "tech"})


def test_issued_token_roundtrip():
    identity = Identity(user_id="user-1", role=Role.TECH)
    token = issue_token(identity, CONFIG)

    assert TokenVerifier(CONFIG).verify(token) == identity


def test_invalid_token_raises():
    with pytest.raises(TokenError):
        TokenVerifier(CONFIG).verify("not-a-jwt")


def test_wrong_secret_raises():
    token = issue_token(Identity(user_id="u", role=Role.ADMIN), TokenConfig(secret="y" * 32))
    with pytest.raises(TokenError):
        TokenVerifier(CONFIG).verify(token)


def test_expired_token_raises():
    token = issue_token(Identity(user_id="u", role=Role.TECH), CONFIG, expires_in=timedelta(seconds=-60))
    with pytest.raises(TokenError) as exc_info:
        TokenVerifier(CONFIG).verify(token)
    assert str(exc_info.value) == "Token expired"


def test_issuer_is_checked_when_configured():
    config = TokenConfig(secret="x" * 32, issuer="https://auth.poolops.example")
    token = issue_token(Identity(user_id="u", role=Role.TECH), TokenConfig(secret="x" * 32, issuer="someone-else"))

    with pytest.raises(TokenError):
        TokenVerifier(config).verify(token)


def test_token_without_exp_is_rejected():
    token = jwt.encode({"sub": "u", "role": "tech"}, "x" * 32, algorithm="HS256")
    with pytest.raises(TokenError):
        TokenVerifier(CONFIG).verify(token)
