"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other.

API tests get their own in-memory database (shared across threads with
``StaticPool``), an app built without running startup, and helpers to mint
bearer tokens for the seeded roster.
"""
from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from poolops.core.identity import Identity, Role
from poolops.core.resources import AssignmentStatus, Region
from poolops.security.context import AuthzContext


TEST_DB_URL = "sqlite:///:memory:"
TEST_JWT_SECRET = "x" * 32


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    import poolops.db.filters  # noqa: F401  (register scope filters)
    from poolops.db.base import Base
    from poolops.models import accounts, field  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    Use this in tests that need a database (e.g. data layer tests). The
    transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


def seed_roster(db: Session) -> SimpleNamespace:
    """
    Two supervised teams, an unassigned technician, a repair user and an admin,
    plus one property per region and one assignment per technician.

    Returns the ids, since committed ORM objects expire.
    """
    from poolops.models.accounts import TechnicianProfile, User
    from poolops.models.field import Assignment, Property

    admin = User(email="admin@example.com", role=Role.ADMIN)
    s1 = User(email="s1@example.com", role=Role.SUPERVISOR)
    s2 = User(email="s2@example.com", role=Role.SUPERVISOR)
    t1 = User(email="t1@example.com", role=Role.TECH)
    t2 = User(email="t2@example.com", role=Role.TECH)
    free = User(email="free@example.com", role=Role.TECH)
    repair = User(email="repair@example.com", role=Role.REPAIR)
    db.add_all([admin, s1, s2, t1, t2, free, repair])
    db.flush()

    db.add_all(
        [
            TechnicianProfile(user_id=s1.id, region=Region.NORTH, name="S1"),
            TechnicianProfile(user_id=s2.id, region=Region.SOUTH, name="S2"),
            TechnicianProfile(user_id=t1.id, supervisor_id=s1.id, name="T1"),
            TechnicianProfile(user_id=t2.id, supervisor_id=s2.id, name="T2"),
            TechnicianProfile(user_id=free.id, name="Free"),
            TechnicianProfile(user_id=repair.id, name="Repair"),
        ]
    )

    north = Property(name="North Pool", address="1 North St", region=Region.NORTH)
    south = Property(name="South Pool", address="1 South St", region=Region.SOUTH)
    mid = Property(name="Mid Pool", address="1 Mid St", region=Region.MID)
    db.add_all([north, south, mid])
    db.flush()

    when = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)
    a1 = Assignment(property_id=mid.id, technician_id=t1.id, scheduled_date=when)
    a2 = Assignment(property_id=south.id, technician_id=t2.id, scheduled_date=when)
    a_repair = Assignment(property_id=north.id, technician_id=repair.id, scheduled_date=when)
    a_cancelled = Assignment(
        property_id=mid.id,
        technician_id=t1.id,
        scheduled_date=when,
        status=AssignmentStatus.CANCELLED,
        canceled_at=when,
        canceled_reason="client away",
    )
    db.add_all([a1, a2, a_repair, a_cancelled])
    db.flush()

    ids = SimpleNamespace(
        admin=admin.id,
        s1=s1.id,
        s2=s2.id,
        t1=t1.id,
        t2=t2.id,
        free=free.id,
        repair=repair.id,
        north=north.id,
        south=south.id,
        mid=mid.id,
        a1=a1.id,
        a2=a2.id,
        a_repair=a_repair.id,
        a_cancelled=a_cancelled.id,
    )
    db.commit()
    return ids


_ROLES = {
    "admin": Role.ADMIN,
    "s1": Role.SUPERVISOR,
    "s2": Role.SUPERVISOR,
    "t1": Role.TECH,
    "t2": Role.TECH,
    "free": Role.TECH,
    "repair": Role.REPAIR,
}

_REGIONS = {"s1": Region.NORTH, "s2": Region.SOUTH}


@pytest.fixture
def roster(db_session):
    return seed_roster(db_session)


@pytest.fixture
def authz_for(roster):
    """Build the AuthzContext the security dependency would attach for a roster member."""

    def _authz(name: str) -> AuthzContext:
        return AuthzContext(
            identity=Identity(user_id=getattr(roster, name), role=_ROLES[name]),
            region=_REGIONS.get(name),
        )

    return _authz


# ---- API ----------------------------------------------------------------------------


@pytest.fixture
def api_engine():
    import poolops.db.filters  # noqa: F401
    from poolops.db.base import Base
    from poolops.models import accounts, field  # noqa: F401

    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def api_sessionmaker(api_engine):
    return sessionmaker(bind=api_engine, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture
def api_roster(api_sessionmaker):
    with api_sessionmaker() as db:
        return seed_roster(db)


@pytest.fixture
def settings():
    from poolops.settings import Settings

    return Settings(jwt_secret=TEST_JWT_SECRET, seed_demo_data=False, rate_limit="1000/minute")


@pytest.fixture
def rate_limiter(settings):
    from poolops.security.rate_limit import LimitsRateLimiter

    return LimitsRateLimiter(settings.rate_limit)


@pytest.fixture
def app(settings, api_sessionmaker, rate_limiter):
    """
    App with state wired directly (startup is not run, so the on-disk
    database is never touched).
    """
    from poolops.db.session import get_db
    from poolops.main import create_app
    from poolops.security.config import load_security_config
    from poolops.security.tokens import TokenConfig, TokenVerifier

    application = create_app(settings=settings, rate_limiter=rate_limiter)
    application.state.security_config = load_security_config(settings.resolved_security_config_path())
    application.state.token_verifier = TokenVerifier(TokenConfig.from_settings(settings))
    application.state.rate_limiter = rate_limiter

    def _get_test_db(request: Request):
        db = api_sessionmaker()
        authz = getattr(request.state, "authz", None)
        if authz is not None:
            db.info["authz"] = authz
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(api_roster, settings):
    """Return a function building `Authorization` headers for a roster member."""
    from poolops.security.tokens import TokenConfig, issue_token

    config = TokenConfig.from_settings(settings)

    def _headers(name: str) -> dict[str, str]:
        identity = Identity(user_id=getattr(api_roster, name), role=_ROLES[name])
        return {"Authorization": f"Bearer {issue_token(identity, config)}"}

    return _headers
