from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI

from poolops.db import filters as _filters  # noqa: F401  (register SQLAlchemy scope filters)
from poolops.db.init_db import init_db
from poolops.errors import install_error_handlers
from poolops.logging_config import configure_app_logging
from poolops.routers import accounts, assignments, health, properties, technicians
from poolops.security.config import load_security_config
from poolops.security.dependencies import enforce_security
from poolops.security.rate_limit import LimitsRateLimiter, RateLimiter
from poolops.security.tokens import TokenConfig, TokenVerifier
from poolops.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, rate_limiter: RateLimiter | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        app.state.security_config = load_security_config(settings.resolved_security_config_path())
        logger.info("Loaded security config: %s", settings.resolved_security_config_path())

        app.state.token_verifier = TokenVerifier(TokenConfig.from_settings(settings))
        app.state.rate_limiter = rate_limiter or LimitsRateLimiter(settings.rate_limit, settings.rate_limit_storage_uri)

        init_db(seed=settings.seed_demo_data)
        logger.info("Database initialized (tables ensured, seed=%s)", settings.seed_demo_data)

        yield
        # Shutdown (nothing to clean up)

    # Global dependency: every route is authenticated and scoped without per-route wiring.
    app = FastAPI(title="poolops", dependencies=[Depends(enforce_security)], lifespan=lifespan)
    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(accounts.router)
    app.include_router(assignments.router)
    app.include_router(technicians.router)
    app.include_router(properties.router)

    return app


app = create_app()
