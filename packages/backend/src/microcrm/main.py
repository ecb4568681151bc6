"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The app-wide collaborators (password hasher, token service,
settings) are built here exactly once and parked on app.state; route
dependencies read them from there and build per-request services around
the request's database session. No DI container, no globals in services.

Lifespan manages startup/shutdown. Middleware, CORS, exception handlers
and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from microcrm import __version__
from microcrm.api import api_router
from microcrm.auth.jwt import TokenService
from microcrm.auth.password import PasswordHasher
from microcrm.config import Settings, settings as default_settings
from microcrm.db.engine import build_engine, build_session_factory
from microcrm.errors import CrmError, Unauthorized
from microcrm.logging_setup import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    cfg: Settings = app.state.settings
    logger.info(
        "microcrm.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
    )

    yield

    logger.info("microcrm.shutdown")

    await app.state.db_engine.dispose()


async def handle_crm_error(request: Request, exc: CrmError) -> JSONResponse:
    """Render a domain error as {"detail": ...} with its status code.

    Only the error's fixed public message (or the service-supplied message
    for NotFound-style errors) is sent; token failure details never are.
    """
    if isinstance(exc, Unauthorized):
        detail = exc.public_message
        headers = {"WWW-Authenticate": "Bearer"}
    else:
        detail = str(exc)
        headers = None

    log = logger.warning if exc.status_code >= 500 else logger.info
    log(
        "http.error",
        method=request.method,
        path=request.url.path,
        status=exc.status_code,
        error=type(exc).__name__,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=headers,
    )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    cfg = app_settings or default_settings
    configure_logging(cfg.log_level, json=cfg.log_json)

    app = FastAPI(
        title="MicroCRM",
        description="Multi-tenant client records behind JWT authentication",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.db_engine = build_engine(cfg.database_url, echo=cfg.debug)
    app.state.session_factory = build_session_factory(app.state.db_engine)
    app.state.password_hasher = PasswordHasher(rounds=cfg.bcrypt_rounds)
    app.state.token_service = TokenService(
        secret=cfg.jwt_secret,
        algorithm=cfg.jwt_algorithm,
        expires_minutes=cfg.access_token_expire_minutes,
    )

    app.add_exception_handler(CrmError, handle_crm_error)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler

    from microcrm.middleware.request_id import RequestIdMiddleware
    from microcrm.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: microcrm.main:app)
app = create_app()
