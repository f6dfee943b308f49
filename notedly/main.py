import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_configured_providers, get_cors_settings, is_metrics_enabled
from .db import init_db
from .errors import register_error_handlers
from .observability.logging import bind_request_id, bind_user_id, setup_logging
from .observability.metrics import metrics_endpoint, request_metrics_middleware
from .observability.sentry import init_sentry
from .routers import boards, notes, oauth, status, users


logger = logging.getLogger(__name__)


def log_configured_providers() -> None:
    providers = sorted(get_configured_providers())
    if providers:
        logger.info("OAuth providers configured: %s", ", ".join(providers))
    else:
        logger.warning("No OAuth provider is configured; nobody will be able to log in")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log_configured_providers()
    yield


def create_app() -> FastAPI:
    tags_metadata = [
        {"name": "status", "description": "Service and database health"},
        {"name": "users", "description": "Account lookups"},
        {"name": "boards", "description": "Boards and their collaborator grants"},
        {"name": "notes", "description": "Notes on boards"},
        {"name": "oauth", "description": "Login through an external identity provider"},
    ]
    app = FastAPI(
        title="Notedly API",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )

    register_error_handlers(app)
    setup_logging()
    init_sentry(app)

    cors = get_cors_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
    )
    # Metrics middleware
    app.middleware("http")(request_metrics_middleware)

    # Request ID binder
    @app.middleware("http")
    async def add_request_id(request, call_next):
        rid = bind_request_id(request.headers.get("X-Request-Id"))
        bind_user_id(None)
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response

    # Routers
    app.include_router(status.router)
    app.include_router(users.router)
    app.include_router(boards.router)
    app.include_router(notes.router)
    app.include_router(oauth.router)
    # Prometheus metrics
    if is_metrics_enabled():
        app.add_api_route("/metrics", metrics_endpoint, include_in_schema=False)

    return app


app = create_app()
