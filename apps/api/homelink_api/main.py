"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from starlette.middleware.base import BaseHTTPMiddleware

from homelink_api.auth.router import router as auth_router
from homelink_api.config import settings
from homelink_api.db.capabilities import (
    SchemaCapabilities,
    missing_relation_name,
    suggested_create_statement,
)
from homelink_api.db.database import engine
from homelink_api.errors import (
    AuthenticationError,
    HomeLinkError,
    SchemaMissingError,
    UnexpectedError,
)
from homelink_api.logging_service import (
    get_logger,
    log_with_context,
    setup_logging,
    stop_http_logging,
)
from homelink_api.models.schemas import HealthCheckResponse
from homelink_api.relay.broker import create_broker
from homelink_api.relay.connection import connection_manager
from homelink_api.relay.router import get_broker, router as relay_router
from homelink_api.routers import (
    access_permissions,
    devices,
    home_invites,
    home_members,
    homes,
    rooms,
    users,
)


logger = get_logger(__name__)

API_NAME = "HomeLink API"
API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        environment=settings.environment,
        log_level=settings.log_level,
        logger_endpoint=settings.logger_endpoint,
        enable_logging=settings.enable_logging,
    )
    log_with_context(logger, "INFO", f"Logging initialized ({settings.environment})")

    app.state.schema_capabilities = SchemaCapabilities.probe(engine)

    broker = create_broker(settings)
    broker.start()
    app.state.broker = broker

    yield

    # Shutdown
    broker.close()
    await stop_http_logging()


app = FastAPI(
    title=API_NAME,
    description="Home automation backend with time-windowed room access and an MQTT command relay",
    version=API_VERSION,
    lifespan=lifespan,
)


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    """Log each HTTP request with method, path, status and duration."""

    async def dispatch(self, request: Request, call_next):
        if not settings.enable_logging or request.url.path == "/health":
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code

        level = "INFO" if status_code < 400 else "WARNING" if status_code < 500 else "ERROR"
        log_with_context(
            logger,
            level,
            f"HTTP {request.method} {request.url.path}",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# HTTP Logging Middleware (after CORS)
app.add_middleware(HTTPLoggingMiddleware)


# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(homes.router, prefix="/api/v1")
app.include_router(rooms.router, prefix="/api/v1")
app.include_router(devices.router, prefix="/api/v1")
app.include_router(home_members.router, prefix="/api/v1")
app.include_router(home_invites.router, prefix="/api/v1")
app.include_router(access_permissions.router, prefix="/api/v1")
app.include_router(relay_router, prefix="/api/v1")


def _relation_missing_response(exc: SchemaMissingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error": "relation_missing",
            "relation": exc.relation,
            "suggested_sql": exc.suggested_sql,
        },
    )


def _internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    log_with_context(
        logger,
        "ERROR",
        f"Unhandled exception: {exc.__class__.__name__}",
        exc_info=True,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": UnexpectedError.default_detail},
    )


@app.exception_handler(HomeLinkError)
async def homelink_error_handler(request: Request, exc: HomeLinkError):
    """Map domain errors onto their HTTP status."""
    if isinstance(exc, SchemaMissingError):
        log_with_context(
            logger,
            "ERROR",
            exc.detail,
            method=request.method,
            path=request.url.path,
            relation=exc.relation,
        )
        return _relation_missing_response(exc)

    if exc.status_code >= 500:
        return _internal_error_response(request, exc)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    """Turn "table does not exist" store errors into a remediation payload."""
    relation = missing_relation_name(exc)
    if relation is None:
        return _internal_error_response(request, exc)

    missing = SchemaMissingError(relation, suggested_create_statement(relation, engine))
    log_with_context(
        logger,
        "ERROR",
        missing.detail,
        method=request.method,
        path=request.url.path,
        relation=relation,
    )
    return _relation_missing_response(missing)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    return _internal_error_response(request, exc)


@app.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    capabilities = getattr(request.app.state, "schema_capabilities", None)
    return HealthCheckResponse(
        status="healthy",
        broker_state=get_broker(request).state.value,
        relay_connections=connection_manager.count,
        missing_relations=capabilities.missing if capabilities else [],
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": API_NAME,
        "version": API_VERSION,
        "docs": "/docs",
    }


def main():
    """Main entry point."""
    import uvicorn
    uvicorn.run(
        "homelink_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
