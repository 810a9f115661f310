"""FastAPI application entrypoint. No business logic; only wiring, middleware and error translation."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import router as v1_router
from app.core.config import Settings, get_settings
from app.core.context import AppContext
from app.core.errors import AppError, InternalError, ValidationError
from app.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

# Any localhost port is accepted in dev in addition to ALLOWED_ORIGINS.
DEV_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1)(:\d+)?"


def _error_body(label: str, message: str, details: list | None = None) -> dict:
    body: dict = {"error": label, "message": message}
    if details is not None:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.cause or exc,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.label, exc.message),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=jsonable_encoder(_error_body(ValidationError.label, "Validation failed", details)),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route {request.method}:{request.url.path} not found"
        return JSONResponse(status_code=404, content=_error_body("Not Found", message))
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(InternalError.label, InternalError.default_message),
    )


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """
    Build the application. The context (settings + storage backend) is created
    here without I/O; the lifespan starts and stops it.
    """
    if context is None:
        context = AppContext(settings or get_settings())
    settings = context.settings
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        context.startup()
        try:
            yield
        finally:
            context.shutdown()

    app = FastAPI(
        title="Blog RBAC API",
        description="Blog API with role-based access control (READER, WRITER, ADMIN) and JWT authentication",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_origin_regex=DEV_ORIGIN_REGEX if settings.APP_ENV == "dev" else None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Blog RBAC API", "docs": "/docs"}

    return app


app = create_app()
