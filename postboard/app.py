"""Application factory wiring settings, storage, repositories and routers."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from postboard.core.config import Settings, get_settings
from postboard.core.errors import RepositoryError
from postboard.core.logging import setup_logging
from postboard.core.rate_limiter import RateLimiter
from postboard.repositories import AccountRepository, JsonStorage, PostRepository
from postboard.routers import accounts as accounts_router
from postboard.routers import posts as posts_router

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}

DEV_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


def _error_body(code: str, message: str, details: object | None = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


def _install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError):
        message = exc.message
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc.message,
                exc_info=exc,
                extra={"error_code": exc.code},
            )
            if settings.is_production:
                message = "Something went wrong"
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, message))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("VALIDATION_ERROR", "Validation Error", details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "%s %s crashed: %s", request.method, request.url.path, exc,
            exc_info=exc,
            extra={"error_code": "INTERNAL_ERROR"},
        )
        message = "Something went wrong" if settings.is_production else "Internal Server Error"
        return JSONResponse(status_code=500, content=_error_body("INTERNAL_ERROR", message))


def create_app(settings: Settings | None = None, storage: JsonStorage | None = None) -> FastAPI:
    """
    Build the API. The store is loaded here: a malformed document raises
    StorageError and the app is never created.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, "json" if settings.is_production else settings.log_format)

    storage = storage or JsonStorage(settings.db_path)
    storage.load()
    logger.info("Store ready at %s", storage.path, extra={"path": str(storage.path)})

    app = FastAPI(title="Postboard API")
    app.state.settings = settings
    app.state.storage = storage
    app.state.accounts = AccountRepository(storage)
    app.state.posts = PostRepository(storage)
    app.state.rate_limiter = RateLimiter()

    allowed_cors = set(settings.cors_origins)
    if not settings.is_production:
        allowed_cors.update(DEV_ORIGINS)
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    _install_error_handlers(app, settings)

    @app.get("/health")
    def health():
        return {"ok": True, "env": settings.app_env}

    app.include_router(accounts_router.router, prefix=settings.api_base_path)
    app.include_router(posts_router.router, prefix=settings.api_base_path)
    return app
