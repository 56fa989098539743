# src/seedkey_backend/main.py
"""Main entry point for the SeedKey authentication backend."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from seedkey_backend.api.v1 import seedkey_router, system_router
from seedkey_backend.core.errors import ERROR_CODES, InternalError, SeedKeyError
from seedkey_backend.core.security import Ed25519SignatureVerifier, SignatureVerifier
from seedkey_backend.core.settings import Settings, settings
from seedkey_backend.db.session import build_engine, build_session_factory, create_tables
from seedkey_backend.services import AuthService, CleanupWorker, RequestAuthenticator, TokenIssuer
from seedkey_backend.storage import SeedKeyStores, create_sql_stores

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _error_response(error_code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "message": message},
    )


async def _handle_seedkey_error(request: Request, exc: SeedKeyError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s: %s", request.url.path, exc.message, exc_info=exc)
        return _error_response(exc.error_code, INTERNAL_ERROR_MESSAGE, exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else first["msg"]
    else:
        message = "Invalid request"
    return _error_response(
        ERROR_CODES["VALIDATION_ERROR"], message, status.HTTP_400_BAD_REQUEST
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return _error_response(
        ERROR_CODES["INTERNAL_ERROR"],
        INTERNAL_ERROR_MESSAGE,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app(
    app_settings: Settings | None = None,
    *,
    stores: SeedKeyStores | None = None,
    verifier: SignatureVerifier | None = None,
) -> FastAPI:
    """Build the application and everything it depends on.

    Args:
        app_settings: Settings to use. Defaults to the environment-derived ones.
        stores: Pre-built stores. When omitted, SQL stores are created over
            ``DATABASE_URL``.
        verifier: Signature verifier. Defaults to Ed25519.

    Returns:
        A FastAPI app whose ``state`` carries the stores and services.
    """
    app_settings = app_settings or settings
    _configure_logging(app_settings.log_level)
    config = app_settings.auth_config()

    engine = None
    if stores is None:
        engine = build_engine(app_settings.database_url, echo=app_settings.sql_debug)
        stores = create_sql_stores(build_session_factory(engine))

    tokens = TokenIssuer(config)
    auth_service = AuthService(
        config,
        stores,
        tokens,
        verifier or Ed25519SignatureVerifier(),
    )
    authenticator = RequestAuthenticator(tokens, stores.sessions)
    worker = CleanupWorker(
        stores.challenges, stores.sessions, app_settings.cleanup_interval_seconds
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if engine is not None and app_settings.auto_create_tables:
            create_tables(engine)
        await worker.start()
        app.state.started = True
        logger.info(
            "%s %s started (domains: %s)",
            app_settings.app_name,
            app_settings.app_version,
            ", ".join(config.allowed_domains),
        )
        try:
            yield
        finally:
            app.state.started = False
            await worker.stop()
            if engine is not None:
                engine.dispose()

    app = FastAPI(
        title=app_settings.app_name,
        description="Single-public-key challenge-response authentication",
        version=app_settings.app_version,
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.stores = stores
    app.state.auth_service = auth_service
    app.state.authenticator = authenticator
    app.state.cleanup_worker = worker
    app.state.started = False

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.add_exception_handler(SeedKeyError, _handle_seedkey_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, _handle_validation_error  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, _handle_unexpected_error)

    # Include API routers
    app.include_router(system_router)
    app.include_router(seedkey_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("seedkey_backend.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
