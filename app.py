from __future__ import annotations

import contextlib
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from dotenv import load_dotenv

from persistence import (
    Database,
    DocumentValidationError,
    NotConnectedError,
    SerializationError,
    create_database,
)
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    settings: Settings = app.state.settings

    await database.connect()
    if settings.seed_default_categories:
        await database.seed_default_categories()
    try:
        yield
    finally:
        await database.disconnect()


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotConnectedError)
    async def _not_connected(request: Request, exc: NotConnectedError):
        logger.warning("REQUEST FAILED: %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=503)

    @app.exception_handler(DocumentValidationError)
    async def _bad_query(request: Request, exc: DocumentValidationError):
        logger.warning("REQUEST FAILED: %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=422)

    @app.exception_handler(ValidationError)
    async def _invalid_record(request: Request, exc: ValidationError):
        # Raised when a merged update would no longer be a valid record.
        logger.warning("REQUEST FAILED: %s %s: %d validation errors", request.method, request.url.path, exc.error_count())
        detail = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
        return JSONResponse({"detail": detail}, status_code=422)

    @app.exception_handler(SerializationError)
    async def _corrupt_store(request: Request, exc: SerializationError):
        logger.error("REQUEST FAILED: %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"detail": "stored data could not be decoded"}, status_code=500)


def create_app(database: Database | None = None, settings: Settings | None = None) -> FastAPI:
    load_dotenv("local.env")
    settings = settings or get_settings()

    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    from endpoints.categories import router as categories_router
    from endpoints.database_endpoints import router as database_router
    from endpoints.transactions import router as transactions_router

    app = FastAPI(title="Accounting document store", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database if database is not None else create_database(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.debug_log_requests:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            response = await call_next(request)
            logger.info("REQUEST: %s %s -> %d", request.method, request.url.path, response.status_code)
            return response

    _install_error_handlers(app)

    app.include_router(transactions_router)
    app.include_router(categories_router)
    app.include_router(database_router)

    return app


app = create_app()
