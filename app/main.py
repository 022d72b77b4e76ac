from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import meta_router, router
from datastore.session_store import SessionStore
from logging_config import configure_logging
from services.credentials import UserService
from services.errors import DashboardError, StorageFailure
from services.feeds import FEEDS_SCHEMA, SensorFeedReader
from settings import Settings, get_settings
from storage.csv_store import CsvRecordStore, StorageError

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
FALLBACK_PAGE = STATIC_DIR / "index.html"


async def bootstrap_data(app: FastAPI) -> None:
    """Seed the default admin and create an empty feed file where missing."""
    settings: Settings = app.state.settings
    users: UserService = app.state.users
    store: CsvRecordStore = app.state.store

    try:
        if settings.seed_default_admin:
            await users.ensure_default_admin(
                email=settings.default_admin_email,
                password=settings.default_admin_password,
            )
        if await run_in_threadpool(store.ensure, FEEDS_SCHEMA):
            logger.info("Created empty feed file", extra={"file_name": FEEDS_SCHEMA.filename})
    except (StorageError, StorageFailure):
        logger.exception("Initialization error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    users: UserService = app.state.users
    logger.info("Data directory: %s", Path(app.state.settings.data_dir).resolve())
    try:
        await bootstrap_data(app)
        yield
    finally:
        users.shutdown()


async def _dashboard_error_handler(_request: Request, exc: DashboardError) -> Response:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> Response:
    logger.warning("Rejected malformed request body", extra={"reason": str(exc)})
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    # Any unmatched method and path pair gets the fallback page.
    if exc.status_code in (404, 405):
        logger.warning("404 Not Found", extra={"method": request.method, "path": request.url.path})
        return FileResponse(FALLBACK_PAGE, status_code=404, media_type="text/html")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Server error", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def _log_requests(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    response = await call_next(request)
    logger.info(
        "Request handled",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
        },
    )
    return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings=settings)

    app = FastAPI(
        title="Air Quality Dashboard",
        description="Session-authenticated sensor dashboard API backed by CSV files.",
        version="0.1.0",
        lifespan=lifespan,
    )

    store = CsvRecordStore(root_path=Path(settings.data_dir))
    app.state.settings = settings
    app.state.store = store
    app.state.users = UserService(
        store=store,
        rounds=settings.bcrypt_rounds,
        workers=settings.hash_workers,
    )
    app.state.sessions = SessionStore(ttl=timedelta(hours=settings.session_ttl_hours))
    app.state.feeds = SensorFeedReader(store)

    app.add_exception_handler(DashboardError, _dashboard_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.middleware("http")(_log_requests)

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    app.include_router(router)
    app.include_router(meta_router)

    @app.get("/", include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(FALLBACK_PAGE, media_type="text/html")

    return app


app = create_app()
