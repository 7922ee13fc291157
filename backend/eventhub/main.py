from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional
import argparse
import logging
import os

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

# ── local modules ───────────────────────────────────────────────────
from .blob import LocalBlobStore
from .catalog import (
    Event,
    EventCategory,
    FilterState,
    PriceFilter,
    SortKey,
    featured_events,
    list_events,
    load_seed_events,
)
from .config import Settings, configure_logging, load_settings
from .db import Database, get_db
from .schemas import (
    ErrorOut,
    EventListOut,
    FieldErrorsOut,
    ImageUploadOut,
    SubmissionOut,
    SubmittedEventOut,
)
from .services import (
    ImageUploadService,
    QueryError,
    SubmissionError,
    SubmissionService,
    UploadError,
)
from .validation import (
    MAX_IMAGE_BYTES,
    ImageValidationError,
    SubmissionValidationError,
    validate_event_submission,
    validate_image_file,
)
# ────────────────────────────────────────────────────────────────────

logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, message: str, correlation_id: Optional[str] = None) -> JSONResponse:
    headers = {"X-Correlation-ID": correlation_id} if correlation_id else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorOut(code=code, message=message).model_dump(),
        headers=headers,
    )


async def read_image(file: UploadFile) -> bytes:
    """
    Read an uploaded image and validate it, holding at most
    MAX_IMAGE_BYTES + 1 bytes in memory.

    Returns b"" for an empty part. Raises ImageValidationError otherwise
    when the size or declared type is not allowed.
    """
    if file.size is not None and file.size > MAX_IMAGE_BYTES:
        validate_image_file(file.size, file.content_type)
    content = await file.read(MAX_IMAGE_BYTES + 1)
    if content:
        validate_image_file(max(file.size or 0, len(content)), file.content_type)
    return content


# ───────────────────────── DB migrations (optional) ─────────────────
from alembic import command
from alembic.config import Config

def run_migrations(settings: Settings) -> None:
    app_dir = Path(__file__).resolve().parent
    cfg = Config(str(app_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(app_dir / "migrations"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))
    command.upgrade(cfg, "head")


# ───────────────────────── Store wiring ─────────────────────────────
def get_submission_service(request: Request) -> SubmissionService:
    return SubmissionService(request.app.state.database)

def get_upload_service(request: Request) -> ImageUploadService:
    return ImageUploadService(request.app.state.blob_store)


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    blob_store: Optional[LocalBlobStore] = None,
) -> FastAPI:
    """
    Build the API. Settings are read here, once; a missing DATABASE_URL
    raises ConfigError so the process never starts half-configured.
    Stores are created here too (engines connect lazily) and disposed
    when the app shuts down.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    database = database or Database(settings.database_url)
    blob_store = blob_store or LocalBlobStore(
        settings.blob_dir, settings.blob_container, settings.blob_public_url
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_migrate:
            run_migrations(settings)
        blob_store.open()
        logger.info("eventhub started (env=%s)", settings.app_env)
        try:
            yield
        finally:
            blob_store.close()
            database.dispose()

    app = FastAPI(title="EventHub API", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.blob_store = blob_store

    # ───────────────────────── CORS ─────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
        max_age=86400,
    )

    # ───────────────────────── Static uploads ───────────────────────
    if settings.serves_blobs_locally:
        Path(settings.blob_dir).mkdir(parents=True, exist_ok=True)
        app.mount(settings.blob_public_url, StaticFiles(directory=settings.blob_dir), name="uploads")

    # ───────────────────────── Error mapping ────────────────────────
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
            parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return _error(400, "INVALID_REQUEST", "; ".join(parts) or "Invalid request")

    # ───────────────────────── Lifecycle & health ───────────────────
    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.get("/")
    def read_root():
        return {"message": "EventHub API is running."}

    @app.get("/dbcheck")
    def dbcheck(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"db": "ok"}

    # ───────────────────────── Listing (read side) ──────────────────
    @app.get("/events", response_model=EventListOut)
    def get_events(
        category: List[EventCategory] = Query(default=[]),
        price: PriceFilter = Query(default=PriceFilter.ALL),
        q: str = Query(default="", max_length=200),
        sort: SortKey = Query(default=SortKey.DATE_ASC),
    ):
        state = FilterState(categories=frozenset(category), price=price, query=q.strip())
        events = list_events(load_seed_events(), state, sort)
        return EventListOut(count=len(events), events=events)

    @app.get("/events/featured", response_model=List[Event])
    def get_featured(limit: int = Query(default=6, ge=1, le=50)):
        return featured_events(load_seed_events(), limit)

    @app.get(
        "/events/submitted",
        response_model=List[SubmittedEventOut],
        responses={500: {"model": ErrorOut}},
    )
    def get_recent_submissions(
        limit: int = Query(default=10, ge=1, le=100),
        service: SubmissionService = Depends(get_submission_service),
    ):
        try:
            return service.recent(limit)
        except QueryError as exc:
            return _error(500, "SQL_QUERY_FAILED", "Failed to fetch events. Please try again.", exc.correlation_id)

    # ───────────────────────── Submission ───────────────────────────
    @app.post(
        "/events/submit",
        response_model=SubmissionOut,
        responses={400: {"model": FieldErrorsOut}, 500: {"model": ErrorOut}},
    )
    async def submit_event(
        request: Request,
        service: SubmissionService = Depends(get_submission_service),
    ):
        try:
            payload = await request.json()
        except ValueError:
            return _error(400, "INVALID_BODY", "Request body must be valid JSON")
        if not isinstance(payload, dict):
            return _error(400, "INVALID_BODY", "Request body must be a JSON object")

        try:
            submission = validate_event_submission(payload)
        except SubmissionValidationError as exc:
            return JSONResponse(
                status_code=400,
                content=FieldErrorsOut(field_errors=exc.field_errors).model_dump(by_alias=True),
            )

        try:
            row = await run_in_threadpool(service.submit, submission)
        except SubmissionError as exc:
            return _error(500, "SQL_INSERT_FAILED", "Failed to save event. Please try again.", exc.correlation_id)

        return SubmissionOut(id=row.id, created_at=row.created_at)

    # ───────────────────────── Image upload ─────────────────────────
    @app.post(
        "/events/upload-image",
        response_model=ImageUploadOut,
        responses={400: {"model": ErrorOut}, 503: {"model": ErrorOut}},
    )
    async def upload_image(
        request: Request,
        service: ImageUploadService = Depends(get_upload_service),
    ):
        async with request.form() as form:
            file = form.get("file")
            if file is None or file == "":
                return _error(400, "NO_FILE", "No file provided")
            if not isinstance(file, UploadFile):
                # a plain form value where a file part was expected
                return _error(400, "INVALID_FILE", "Only JPEG, PNG, and WebP images are allowed")

            try:
                content = await read_image(file)
            except ImageValidationError as exc:
                return _error(400, "INVALID_FILE", str(exc))
            content_type = file.content_type

        if not content:
            return _error(400, "NO_FILE", "No file provided")

        try:
            url = await run_in_threadpool(service.upload, content, content_type)
        except UploadError as exc:
            return _error(503, "STORAGE_TIMEOUT", "Upload failed. Please try again.", exc.correlation_id)

        return ImageUploadOut(image_url=url)

    return app


def run() -> None:
    """Start the API with uvicorn, building the app through the factory."""
    import uvicorn

    parser = argparse.ArgumentParser(description="Start the EventHub API")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    uvicorn.run(
        "eventhub.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    run()
