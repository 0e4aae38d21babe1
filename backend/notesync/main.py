import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from notesync.config import settings
from notesync.exceptions import (
    DeletionFailedError,
    NoteLockedError,
    NotFoundError,
    ShareLinkExpiredError,
    ValidationError,
)
from notesync.middleware.rate_limit import limiter
from notesync.routers import auth, folders, notes, share_links, shared

# Force console logging to stderr
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


def run_migrations() -> None:
    alembic_cfg = Config(str(ALEMBIC_INI))
    # keep the logging configured above
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.run_migrations_on_startup:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, run_migrations)
        logger.info("Migrations applied")

    yield


app = FastAPI(title="NoteSync API", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": f"{exc.kind.capitalize()} not found"})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ShareLinkExpiredError)
async def expired_handler(request: Request, exc: ShareLinkExpiredError) -> JSONResponse:
    return JSONResponse(status_code=410, content={"detail": str(exc)})


@app.exception_handler(NoteLockedError)
async def locked_handler(request: Request, exc: NoteLockedError) -> JSONResponse:
    return JSONResponse(status_code=423, content={"detail": str(exc)})


@app.exception_handler(DeletionFailedError)
async def deletion_failed_handler(request: Request, exc: DeletionFailedError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "kind": exc.kind, "id": exc.entity_id},
    )


@app.exception_handler(Exception)
async def log_unhandled_exceptions(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(folders.router)
app.include_router(notes.router)
app.include_router(share_links.router)
app.include_router(shared.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
