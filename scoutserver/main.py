import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.staticfiles import StaticFiles

from scoutserver import endpoints
from scoutserver.config import Settings, load_scouting_config
from scoutserver.db import Store
from scoutserver.enums import ScoutingConfig
from scoutserver.errors import ScoutingError
from scoutserver.schema import init_db

# ---------- Logging ----------
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    print("Starting up...")

    # Schema errors propagate and abort startup; a partial schema is never served.
    report = await init_db(
        app.state.store,
        app.state.scouting_config,
        app.state.settings.initial_admin_emails,
    )
    added = sum(len(cols) for cols in report.values())
    logger.info("Schema ready: %d tables, %d columns added", len(report), added)

    yield

    print("Shutting down...")


async def scouting_error_handler(_: Request, exc: ScoutingError):
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


async def request_validation_handler(_: Request, exc: RequestValidationError):
    """
    Malformed requests get the same `{"error": ...}` shape as every other failure.
    A non-numeric entry id names no row, so it is a 404 like any other unknown id.
    """
    for err in exc.errors():
        loc = tuple(err.get("loc", ()))
        if loc[:2] == ("path", "entry_id"):
            return JSONResponse(status_code=404, content={"error": "Entry not found"})
        if loc[:1] == ("body",):
            return JSONResponse(status_code=400, content={"error": "Invalid request body"})
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
        settings: Optional[Settings] = None,
        scouting_config: Optional[ScoutingConfig] = None,
) -> FastAPI:
    """
    Build the application. Settings, field configuration and the store are created
    here once and handed to every handler through app.state.
    A bad field configuration raises ConfigurationError and the process never starts.
    """
    settings = settings or Settings.from_env()
    scouting_config = scouting_config or load_scouting_config(settings.scouting_config)

    app = FastAPI(title="FRC Scouting Server", lifespan=lifespan)
    app.state.settings = settings
    app.state.scouting_config = scouting_config
    app.state.store = Store(settings.database_path, settings.upload_dir)

    app.add_exception_handler(ScoutingError, scouting_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(endpoints.router)

    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    # The client bundle, if installed, owns `/`; otherwise show the status page.
    if settings.public_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")
    else:
        app.include_router(endpoints.status_router)

    return app
