import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coursebase import __version__
from coursebase.adapters.sqlite.migrator import SQLiteMigrator
from coursebase.api.deps import get_settings
from coursebase.api.routes import courses, test_suites, users, version
from coursebase.api.routes.content import build_router
from coursebase.api.schemas import ArticleOut, ChapterOut, CourseOut, PlaylistOut, SectionOut
from coursebase.domain.errors import (
    CoursebaseError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from coursebase.rules.loader import load_rules

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again in a few minutes."

STATUS_BY_ERROR: list[tuple[type[CoursebaseError], int]] = [
    (InvalidInputError, 400),
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and prepare storage on startup (fail-fast)
    try:
        load_rules(settings.rules_path)
        logger.info("Rules loaded from %s", settings.rules_path)
        if settings.store_backend == "sqlite":
            settings.data_dir.mkdir(parents=True, exist_ok=True)
            SQLiteMigrator(settings.db_path).run_migrations()
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        raise

    yield


app = FastAPI(
    title="Coursebase API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# --- Errors ---
def _status_for(exc: CoursebaseError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(CoursebaseError)
async def handle_domain_error(request: Request, exc: CoursebaseError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code == 500:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"message": INTERNAL_ERROR_MESSAGE})

    body: dict[str, Any] = {"message": exc.message}
    if isinstance(exc, InvalidInputError) and exc.errors:
        body["errors"] = [{"field": e.field, "message": e.message} for e in exc.errors]
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body") or None, "message": err.get("msg")}
        for err in exc.errors()
    ]
    message = "; ".join(f'"{e["field"]}" {e["message"]}' if e["field"] else str(e["message"]) for e in errors)
    return JSONResponse(status_code=400, content={"message": message, "errors": errors})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": INTERNAL_ERROR_MESSAGE})


# --- Routers ---
app.include_router(courses.router, prefix=f"{API_PREFIX}/courses", tags=["Courses"])
app.include_router(build_router("course", CourseOut), prefix=f"{API_PREFIX}/courses", tags=["Courses"])
app.include_router(build_router("chapter", ChapterOut), prefix=f"{API_PREFIX}/chapters", tags=["Chapters"])
app.include_router(build_router("section", SectionOut), prefix=f"{API_PREFIX}/sections", tags=["Sections"])
app.include_router(build_router("article", ArticleOut), prefix=f"{API_PREFIX}/articles", tags=["Articles"])
app.include_router(build_router("playlist", PlaylistOut), prefix=f"{API_PREFIX}/playlists", tags=["Playlists"])
app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])
app.include_router(test_suites.router, prefix=f"{API_PREFIX}/test-suites", tags=["Test Suites"])
app.include_router(version.router, prefix=API_PREFIX, tags=["Version"])


# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
