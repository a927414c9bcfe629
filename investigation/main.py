"""FastAPI application for the investigation engine."""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from investigation.api import session as session_api
from investigation.config import CASE_DIR, DEFAULT_CASE_ID, DEFAULT_DB_PATH, DEV_MODE
from investigation.content.loader import CaseValidationError, load_case
from investigation.core.error_handling import create_error_response, log_error_with_context
from investigation.db.migrate import apply_schema

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _parse_cors_allowlist(raw: str) -> list[str]:
    origins = [o.strip() for o in raw.split(",") if o and o.strip()]
    if origins:
        return origins
    return [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


CORS_ALLOW_ORIGINS = _parse_cors_allowlist(os.environ.get("CASEBOOK_CORS_ALLOW_ORIGINS", ""))


def _component_for(path: str) -> str:
    for segment in ("conversation", "clues", "accusation", "introduce", "reset", "events", "state"):
        if f"/{segment}" in path:
            return segment
    return "api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not DEV_MODE and "*" in CORS_ALLOW_ORIGINS:
        raise RuntimeError(
            "Unsafe CORS config: '*' is only allowed in dev mode. "
            "Set CASEBOOK_CORS_ALLOW_ORIGINS to explicit origins."
        )
    apply_schema(DEFAULT_DB_PATH)
    # Configuration errors are the only fatal class: refuse to start on a broken case.
    try:
        load_case(DEFAULT_CASE_ID)
    except CaseValidationError as e:
        logger.error("Case %s in %s is invalid; refusing to start", DEFAULT_CASE_ID, CASE_DIR)
        raise RuntimeError(str(e)) from e
    logger.info("API startup complete (dev_mode=%s, case=%s, db=%s)", DEV_MODE, DEFAULT_CASE_ID, DEFAULT_DB_PATH)
    yield
    session_api.reset_session_cache()


app = FastAPI(title="Casebook Investigation API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPExceptions with structured error responses."""
    component = _component_for(request.url.path)
    error_response = create_error_response(
        error_code=f"{component.upper()}_HTTP_{exc.status_code}",
        message=exc.detail,
        component=component,
        details={
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler: return structured error responses with logging."""
    component = _component_for(request.url.path)
    log_error_with_context(
        error=exc,
        component=component,
        operation=request.url.path,
        extra_context={
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
        },
    )
    message = str(exc) or f"An error occurred: {type(exc).__name__}"
    error_response = create_error_response(
        error_code=f"{component.upper()}_ERROR",
        message=message,
        component=component,
        details={
            "exception_type": type(exc).__name__,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_response)


@app.get("/health")
def health():
    return {"status": "ok", "case": DEFAULT_CASE_ID}


app.include_router(session_api.router)
