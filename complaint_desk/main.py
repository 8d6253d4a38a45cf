"""FastAPI application entry point."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from complaint_desk.core.config import settings
from complaint_desk.core.deps import get_db
from complaint_desk.core.errors import ComplaintDeskError
from complaint_desk.core.structured_logging import build_log_context

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # contact numbers stay out of Sentry
    )
    logger.info("Sentry initialized for error tracking")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Complaint Desk API",
    description="Complaint lifecycle, technician fulfillment and billing reconciliation",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================================================
# Error envelope: {"success": false, "message": ...}
# ============================================================================

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(ComplaintDeskError)
async def complaint_desk_error_handler(request: Request, exc: ComplaintDeskError):
    if exc.status_code >= 500:
        logger.warning(
            "Request failed status=%s message=%s",
            exc.status_code,
            exc.message,
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(400, message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return _error_response(500, "Internal server error")


# ============================================================================
# Routers
# ============================================================================

from complaint_desk.routers import admin, complaints, technician  # noqa: E402

app.include_router(complaints.router)
app.include_router(technician.router)
app.include_router(admin.router)

# Local photo backend serves its own files (dev only)
if settings.STORAGE_BACKEND == "local":
    app.mount(
        settings.LOCAL_STORAGE_BASE_URL,
        StaticFiles(directory=settings.LOCAL_STORAGE_PATH, check_dir=False),
        name="photos",
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    db.execute(text("SELECT 1"))
    return {"success": True, "status": "ok", "env": settings.ENV, "version": settings.VERSION}
