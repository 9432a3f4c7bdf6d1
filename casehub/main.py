import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.config import settings
from casehub.database import init_db, close_db, get_db
from casehub.errors import AppError
from casehub.logging_config import setup_logging
from casehub.middleware.correlation import CorrelationIdMiddleware
from casehub.services.storage import storage

# Import models so they are registered with Base.metadata
import casehub.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_casehub", env=settings.ENVIRONMENT)
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Exception handlers: every error leaves as
# {"error": {"code": "...", "message": "...", "details": [...]}}
# ---------------------------------------------------------------------------

def _error(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = {"code": code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(
        422,
        "VALIDATION_ERROR",
        "Request validation failed",
        jsonable_encoder(exc.errors()),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("db_integrity_error", path=request.url.path, error=str(exc.orig))
    return _error(409, "CONFLICT", "The request conflicts with existing data")


@app.exception_handler(OperationalError)
@app.exception_handler(TimeoutError)
async def unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("db_unavailable", path=request.url.path, error=str(exc))
    return _error(503, "SERVICE_UNAVAILABLE", "Service temporarily unavailable")


@app.exception_handler(DBAPIError)
async def dbapi_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    if exc.connection_invalidated:
        logger.error("db_connection_lost", path=request.url.path, error=str(exc))
        return _error(503, "SERVICE_UNAVAILABLE", "Service temporarily unavailable")
    logger.error("db_error", path=request.url.path, error=str(exc))
    return _error(500, "INTERNAL_ERROR", "Internal server error")


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if settings.S3_ACCESS_KEY_ID:
        try:
            await asyncio.to_thread(storage.s3.head_bucket, Bucket=storage.bucket)
            health_status["checks"]["storage"] = "ok"
        except Exception as e:
            logger.error("health_check_storage_failed", error=str(e))
            health_status["checks"]["storage"] = "error"
            health_status["status"] = "unhealthy"
    else:
        health_status["checks"]["storage"] = "not_configured"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from casehub.routes.auth import router as auth_router  # noqa: E402
from casehub.routes.staff import router as staff_router  # noqa: E402
from casehub.routes.mentees import router as mentees_router  # noqa: E402
from casehub.routes.therapy_notes import router as therapy_notes_router  # noqa: E402
from casehub.routes.documents import router as documents_router  # noqa: E402
from casehub.routes.files import router as files_router  # noqa: E402
from casehub.routes.invoices import router as invoices_router  # noqa: E402
from casehub.routes.receipts import router as receipts_router  # noqa: E402
from casehub.routes.inventory import router as inventory_router  # noqa: E402
from casehub.routes.audit_logs import router as audit_logs_router  # noqa: E402
from casehub.routes.search import router as search_router  # noqa: E402
from casehub.routes.dashboard import router as dashboard_router  # noqa: E402

app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(staff_router, prefix="/api/v1/staff", tags=["Staff"])
app.include_router(mentees_router, prefix="/api/v1/mentees", tags=["Mentees"])
app.include_router(therapy_notes_router, prefix="/api/v1/therapy-notes", tags=["Therapy Notes"])
app.include_router(documents_router, prefix="/api/v1/documents", tags=["Documents"])
app.include_router(files_router, prefix="/api/v1/files", tags=["Files"])
app.include_router(invoices_router, prefix="/api/v1/invoices", tags=["Invoices"])
app.include_router(receipts_router, prefix="/api/v1/receipts", tags=["Receipts"])
app.include_router(inventory_router, prefix="/api/v1/inventory", tags=["Inventory"])
app.include_router(audit_logs_router, prefix="/api/v1/audit-logs", tags=["Audit Logs"])
app.include_router(search_router, prefix="/api/v1/search", tags=["Search"])
app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["Dashboard"])
