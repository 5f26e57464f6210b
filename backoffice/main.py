"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from backoffice.core.config import settings
from backoffice.core.exceptions import ConflictError, StorageError
from backoffice.core.logging import build_log_context, configure_logging

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry (only when a DSN is set and not in dev)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # customer names and addresses stay out of Sentry
    )
    logger.info("Sentry enabled", extra={"env": settings.ENV})

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from backoffice.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Back-office API",
    description="Customers, projects, tasks, calendar, attendance, invoices and documents",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# The front end is served from another origin and sends the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)

# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(StorageError)
async def storage_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=502, content={"detail": exc.message})


@app.exception_handler(IntegrityError)
async def integrity_handler(request: Request, exc: IntegrityError):
    logger.warning(
        "Integrity error",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(status_code=409, content={"detail": "データの整合性エラーが発生しました"})


@app.exception_handler(OperationalError)
async def operational_handler(request: Request, exc: OperationalError):
    logger.error(
        "Database unavailable",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(status_code=503, content={"detail": "データベースに接続できません"})


# ============================================================================
# Routers
# ============================================================================

from backoffice.routers import (
    attendance,
    auth,
    calendar,
    comments,
    customers,
    documents,
    employees,
    health,
    invoices,
    postal_code,
    projects,
    stakeholders,
    tasks,
)

app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(employees.router, prefix="/employees", tags=["employees"])

# Mixed paths: /accounts, /individuals, /contacts, /customers/options, /industries
app.include_router(customers.router, tags=["customers"])

app.include_router(projects.router, prefix="/projects", tags=["projects"])
app.include_router(tasks.router, tags=["tasks"])  # /projects/{id}/tasks, /tasks/{id}, /task-templates
app.include_router(stakeholders.router, tags=["stakeholders"])
app.include_router(comments.router, tags=["comments"])  # Already has /projects/{id}/comments prefix

app.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
app.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
app.include_router(invoices.router, tags=["invoices"])  # /business-entities, /invoices
app.include_router(documents.router, prefix="/documents", tags=["documents"])
app.include_router(postal_code.router, prefix="/postal-code", tags=["postal-code"])

# Local file downloads (S3 serves signed URLs directly)
if settings.STORAGE_BACKEND != "s3":
    from backoffice.routers import files
    app.include_router(files.router, prefix="/files", tags=["files"])
