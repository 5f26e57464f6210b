"""Health check endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from backoffice.core.config import settings
from backoffice.db.session import engine

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}


@router.get("/healthz")
def healthz():
    """Liveness: the process is up."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness: the database answers."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}
