from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.observability import uptime_seconds, utc_now_iso
from app.database import get_db

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Healthcheck")
def healthcheck():
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }


@router.get("/db", summary="Database readiness")
def database_readiness(db: Session = Depends(get_db)):
    """Readiness probe: the API is useless without its database."""
    try:
        db.execute(text("select 1"))
    except SQLAlchemyError:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "database": False, "time": utc_now_iso()},
        )
    return {"status": "ok", "database": True, "time": utc_now_iso()}
