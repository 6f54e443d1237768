# ruff: noqa: I001

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.config import settings
from app.core.observability import (
    deal_error_handler,
    global_exception_handler,
    request_logging_middleware,
    uptime_seconds,
    utc_now_iso,
)
from app.database import POOL_CONFIG, engine
from app.services.errors import DealError

api_prefix = (
    settings.api_prefix
    if settings.api_prefix.startswith("/")
    else f"/{settings.api_prefix}"
    if settings.api_prefix
    else ""
)

logger = logging.getLogger("mediation")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

app = FastAPI(
    title=settings.app_name,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
    openapi_url=(f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
    if settings.enable_docs
    else None,
)

app.state.logger = logger

app.add_exception_handler(DealError, deal_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=api_prefix)

# Arbitrary but stable key so concurrent instances serialize migrations.
_MIGRATION_LOCK_KEY = 73310457


def _run_migrations_if_configured() -> None:
    if not settings.run_migrations_on_start:
        return
    if (settings.environment or "").lower() == "test":
        return

    from alembic import command
    from alembic.config import Config
    from sqlalchemy import create_engine, text
    from sqlalchemy.engine.url import make_url

    backend_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_root / "alembic"))

    url_obj = make_url(str(settings.database_url))
    logger.info(
        "migrations_db_target driver=%s host=%s port=%s db=%s has_password=%s",
        url_obj.drivername,
        url_obj.host,
        url_obj.port,
        url_obj.database,
        bool(url_obj.password),
    )

    try:
        db_engine = create_engine(settings.database_url, future=True)
        with db_engine.connect() as connection:
            is_postgres = connection.dialect.name == "postgresql"
            if is_postgres:
                acquired = bool(
                    connection.execute(
                        text("select pg_try_advisory_lock(:k)"), {"k": _MIGRATION_LOCK_KEY}
                    ).scalar()
                )
                if not acquired:
                    logger.info("migrations_skipped_lock_not_acquired")
                    return
            try:
                alembic_cfg.attributes["connection"] = connection
                command.upgrade(alembic_cfg, "head")
                logger.info("migrations_applied")
            finally:
                if is_postgres:
                    connection.execute(
                        text("select pg_advisory_unlock(:k)"), {"k": _MIGRATION_LOCK_KEY}
                    )
                    connection.commit()
    except Exception as e:
        # Endpoints that need the schema will fail loudly; startup should not.
        logger.error("migrations_failed error=%s", str(e))


@app.on_event("startup")
def _startup():
    logger.info(
        "runtime_config",
        extra={
            "pid": os.getpid(),
            "web_concurrency": os.getenv("WEB_CONCURRENCY"),
            "db_pool": POOL_CONFIG,
            "db_dialect": engine.dialect.name,
            "quote_expiry_hours": settings.quote_expiry_hours,
        },
    )
    _run_migrations_if_configured()


@app.get("/", tags=["meta"])
def root():
    docs_path = (
        (f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
        if settings.enable_docs
        else None
    )
    return {"message": settings.app_name, "docs": docs_path}


@app.get("/health", tags=["meta"])
@app.get("/healthz", tags=["meta"])
def healthcheck():
    """Liveness. Keep payload stable for monitoring systems."""

    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }
