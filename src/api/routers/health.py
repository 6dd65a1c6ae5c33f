# This file serves the operational endpoints that sit outside the product API prefix.
# /health answers as long as the process runs; /ready also needs the database and the product table.
# /version reports the configured release and, when the checkout has one, the git commit.

from __future__ import annotations

import logging
import subprocess
from datetime import UTC, datetime
from functools import lru_cache
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError

from src.api.api_config import ApiConfig
from src.api.db_access import DatabaseClient
from src.api.dependencies import get_config, get_database_client
from src.api.schemas.health_schemas import HealthResponse, ReadinessResponse, VersionResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])
ConfigDep = Annotated[ApiConfig, Depends(get_config)]
DBDep = Annotated[DatabaseClient, Depends(get_database_client)]


def _trace_fields(request: Request) -> dict[str, Any]:
    return {"request_id": request.state.request_id, "timestamp": datetime.now(tz=UTC)}


@lru_cache(maxsize=1)
def git_commit() -> str | None:
    """Short commit hash of the running checkout, looked up once per process."""

    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            check=True,
            capture_output=True,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return completed.stdout.strip() or None


def _product_table_ready(db: DatabaseClient, table_name: str) -> bool:
    try:
        return db.table_exists(table_name)
    except SQLAlchemyError:
        logger.warning("Product table lookup failed for %s", table_name, exc_info=True)
        return False


@router.get("/health", response_model=HealthResponse)
def health(request: Request, config: ConfigDep) -> dict[str, Any]:
    return {
        **_trace_fields(request),
        "status": "ok",
        "environment": config.environment,
        "service_name": config.api_name,
    }


@router.get("/ready", response_model=ReadinessResponse)
def ready(request: Request, config: ConfigDep, db: DBDep) -> dict[str, Any]:
    db_connected = db.can_connect()
    product_source_ready = db_connected and _product_table_ready(db, config.product_table_name)
    return {
        **_trace_fields(request),
        "db_connected": db_connected,
        "product_source_ready": product_source_ready,
        "ready": product_source_ready,
        "database": "reachable" if db_connected else "unreachable",
    }


@router.get("/version", response_model=VersionResponse)
def version(request: Request, config: ConfigDep) -> dict[str, Any]:
    return {
        **_trace_fields(request),
        "api_prefix": config.api_prefix,
        "app_version": config.app_version,
        "git_commit": git_commit(),
        "project": config.api_name,
        "version": config.app_version,
    }
