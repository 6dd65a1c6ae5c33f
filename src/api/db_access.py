# This file wraps the SQLAlchemy engine used by the product store, readiness checks, and request log.
# Every statement goes through bound parameters; table names are checked against an identifier pattern first.
# Reads use a plain connection, writes run inside a committed transaction.

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from typing import Any

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine, Result
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

REQUEST_LOG_RECHECK_SECONDS = 60.0


class DatabaseClient:
    """Blocking SQL access for the product store; callers on the event loop use a threadpool."""

    def __init__(
        self,
        *,
        database_url: str,
        request_log_recheck_seconds: float = REQUEST_LOG_RECHECK_SECONDS,
    ) -> None:
        self._engine: Engine = create_engine(database_url, pool_pre_ping=True, future=True)
        self._request_log_recheck_seconds = request_log_recheck_seconds
        # table name -> (exists, monotonic time of the lookup)
        self._request_log_tables: dict[str, tuple[bool, float]] = {}

    @property
    def engine(self) -> Engine:
        return self._engine

    def can_connect(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.debug("Database connectivity check failed", exc_info=True)
            return False
        return True

    def table_exists(self, table_name: str) -> bool:
        safe_table = validate_identifier(table_name)
        return inspect(self._engine).has_table(safe_table)

    def fetch_all(self, query: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        return self._run(query, params, commit=False, rows="all")

    def fetch_one(self, query: str, params: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        return self._run(query, params, commit=False, rows="first")

    def execute(self, query: str, params: Mapping[str, Any] | None = None) -> None:
        self._run(query, params, commit=True, rows=None)

    def execute_returning(
        self, query: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Run a write statement with a RETURNING clause and commit it."""

        return self._run(query, params, commit=True, rows="first")

    def log_request(
        self,
        *,
        table_name: str,
        request_id: str,
        path: str,
        method: str,
        status_code: int,
        duration_ms: float,
    ) -> None:
        """Append one row to the request log table.

        The write is skipped while the table is missing. Table presence is looked up once
        and reused; a missing table is looked up again after the recheck interval, so the
        DDL can be applied without restarting the service.
        """

        safe_table = validate_identifier(table_name)
        if not self._request_log_table_ready(safe_table):
            return

        self.execute(
            f"""
            INSERT INTO {safe_table} (request_id, path, method, status_code, duration_ms, created_at)
            VALUES (:request_id, :path, :method, :status_code, :duration_ms, NOW())
            """,
            {
                "request_id": request_id,
                "path": path,
                "method": method,
                "status_code": status_code,
                "duration_ms": duration_ms,
            },
        )

    def _request_log_table_ready(self, table_name: str) -> bool:
        now = time.monotonic()
        cached = self._request_log_tables.get(table_name)
        if cached is not None:
            exists, looked_up_at = cached
            if exists or now - looked_up_at < self._request_log_recheck_seconds:
                return exists

        exists = self.table_exists(table_name)
        if not exists:
            logger.info(
                "Request log table %s is missing; skipping request log writes for %.0fs",
                table_name,
                self._request_log_recheck_seconds,
            )
        self._request_log_tables[table_name] = (exists, now)
        return exists

    def _run(
        self,
        query: str,
        params: Mapping[str, Any] | None,
        *,
        commit: bool,
        rows: str | None,
    ) -> Any:
        context = self._engine.begin() if commit else self._engine.connect()
        with context as connection:
            result: Result[Any] = connection.execute(text(query), dict(params or {}))
            if rows == "all":
                return [dict(row) for row in result.mappings().all()]
            if rows == "first":
                row = result.mappings().first()
                return dict(row) if row is not None else None
            return None


def validate_identifier(identifier: str) -> str:
    if not _IDENTIFIER_RE.match(identifier):
        raise ValueError(f"Unsafe SQL identifier: {identifier!r}")
    return identifier
