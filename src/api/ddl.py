"""DDL helpers for the product store tables."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine

DDL_ORDER = [
    "products.sql",
    "api_request_log.sql",
]


def apply_product_store_ddl(engine: Engine, ddl_dir: Path | None = None) -> None:
    """Apply product store DDL files in deterministic order."""

    ddl_path = ddl_dir or Path("sql/ddl")
    with engine.begin() as connection:
        for ddl_file in DDL_ORDER:
            sql_text = (ddl_path / ddl_file).read_text(encoding="utf-8")
            connection.exec_driver_sql(sql_text)
