# This file implements the product store on top of the SQLAlchemy database client.
# It exists so the product service sees find/save operations instead of raw SQL.
# Blocking database calls run in the threadpool, so each request task suspends while the store works.
# Rows are shaped into plain dictionaries with string ids before leaving this layer.

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from fastapi.concurrency import run_in_threadpool

from src.api.api_config import ApiConfig
from src.api.db_access import DatabaseClient

T = TypeVar("T")

PRODUCT_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "description",
    "price",
    "category",
    "image",
    "brand",
    "stock",
    "rating",
    "num_reviews",
    "created_at",
)

# id and created_at are owned by the store and never rewritten.
MUTABLE_COLUMNS: tuple[str, ...] = (
    "name",
    "description",
    "price",
    "category",
    "image",
    "brand",
    "stock",
    "rating",
    "num_reviews",
)

FILTER_FIELD_MAP: dict[str, str] = {
    "category": "category",
    "brand": "brand",
    "name": "name",
}


class ProductRepository:
    """Product persistence backed by a SQL table."""

    def __init__(self, *, config: ApiConfig, db: DatabaseClient) -> None:
        self.config = config
        self.db = db
        self.product_table = self.config.validate_table_name(self.config.product_table_name)
        self._select_columns = ", ".join(PRODUCT_COLUMNS)

    async def find_all(self) -> list[dict[str, Any]]:
        query = f"""
        SELECT {self._select_columns}
        FROM {self.product_table}
        ORDER BY created_at ASC, id ASC
        """
        rows = await self._run(self.db.fetch_all, query)
        return [_shape_row(row) for row in rows]

    async def find_by_id(self, product_id: str) -> dict[str, Any] | None:
        query = f"""
        SELECT {self._select_columns}
        FROM {self.product_table}
        WHERE id = :product_id
        """
        row = await self._run(self.db.fetch_one, query, {"product_id": product_id})
        return _shape_row(row) if row is not None else None

    async def find_by_filter(self, field: str, value: Any) -> list[dict[str, Any]]:
        column = FILTER_FIELD_MAP.get(field)
        if column is None:
            raise ValueError(f"Unsupported product filter field: {field!r}")

        query = f"""
        SELECT {self._select_columns}
        FROM {self.product_table}
        WHERE {column} = :value
        ORDER BY created_at ASC, id ASC
        """
        rows = await self._run(self.db.fetch_all, query, {"value": value})
        return [_shape_row(row) for row in rows]

    async def save(self, product: dict[str, Any]) -> dict[str, Any]:
        """Insert a new product or update the mutable fields of an existing one."""

        params = {column: product.get(column) for column in MUTABLE_COLUMNS}
        insert_columns = list(MUTABLE_COLUMNS)
        if product.get("id") is not None:
            params["id"] = product["id"]
            insert_columns.insert(0, "id")

        column_sql = ", ".join(insert_columns)
        value_sql = ", ".join(f":{column}" for column in insert_columns)
        update_sql = ", ".join(f"{column} = EXCLUDED.{column}" for column in MUTABLE_COLUMNS)
        query = f"""
        INSERT INTO {self.product_table} ({column_sql})
        VALUES ({value_sql})
        ON CONFLICT (id) DO UPDATE SET {update_sql}
        RETURNING {self._select_columns}
        """
        row = await self._run(self.db.execute_returning, query, params)
        if row is None:
            raise RuntimeError("Product save returned no row.")
        return _shape_row(row)

    async def apply_rating(self, product_id: str, rating: float) -> dict[str, Any] | None:
        """Fold one rating into the stored average in a single statement."""

        query = f"""
        UPDATE {self.product_table}
        SET rating = (rating * num_reviews + :rating) / (num_reviews + 1),
            num_reviews = num_reviews + 1
        WHERE id = :product_id
        RETURNING {self._select_columns}
        """
        row = await self._run(
            self.db.execute_returning,
            query,
            {"product_id": product_id, "rating": rating},
        )
        return _shape_row(row) if row is not None else None

    @staticmethod
    async def _run(func: Callable[..., T], *args: Any) -> T:
        return await run_in_threadpool(func, *args)


def _shape_row(row: dict[str, Any]) -> dict[str, Any]:
    shaped = dict(row)
    shaped["id"] = str(shaped["id"])
    return shaped
