# This file implements the product operations behind the catalog routes.
# It exists so routers stay transport-focused while store access and rating math live in one layer.
# Rating updates fold each new score into a running average with an unguarded read-then-write,
# unless the atomic single-statement path is switched on in config.

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

from src.api.api_config import ApiConfig
from src.api.error_handlers import ProductNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProductStore(Protocol):
    """Persistence operations the product service relies on."""

    async def find_all(self) -> list[dict[str, Any]]: ...

    async def find_by_id(self, product_id: str) -> dict[str, Any] | None: ...

    async def find_by_filter(self, field: str, value: Any) -> list[dict[str, Any]]: ...

    async def save(self, product: dict[str, Any]) -> dict[str, Any]: ...

    async def apply_rating(self, product_id: str, rating: float) -> dict[str, Any] | None: ...


def fold_rating(current_rating: float, num_reviews: int, rating: float) -> tuple[float, int]:
    """Return the new (average, count) after adding one rating to a running average.

    The sum is rebuilt as ``current_rating * num_reviews`` before the new score is
    added and the total divided, in that order.
    """

    new_num_reviews = num_reviews + 1
    new_rating_sum = current_rating * num_reviews + rating
    new_average_rating = new_rating_sum / new_num_reviews
    return new_average_rating, new_num_reviews


class ProductService:
    """Product retrieval and rating updates."""

    def __init__(self, *, config: ApiConfig, store: ProductStore) -> None:
        self.config = config
        self.store = store

    async def list_products(self) -> list[dict[str, Any]]:
        return await self._call_store("list products", self.store.find_all)

    async def get_product(self, product_id: str) -> dict[str, Any]:
        product = await self._call_store("load product", self.store.find_by_id, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def get_products_by_category(self, category: str) -> list[dict[str, Any]]:
        # No match is an empty list, not a not-found error.
        return await self._call_store(
            "filter products by category",
            self.store.find_by_filter,
            "category",
            category,
        )

    async def update_rating(self, product_id: str, rating: float) -> dict[str, Any]:
        if self.config.atomic_rating_updates:
            return await self._update_rating_atomic(product_id, rating)

        product = await self.get_product(product_id)
        new_rating, new_num_reviews = fold_rating(
            product["rating"], product["num_reviews"], rating
        )
        product["rating"] = new_rating
        product["num_reviews"] = new_num_reviews

        saved = await self._call_store("save product", self.store.save, product)
        logger.info(
            "Updated rating for product %s: rating=%s num_reviews=%s",
            product_id,
            saved["rating"],
            saved["num_reviews"],
        )
        return saved

    async def _update_rating_atomic(self, product_id: str, rating: float) -> dict[str, Any]:
        updated = await self._call_store(
            "apply rating", self.store.apply_rating, product_id, rating
        )
        if updated is None:
            raise ProductNotFoundError(product_id)
        logger.info(
            "Applied rating atomically for product %s: rating=%s num_reviews=%s",
            product_id,
            updated["rating"],
            updated["num_reviews"],
        )
        return updated

    async def _call_store(
        self, action: str, operation: Callable[..., Awaitable[T]], *args: Any
    ) -> T:
        try:
            return await operation(*args)
        except Exception as exc:
            logger.exception("Product store failed to %s", action)
            raise StoreUnavailableError(action) from exc
