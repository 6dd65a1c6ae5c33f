# This file provides dependency factories for FastAPI routes and middleware.
# It exists so the database client, product store, and service are created once and shared.
# The setup keeps routers thin and makes endpoint tests easy to override.
# Centralized construction also ensures one consistent API configuration is used.

from __future__ import annotations

from functools import lru_cache

from src.api.api_config import ApiConfig, get_api_config
from src.api.db_access import DatabaseClient
from src.api.product_repository import ProductRepository
from src.api.services.product_service import ProductService


@lru_cache(maxsize=1)
def get_database_client() -> DatabaseClient:
    config = get_api_config()
    return DatabaseClient(database_url=config.database_url)


@lru_cache(maxsize=1)
def get_product_repository() -> ProductRepository:
    config = get_api_config()
    db_client = get_database_client()
    return ProductRepository(config=config, db=db_client)


@lru_cache(maxsize=1)
def get_product_service() -> ProductService:
    config = get_api_config()
    return ProductService(config=config, store=get_product_repository())


def get_config() -> ApiConfig:
    return get_api_config()
