#!/usr/bin/env python3
"""
Create the product store tables and optionally load a few sample products.
Run it from the repository root so the relative `sql/ddl` path resolves.
"""
# ruff: noqa: E402

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.api.api_config import get_api_config
from src.api.ddl import apply_product_store_ddl
from src.api.db_access import DatabaseClient
from src.api.product_repository import ProductRepository
from src.common.logging import configure_logging

SAMPLE_PRODUCTS: list[dict[str, object]] = [
    {
        "name": "Wireless Headphones",
        "description": "Over-ear headphones with noise cancelling.",
        "price": 129.99,
        "category": "Electronics",
        "image": "https://example.com/headphones.jpg",
        "brand": "Acoustica",
        "stock": 25,
        "rating": 4.5,
        "num_reviews": 10,
    },
    {
        "name": "Trail Running Shoes",
        "description": "Lightweight shoes with a grippy outsole.",
        "price": 89.5,
        "category": "Footwear",
        "image": "https://example.com/shoes.jpg",
        "brand": "Ridgeline",
        "stock": 40,
        "rating": 0.0,
        "num_reviews": 0,
    },
    {
        "name": "Mechanical Keyboard",
        "description": "Tenkeyless keyboard with hot-swappable switches.",
        "price": 74.0,
        "category": "Electronics",
        "image": "https://example.com/keyboard.jpg",
        "brand": "Keyforge",
        "stock": 12,
        "rating": 4.0,
        "num_reviews": 3,
    },
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize the product store")
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Insert the built-in sample products after creating tables",
    )
    parser.add_argument(
        "--ddl-dir",
        type=Path,
        default=None,
        help="Directory holding the DDL files (defaults to sql/ddl)",
    )
    return parser.parse_args()


async def seed_products(repository: ProductRepository) -> list[dict[str, object]]:
    saved: list[dict[str, object]] = []
    for product in SAMPLE_PRODUCTS:
        saved.append(await repository.save(dict(product)))
    return saved


def main() -> int:
    args = parse_args()
    configure_logging()
    config = get_api_config()
    db = DatabaseClient(database_url=config.database_url)

    if not db.can_connect():
        print("Database is unreachable; check DATABASE_URL.", file=sys.stderr)
        return 1

    apply_product_store_ddl(db.engine, args.ddl_dir)
    summary: dict[str, object] = {"tables_ready": True, "seeded": 0}

    if args.seed:
        repository = ProductRepository(config=config, db=db)
        saved = asyncio.run(seed_products(repository))
        summary["seeded"] = len(saved)
        summary["product_ids"] = [product["id"] for product in saved]

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
