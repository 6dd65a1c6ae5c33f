# This file holds OpenAPI response descriptions shared by the product routes.
# Not-found and store failures answer in plain text, so they are documented as text/plain.

from __future__ import annotations

from typing import Any

PLAIN_TEXT_NOT_FOUND: dict[str, Any] = {
    "description": "No product matches the identifier.",
    "content": {"text/plain": {"example": "Product not found"}},
}

PLAIN_TEXT_SERVER_ERROR: dict[str, Any] = {
    "description": "The product store failed.",
    "content": {"text/plain": {"example": "Server error"}},
}
