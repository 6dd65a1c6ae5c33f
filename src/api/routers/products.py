# This file defines the product catalog endpoints under the API prefix.
# Each handler awaits one service call; not-found and store failures surface as
# domain exceptions that the registered error handlers turn into plain-text responses.

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from src.api.dependencies import get_product_service
from src.api.schemas.common import PLAIN_TEXT_NOT_FOUND, PLAIN_TEXT_SERVER_ERROR
from src.api.schemas.product_schemas import Product, RatingUpdateRequest
from src.api.services.product_service import ProductService

router = APIRouter(
    prefix="/products",
    tags=["products"],
    responses={500: PLAIN_TEXT_SERVER_ERROR},
)
ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]


@router.get("", response_model=list[Product], summary="Returns the list of all products")
async def list_products(service: ProductServiceDep) -> list[dict[str, Any]]:
    return await service.list_products()


@router.get(
    "/category/{category}",
    response_model=list[Product],
    summary="Get products by category",
)
async def list_products_by_category(
    category: str,
    service: ProductServiceDep,
) -> list[dict[str, Any]]:
    return await service.get_products_by_category(category)


@router.get(
    "/{product_id}",
    response_model=Product,
    summary="Get a product by id",
    responses={404: PLAIN_TEXT_NOT_FOUND},
)
async def get_product(product_id: str, service: ProductServiceDep) -> dict[str, Any]:
    return await service.get_product(product_id)


@router.put(
    "/{product_id}/rating",
    response_model=Product,
    summary="Update the product rating",
    responses={404: PLAIN_TEXT_NOT_FOUND},
)
async def update_product_rating(
    product_id: str,
    body: RatingUpdateRequest,
    service: ProductServiceDep,
) -> dict[str, Any]:
    return await service.update_rating(product_id, body.rating)
