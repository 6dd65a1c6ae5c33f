# This file defines the product resource schema and the rating update request body.
# Wire names follow the catalog's JSON contract (camelCase `numReviews`, `createdAt`),
# while services and the store work with snake_case keys.
# Response models accept either spelling so service dictionaries validate directly.

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "name": "Product Name",
                "description": "Product Description",
                "price": 19.99,
                "category": "Electronics",
                "image": "https://example.com/product.jpg",
                "brand": "Brand Name",
                "stock": 10,
                "rating": 4.5,
                "numReviews": 10,
                "createdAt": "2022-01-01T00:00:00.000Z",
            }
        },
    )

    id: str = Field(description="Store-assigned identifier of the product.")
    name: str
    description: str | None = None
    price: float
    category: str
    image: str | None = Field(default=None, description="Image URL of the product.")
    brand: str | None = None
    stock: int = 0
    rating: float = Field(default=0.0, description="Average of all submitted ratings.")
    num_reviews: int = Field(
        default=0,
        alias="numReviews",
        description="Number of ratings folded into `rating`.",
    )
    created_at: datetime | None = Field(default=None, alias="createdAt")


class RatingUpdateRequest(BaseModel):
    # No range check; any number is folded into the average.
    rating: float
