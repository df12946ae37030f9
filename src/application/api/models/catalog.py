"""
Catalog API Request Models
==========================

Pydantic models validating product, category and brand writes.

Create models require every mandatory field; update models make every
field optional and routes pass only the fields the client actually sent
(`model_dump(exclude_unset=True)`).
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

ProductStatus = Literal["active", "inactive", "draft"]


class ProductCreate(BaseModel):
    """New product."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    description: str = Field(default="", max_length=5000)
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(default=0, ge=0, description="Units available")
    category_id: str | None = Field(default=None, description="Category reference")
    brand_id: str | None = Field(default=None, description="Brand reference")
    seller_id: str | None = Field(default=None, description="Owning seller")
    status: ProductStatus = Field(default="active")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class ProductUpdate(BaseModel):
    """Partial product update."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    category_id: str | None = None
    brand_id: str | None = None
    status: ProductStatus | None = None


class CatalogEntryCreate(BaseModel):
    """New category or brand."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class CatalogEntryUpdate(BaseModel):
    """Partial category or brand update."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
