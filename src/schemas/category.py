"""Pydantic schemas for category endpoints."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CategoryBase(BaseModel):
    """Fields shared by category payloads."""

    name_en: str | None = None
    name_hi: str | None = None
    name_mr: str | None = None
    icon: str | None = None
    color: str | None = None


class Category(CategoryBase):
    """Category as returned by the API. Unknown fields are preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Backends may send numeric ids."""
        return str(v)


class CategoryCreate(CategoryBase):
    """Schema for creating a new category."""

    name: str


class CategoryUpdate(CategoryBase):
    """Schema for updating an existing category."""

    name: str | None = None
