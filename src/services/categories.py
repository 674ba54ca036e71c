"""Category endpoints, exercised through the authenticated request pipeline."""
import asyncio

from schemas.category import Category, CategoryCreate, CategoryUpdate
from services.api_client import ApiClient

CATEGORIES_PATH = "/categories"


class CategoryService:
    """CRUD operations for the current user's categories."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def fetch_all(self, signal: asyncio.Event | None = None) -> list[Category]:
        """Fetch all categories for the authenticated user."""
        data = await self.client.request(CATEGORIES_PATH, signal=signal)
        return [Category.model_validate(item) for item in data or []]

    async def fetch(self, category_id: str, signal: asyncio.Event | None = None) -> Category:
        """Fetch a single category by ID."""
        data = await self.client.request(f"{CATEGORIES_PATH}/{category_id}", signal=signal)
        return Category.model_validate(data)

    async def create(self, category: CategoryCreate) -> Category:
        """Create a new category."""
        data = await self.client.request(
            CATEGORIES_PATH, method="POST", body=category.model_dump(exclude_none=True),
        )
        return Category.model_validate(data)

    async def update(self, category_id: str, updates: CategoryUpdate) -> Category:
        """Update an existing category; only provided fields are sent."""
        data = await self.client.request(
            f"{CATEGORIES_PATH}/{category_id}",
            method="PATCH",
            body=updates.model_dump(exclude_unset=True),
        )
        return Category.model_validate(data)

    async def delete(self, category_id: str) -> str:
        """Delete a category; returns the deleted ID."""
        data = await self.client.request(f"{CATEGORIES_PATH}/{category_id}", method="DELETE")
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])
        return category_id
