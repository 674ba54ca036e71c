"""Tests for category CRUD and receipt uploads through the pipeline."""
import json

import httpx
import pytest

from core.errors import ApiError
from schemas.category import CategoryCreate, CategoryUpdate
from services.api_client import ApiClient
from services.categories import CategoryService
from services.receipts import MAX_RECEIPT_BYTES, ReceiptService, validate_receipt
from tests.utils.backend import ScriptedBackend

FOOD = {"id": 3, "name": "Food", "icon": "🍕", "color": "#10b981", "budget": 500}


class TestCategoryService:
    """Tests for CategoryService."""

    async def test__fetch_all__parses_categories(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("GET", "/categories", httpx.Response(200, json=[FOOD]))

        categories = await CategoryService(client).fetch_all()

        assert len(categories) == 1
        assert categories[0].id == "3"
        assert categories[0].name == "Food"
        # Unknown fields are preserved
        assert categories[0].model_extra == {"budget": 500}

    async def test__fetch_all__recovers_from_expired_session(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("GET", "/categories", httpx.Response(401), httpx.Response(200, json=[]))
        backend.on("POST", "/auth/refresh", httpx.Response(200))

        assert await CategoryService(client).fetch_all() == []

    async def test__fetch__single_category(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("GET", "/categories/3", httpx.Response(200, json=FOOD))

        category = await CategoryService(client).fetch("3")

        assert category.color == "#10b981"

    async def test__create__omits_unset_fields(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("POST", "/categories", httpx.Response(201, json=FOOD))

        await CategoryService(client).create(CategoryCreate(name="Food", icon="🍕"))

        assert json.loads(backend.requests[0].content) == {"name": "Food", "icon": "🍕"}

    async def test__update__sends_only_provided_fields(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("PATCH", "/categories/3", httpx.Response(200, json={**FOOD, "color": "#3b82f6"}))

        category = await CategoryService(client).update("3", CategoryUpdate(color="#3b82f6"))

        assert category.color == "#3b82f6"
        assert json.loads(backend.requests[0].content) == {"color": "#3b82f6"}

    async def test__delete__returns_deleted_id(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("DELETE", "/categories/3", httpx.Response(200, json={"id": "3"}))

        assert await CategoryService(client).delete("3") == "3"

    async def test__delete__not_found(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("DELETE", "/categories/9", httpx.Response(404, json={"message": "Category not found"}))

        with pytest.raises(ApiError) as exc_info:
            await CategoryService(client).delete("9")

        assert exc_info.value.status == 404


class TestReceipts:
    """Tests for receipt validation and upload."""

    def test__validate_receipt__accepts_allowed_type(self) -> None:
        validate_receipt(b"%PDF-1.4", "application/pdf")

    def test__validate_receipt__rejects_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unsupported receipt type"):
            validate_receipt(b"data", "text/csv")

    def test__validate_receipt__rejects_oversized_file(self) -> None:
        with pytest.raises(ValueError, match="maximum size"):
            validate_receipt(b"x" * (MAX_RECEIPT_BYTES + 1), "image/png")

    def test__validate_receipt__rejects_empty_file(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            validate_receipt(b"", "image/png")

    async def test__upload__posts_multipart(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        backend.on("POST", "/receipts", httpx.Response(201, json={"receiptUrl": "/r/1.png"}))

        result = await ReceiptService(client).upload("lunch.png", b"\x89PNG", "image/png")

        assert result == {"receiptUrl": "/r/1.png"}
        body = backend.requests[0].content
        assert b'name="receipt"; filename="lunch.png"' in body

    async def test__upload__invalid_file_makes_no_request(
        self, client: ApiClient, backend: ScriptedBackend,
    ) -> None:
        with pytest.raises(ValueError):
            await ReceiptService(client).upload("notes.txt", b"hi", "text/plain")

        assert backend.requests == []
