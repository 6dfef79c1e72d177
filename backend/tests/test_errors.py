"""Tests for the application error types and their JSON rendering."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.errors import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
    error_body,
    format_validation_errors,
    register_exception_handlers,
)


class TestErrorTypes:
    """Tests for status codes carried by the error hierarchy."""

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (ValidationError(), 400),
            (AuthError(), 401),
            (AuthError("Forbidden", status_code=403), 403),
            (ConflictError(), 409),
            (ConflictError("Already logged in", status_code=403), 403),
            (NotFoundError(), 404),
            (InternalError(), 500),
        ],
    )
    def test_status_codes(self, error, status_code):
        assert error.status_code == status_code

    def test_override_does_not_leak_to_class(self):
        AuthError("Forbidden", status_code=403)
        assert AuthError().status_code == 401

    def test_default_message(self):
        assert NotFoundError().message == "Not found"
        assert NotFoundError("Task not found!").message == "Task not found!"

    def test_error_body(self):
        assert error_body("boom") == {"success": False, "message": "boom"}


class TestFormatValidationErrors:
    def test_first_error_with_field(self):
        errors = [
            {"loc": ("body", "title"), "msg": "String should have at least 1 character"},
            {"loc": ("body", "status"), "msg": "Input should be 'pending'"},
        ]
        message = format_validation_errors(errors)
        assert message == "title: String should have at least 1 character"

    def test_value_error_prefix_dropped(self):
        errors = [
            {"loc": ("body",), "msg": "Value error, at least one of title or status is required"}
        ]
        assert format_validation_errors(errors) == "at least one of title or status is required"

    def test_empty(self):
        assert format_validation_errors([]) == "Invalid request"


@pytest.mark.asyncio
class TestHandlers:
    """Tests for the registered exception handlers."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/conflict")
        async def conflict():
            raise ConflictError("User already exists")

        @app.get("/crash")
        async def crash():
            raise RuntimeError("secret internals")

        @app.get("/items/{item_id}")
        async def item(item_id: int):
            return {"id": item_id}

        return app

    async def test_app_error(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/conflict")
        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "User already exists"}

    async def test_request_validation_is_400(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/items/abc")
        assert response.status_code == 400
        assert response.json()["message"].startswith("item_id:")

    async def test_unhandled_error_hides_details(self, app):
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/crash")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal Server Error"}
