"""Tests for the error envelope and the app-level endpoints."""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from errors import BadRequest, ErrorResponse, InternalError, Unauthorized, format_field_message
from main import create_app
from tests.mocks import MemoryStore


class BrokenStore(MemoryStore):
    async def get_documents(self, collection, filter_dict=None, projection=None):
        raise RuntimeError("boom")


def _client(environment: str, store=None) -> TestClient:
    settings = Settings(environment=environment, session_secret="s3cret", bcrypt_rounds=4)
    return TestClient(create_app(settings, store or MemoryStore()), raise_server_exceptions=False)


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "message": "Page /nope not found"}

    def test_known_path_with_unhandled_method(self, client):
        response = client.patch("/api/pizzas")

        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "message": "Page /api/pizzas not found"}
        assert "allow" not in response.headers

    def test_unhandled_exception_is_500(self):
        with _client("test", BrokenStore()) as client:
            response = client.get("/api/pizzas")

        assert response.status_code == 500
        assert response.json() == {"statusCode": 500, "message": "Internal Server Error"}

    def test_malformed_json_body(self, auth_client):
        response = auth_client.post(
            "/api/pizzas", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Malformed JSON body"

    def test_stack_in_development(self):
        with _client("development", BrokenStore()) as client:
            not_found = client.get("/api/orders/5f0f2a2b9d1e8a3c4b5d6e7f")
            failed = client.get("/api/pizzas")

        assert not_found.status_code == 404
        assert not_found.json()["stack"]
        assert "RuntimeError: boom" in failed.json()["stack"]

    @pytest.mark.parametrize("environment", ["test", "production"])
    def test_no_stack_outside_development(self, environment):
        with _client(environment, BrokenStore()) as client:
            not_found = client.get("/api/orders/5f0f2a2b9d1e8a3c4b5d6e7f")
            failed = client.get("/api/pizzas")
            invalid = client.get("/api/pizzas/abc")

        for response in (not_found, failed, invalid):
            assert "stack" not in response.json()

    def test_framework_validation_uses_same_shape(self, settings, store):
        app = create_app(settings, store)

        @app.get("/typed/{number}")
        def typed(number: int):
            return {"number": number}

        with TestClient(app) as client:
            response = client.get("/typed/abc")

        assert response.status_code == 422
        message = response.json()["message"]
        assert message.endswith(": [path / number] (abc)")


class TestErrors:
    def test_default_messages(self):
        assert Unauthorized().message == "Unauthorized"
        assert Unauthorized().status_code == 401
        assert InternalError().message == "Internal Server Error"
        assert BadRequest("x").status_code == 400

    def test_status_code_override(self):
        assert BadRequest("x", status_code=409).status_code == 409

    def test_error_response_uses_camel_case(self):
        body = ErrorResponse(status_code=404, message="gone")

        assert body.model_dump(by_alias=True, exclude_none=True) == {
            "statusCode": 404,
            "message": "gone",
        }

    @pytest.mark.parametrize(
        "value, rendered",
        [(None, "null"), (True, "true"), (["a", "b"], "a,b"), (1.5, "1.5"), ("", "")],
    )
    def test_format_field_message(self, value, rendered):
        assert format_field_message("Bad", "body", "f", value) == f"Bad: [body / f] ({rendered})"


class TestAppEndpoints:
    def test_root(self, client):
        assert client.get("/").json() == {"message": "Welcome to the pizza api!"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "database": "connected"}

    def test_health_degraded(self, client, store):
        store.available = False

        assert client.get("/health").json() == {"status": "degraded", "database": "unavailable"}

    def test_lifespan_connects_and_closes_store(self, app, store):
        with TestClient(app):
            assert store.connected
        assert not store.connected

    def test_cors_preflight(self, client):
        response = client.options(
            "/api/pizzas",
            headers={"Origin": "http://example.com", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-max-age"] == str(12 * 60 * 60)
