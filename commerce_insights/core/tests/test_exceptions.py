"""Tests for analytics errors and their problem documents."""

import pytest
from fastapi import FastAPI, Query
from httpx import ASGITransport, AsyncClient

from commerce_insights.core.exceptions import (
    CommerceInsightsError,
    InvalidDateError,
    InvalidPresetError,
    MissingBoundError,
    UpstreamUnavailableError,
    register_exception_handlers,
)
from commerce_insights.core.problem_details import problem_type


def _build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    errors: dict[str, CommerceInsightsError] = {
        "preset": InvalidPresetError(
            "Invalid preset value 'x'", details={"preset": "x", "allowed": ["custom"]}
        ),
        "bound": MissingBoundError(details={"missing": ["date_to"]}),
        "date": InvalidDateError("Invalid date_from 'abc', expected YYYY-MM-DD"),
        "upstream": UpstreamUnavailableError(),
    }

    @app.get("/raise/{name}")
    async def raise_error(name: str) -> None:
        raise errors[name]

    @app.get("/typed")
    async def typed(limit: int = Query(...)) -> dict[str, int]:
        return {"limit": limit}

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("secret connection string")

    return app


@pytest.fixture
async def error_client():
    """Client for a throwaway app with the exception handlers registered."""
    async with AsyncClient(
        transport=ASGITransport(app=_build_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.mark.parametrize(
    ("code", "uri"),
    [
        ("INVALID_PRESET", "/errors/invalid-preset"),
        ("UPSTREAM_UNAVAILABLE", "/errors/upstream-unavailable"),
        ("INTERNAL_ERROR", "/errors/internal-error"),
    ],
)
def test_problem_type(code, uri):
    assert problem_type(code) == uri


class TestErrorClasses:
    @pytest.mark.parametrize(
        ("error", "code", "status"),
        [
            (InvalidPresetError(), "INVALID_PRESET", 400),
            (MissingBoundError(), "MISSING_BOUND", 400),
            (InvalidDateError(), "INVALID_DATE", 500),
            (UpstreamUnavailableError(), "UPSTREAM_UNAVAILABLE", 503),
        ],
    )
    def test_code_and_status(self, error, code, status):
        assert isinstance(error, CommerceInsightsError)
        assert error.code == code
        assert error.status_code == status

    def test_default_message(self):
        error = MissingBoundError()

        assert error.message == "Both date_from and date_to are required"
        assert str(error) == error.message

    def test_explicit_message(self):
        assert str(InvalidPresetError("Invalid preset value 'x'")) == "Invalid preset value 'x'"

    def test_title_derived_from_code(self):
        assert MissingBoundError().title == "Missing Bound"

    def test_details_default_to_empty(self):
        assert InvalidPresetError().details == {}
        assert InvalidPresetError(details={"preset": "x"}).details == {"preset": "x"}


class TestExceptionHandlers:
    """Rendering of errors as problem documents."""

    @pytest.mark.parametrize(
        ("name", "status", "code"),
        [
            ("preset", 400, "INVALID_PRESET"),
            ("bound", 400, "MISSING_BOUND"),
            ("date", 500, "INVALID_DATE"),
            ("upstream", 503, "UPSTREAM_UNAVAILABLE"),
        ],
    )
    async def test_application_errors(self, error_client, name, status, code):
        response = await error_client.get(f"/raise/{name}")

        assert response.status_code == status
        assert response.headers["content-type"] == "application/problem+json"
        body = response.json()
        assert body["status"] == status
        assert body["code"] == code
        assert body["type"] == problem_type(code)

    async def test_detail_is_error_message(self, error_client):
        response = await error_client.get("/raise/date")

        assert response.json()["detail"] == "Invalid date_from 'abc', expected YYYY-MM-DD"

    async def test_details_rendered_as_context(self, error_client):
        """Structured details reach the client for display."""
        response = await error_client.get("/raise/preset")

        assert response.json()["context"] == {"preset": "x", "allowed": ["custom"]}

    async def test_empty_details_omitted(self, error_client):
        response = await error_client.get("/raise/upstream")

        assert "context" not in response.json()

    async def test_request_validation_errors(self, error_client):
        """FastAPI validation failures list the offending fields."""
        response = await error_client.get("/typed", params={"limit": "many"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "limit"
        assert body["detail"] == "1 invalid request parameter(s)"

    async def test_unhandled_errors_are_generic(self, error_client):
        """Unexpected exceptions never leak their message."""
        response = await error_client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert "secret" not in body["detail"]
