from __future__ import annotations

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from notedly import errors
from notedly.main import create_app


DOMAIN_ERRORS = {
    "missing": (errors.MissingCredential(), 401, "missing_credential"),
    "unknown": (errors.UnknownUser(), 401, "unknown_user"),
    "not-found": (errors.NotFound(), 404, "not_found"),
    "not-invited": (errors.NotInvited(), 403, "not_invited"),
    "owner": (errors.OwnerRequired(), 403, "owner_required"),
    "read": (errors.ReadDenied(), 403, "read_denied"),
    "write": (errors.WriteDenied(), 403, "write_denied"),
    "account": (errors.NotAccountHolder(), 403, "not_account_holder"),
    "conflict": (errors.Conflict("Already granted", details={"user_id": 7}), 409, "conflict"),
    "state": (errors.InvalidOAuthState(), 409, "invalid_state"),
    "provider": (errors.UnsupportedProvider(), 400, "unsupported_provider"),
    "oauth": (errors.OAuthError(), 502, "oauth_error"),
    "store": (errors.StoreUnavailable(), 503, "store_unavailable"),
}


@pytest.fixture
def client() -> TestClient:
    app = create_app()

    @app.get("/boom/http")
    def raise_http():
        raise HTTPException(status_code=404, detail="Missing resource")

    @app.get("/boom/http-structured")
    def raise_structured_http():
        raise HTTPException(status_code=418, detail={"reason": "teapot"})

    @app.get("/boom/validation")
    def needs_int(board_id: int):  # pragma: no cover - never reached
        return {"board_id": board_id}

    @app.get("/boom/unhandled")
    def raise_unhandled():
        raise RuntimeError("secret-internal-detail")

    @app.get("/boom/domain/{kind}")
    def raise_domain(kind: str):
        raise DOMAIN_ERRORS[kind][0]

    return TestClient(app, raise_server_exceptions=False)


def _problem(response, status: int, code: str) -> dict:
    assert response.status_code == status
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["status"] == status
    assert body["code"] == code
    assert body["type"] == f"about:blank#{code}"
    assert body["title"] == body["message"]
    assert body["trace_id"] == response.headers["X-Trace-Id"]
    return body


@pytest.mark.parametrize("kind", sorted(DOMAIN_ERRORS))
def test_domain_error_maps_to_status_and_code(client, kind):
    exc, status, code = DOMAIN_ERRORS[kind]
    body = _problem(client.get(f"/boom/domain/{kind}"), status, code)
    assert body["message"] == exc.message


def test_domain_error_details_are_rendered(client):
    body = _problem(client.get("/boom/domain/conflict"), 409, "conflict")
    assert body["message"] == "Already granted"
    assert body["details"] == {"user_id": 7}


def test_http_exception(client):
    body = _problem(client.get("/boom/http"), 404, "http_error")
    assert body["message"] == "Missing resource"
    assert "details" not in body


def test_http_exception_with_structured_detail(client):
    body = _problem(client.get("/boom/http-structured"), 418, "http_error")
    assert body["details"] == {"detail": {"reason": "teapot"}}


def test_unknown_route(client):
    body = _problem(client.get("/no-such-route"), 404, "http_error")
    assert body["message"] == "Not Found"


def test_validation_error_lists_errors(client):
    body = _problem(client.get("/boom/validation", params={"board_id": "abc"}), 422, "validation_error")
    assert isinstance(body["details"]["errors"], list)
    assert body["details"]["errors"][0]["loc"] == ["query", "board_id"]


def test_unhandled_error_hides_internals(client):
    response = client.get("/boom/unhandled")
    body = _problem(response, 500, "internal_error")
    assert body["message"] == "An unexpected error occurred"
    assert "secret-internal-detail" not in response.text


def test_trace_id_matches_request_id(client):
    response = client.get("/boom/domain/state", headers={"X-Request-Id": "req-trace-1"})
    assert response.headers["X-Request-Id"] == "req-trace-1"
    assert _problem(response, 409, "invalid_state")["trace_id"] == "req-trace-1"
