"""HTTP helper utilities for tests."""

from __future__ import annotations

API = "/api/v1"
AUTH = f"{API}/auth"


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization`` header for ``token``."""
    return {"Authorization": f"Bearer {token}"}


def assert_problem(resp, status: int, code: str | None = None) -> dict:
    """Check an RFC 7807 error response and return its body.

    Parameters
    ----------
    resp:
        Flask test response.
    status:
        Expected HTTP status.
    code:
        Expected stable ``code`` field, when given.
    """
    assert resp.status_code == status, resp.get_data(as_text=True)
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["status"] == status
    assert body["request_id"]
    if code is not None:
        assert body["code"] == code
    return body
