from __future__ import annotations

from bridge_server.errors import InvalidInput, NotFound, Unauthorized, error_body


def test_error_body_shape():
    assert error_body("not_found", "gone") == {
        "success": False,
        "error": {"kind": "not_found", "detail": "gone"},
    }


def test_exceptions_use_shared_envelope():
    for exc, status in [(InvalidInput("bad"), 400), (NotFound("bad"), 404), (Unauthorized("bad"), 401)]:
        assert exc.status_code == status
        assert exc.to_dict() == error_body(exc.kind, "bad")
