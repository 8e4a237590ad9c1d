"""Error taxonomy shared by the relay and the HTTP layer."""
from __future__ import annotations

from typing import Any, Dict


def error_body(kind: str, detail: Any) -> Dict[str, Any]:
    """Response envelope shared by every error the server returns."""
    return {"success": False, "error": {"kind": kind, "detail": detail}}


class BridgeError(Exception):
    """Base class for caller-facing errors.

    ``kind`` is the machine-readable identifier returned to clients and
    ``status_code`` the HTTP status the server maps it to.
    """

    kind: str = "bridge_error"
    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return error_body(self.kind, self.detail)


class InvalidInput(BridgeError):
    kind = "invalid_input"
    status_code = 400


class NotFound(BridgeError):
    kind = "not_found"
    status_code = 404


class Unauthorized(BridgeError):
    kind = "unauthorized"
    status_code = 401
