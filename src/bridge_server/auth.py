"""Bearer-token guard for the relay routes.

The guard lives outside :class:`bridge_server.relay.Relay`; the server
attaches it as a router dependency only when ``auth.enabled`` is true.
"""
from __future__ import annotations

import hmac
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Request

from .errors import Unauthorized

logger = logging.getLogger(__name__)


def resolve_token(cfg: Dict[str, Any]) -> Optional[str]:
    """Return the configured token, or None when auth is disabled.

    Raises RuntimeError if auth is enabled without a token.
    """
    auth_cfg = cfg.get("auth", {}) or {}
    if not auth_cfg.get("enabled", False):
        return None
    token = auth_cfg.get("token")
    # env overrides may have coerced a numeric token to int
    token = "" if token is None else str(token).strip()
    if not token:
        raise RuntimeError("auth.enabled is true but auth.token is not set.")
    return token


def make_token_guard(token: str) -> Callable[[Request], None]:
    """Build a FastAPI dependency that checks ``Authorization: Bearer <token>``."""
    expected = token.encode("utf-8")

    def require_token(request: Request) -> None:
        header = request.headers.get("authorization", "")
        scheme, _, supplied = header.partition(" ")
        if scheme.lower() != "bearer" or not supplied:
            raise Unauthorized("missing bearer token")
        if not hmac.compare_digest(supplied.strip().encode("utf-8"), expected):
            logger.warning("rejected request to %s: bad token", request.url.path)
            raise Unauthorized("invalid bearer token")

    return require_token
