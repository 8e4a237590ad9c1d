"""FastAPI application exposing the GPT/Claude relay over HTTP."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth import make_token_guard, resolve_token
from .config import load_config
from .errors import BridgeError, error_body
from .relay import Relay

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request models
# -----------------------------
# Emptiness and priority are checked by the relay so every caller gets
# the same invalid_input error.
class SubmitRequest(BaseModel):
    body: str = Field(default="", description="Message text from the producer.")
    priority: str = Field(default="normal", description="low | normal | high")


class ReplyRequest(BaseModel):
    body: str = Field(default="", description="Reply text from the consumer.")


# -----------------------------
# Utilities
# -----------------------------
def _error(kind: str, detail: Any, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(kind, detail))


def _make_relay(cfg: Dict[str, Any]) -> Relay:
    relay_cfg = cfg.get("relay", {})
    return Relay(
        sender=str(relay_cfg.get("sender") or "GPT"),
        recipient=str(relay_cfg.get("recipient") or "Claude"),
    )


def _configure_logging(cfg: Dict[str, Any]) -> None:
    level = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    try:
        logging.getLogger("bridge_server").setLevel(int(level) if level.isdigit() else level)
    except ValueError as e:
        raise RuntimeError(f"Invalid logging.level {level!r}: {e}")


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BridgeError)
    async def bridge_error(request: Request, exc: BridgeError) -> JSONResponse:
        return _error(exc.kind, exc.detail, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        detail = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error("invalid_input", detail, 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        kind = "not_found" if exc.status_code == 404 else "http_error"
        return _error(kind, exc.detail, exc.status_code)


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    relay: Optional[Relay] = None,
) -> FastAPI:
    cfg = load_config(config_path)
    _configure_logging(cfg)

    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])
    token = resolve_token(cfg)
    relay = relay if relay is not None else _make_relay(cfg)

    app = FastAPI(title="GPT-Claude Bridge", version=__version__)
    app.state.relay = relay
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)

    if token is None:
        logger.warning("auth disabled: relay routes accept unauthenticated requests")
        router = APIRouter()
    else:
        router = APIRouter(dependencies=[Depends(make_token_guard(token))])

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "version": __version__, "auth_enabled": token is not None}

    @app.get("/status")
    def status() -> Dict[str, Any]:
        stats = relay.stats()
        return {
            "success": True,
            "status": "online",
            "version": __version__,
            **stats.to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @router.post("/messages", status_code=201)
    def submit(req: SubmitRequest) -> Dict[str, Any]:
        msg = relay.submit(req.body, req.priority)
        # ids are dense from 1 over an append-only log
        return {"success": True, "id": msg.id, "queueLength": msg.id}

    # Must be registered before /messages/{message_id}.
    @router.get("/messages/pending")
    def poll() -> Dict[str, Any]:
        messages = [m.to_dict() for m in relay.poll()]
        return {"success": True, "messages": messages, "count": len(messages)}

    @router.get("/messages")
    def list_messages() -> Dict[str, Any]:
        messages = [m.to_dict() for m in relay.list_messages()]
        return {"success": True, "messages": messages, "count": len(messages)}

    @router.get("/messages/{message_id}")
    def get_message(message_id: int) -> Dict[str, Any]:
        return {"success": True, "message": relay.get_message(message_id).to_dict()}

    @router.post("/messages/{message_id}/replies")
    def respond(message_id: int, req: ReplyRequest) -> Dict[str, Any]:
        reply = relay.respond(message_id, req.body)
        return {"success": True, "replyId": reply.id}

    @router.get("/replies")
    def list_replies() -> Dict[str, Any]:
        replies = [r.to_dict() for r in relay.list_replies()]
        return {"success": True, "replies": replies, "count": len(replies)}

    app.include_router(router)
    return app
