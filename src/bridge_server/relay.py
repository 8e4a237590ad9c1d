"""In-memory relay between a producer role and a consumer role (thread-safe)."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List

from .errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "normal", "high")

PENDING = "pending"
PROCESSING = "processing"
RESPONDED = "responded"


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} must be a non-empty string")
    return value


# -----------------------------
# Records
# -----------------------------
@dataclass
class Message:
    id: int
    sender: str
    recipient: str
    body: str
    priority: str = "normal"
    created_at: str = ""
    state: str = PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "recipient": self.recipient,
            "body": self.body,
            "priority": self.priority,
            "createdAt": self.created_at,
            "state": self.state,
        }


@dataclass
class Reply:
    id: int
    message_id: int
    body: str
    original_message: str = ""  # body of the referenced message at reply time
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "messageId": self.message_id,
            "originalMessage": self.original_message,
            "body": self.body,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class RelayStats:
    pending: int = 0
    processing: int = 0
    responded: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"pending": self.pending, "processing": self.processing, "responded": self.responded}


# -----------------------------
# Relay
# -----------------------------
class Relay:
    """Mailbox holding an append-only message log and reply log.

    Every public method runs as one critical section under ``self._lock``,
    so ``poll`` hands each pending message off exactly once even when
    requests arrive concurrently. Returned records are copies; mutating
    them never touches relay state.

    Public API:
        submit(body, priority="normal") -> Message
        poll() -> List[Message]
        respond(message_id, body) -> Reply
        list_replies() -> List[Reply]
        stats() -> RelayStats
    """

    def __init__(self, sender: str = "GPT", recipient: str = "Claude") -> None:
        self.sender = sender
        self.recipient = recipient
        self._messages: List[Message] = []
        self._index: Dict[int, Message] = {}
        self._replies: List[Reply] = []
        self._next_message_id = 1
        self._next_reply_id = 1
        self._lock = threading.Lock()

    # --------- producer side ----------
    def submit(self, body: str, priority: str = "normal") -> Message:
        """Queue a new pending message from the producer."""
        _require_text(body, "body")
        if priority not in PRIORITIES:
            raise InvalidInput(f"priority must be one of {', '.join(PRIORITIES)}")

        with self._lock:
            msg = Message(
                id=self._next_message_id,
                sender=self.sender,
                recipient=self.recipient,
                body=body,
                priority=priority,
                created_at=_utc_iso(),
            )
            self._next_message_id += 1
            self._messages.append(msg)
            self._index[msg.id] = msg
            logger.info("message %d queued (priority=%s, queue=%d)", msg.id, priority, len(self._messages))
            return replace(msg)

    def list_replies(self) -> List[Reply]:
        with self._lock:
            return [replace(r) for r in self._replies]

    # --------- consumer side ----------
    def poll(self) -> List[Message]:
        """Hand off every pending message, marking each as processing."""
        with self._lock:
            handed: List[Message] = []
            for msg in self._messages:
                if msg.state == PENDING:
                    msg.state = PROCESSING
                    handed.append(replace(msg))
            if handed:
                logger.info("handed off %d message(s)", len(handed))
            return handed

    def respond(self, message_id: int, body: str) -> Reply:
        """Record a reply and mark the message responded.

        Allowed from either ``pending`` or ``processing``; repeated calls
        append additional replies.
        """
        _require_text(body, "body")
        with self._lock:
            msg = self._index.get(message_id)
            if msg is None:
                raise NotFound(f"message {message_id} not found")
            msg.state = RESPONDED
            reply = Reply(
                id=self._next_reply_id,
                message_id=message_id,
                body=body,
                original_message=msg.body,
                created_at=_utc_iso(),
            )
            self._next_reply_id += 1
            self._replies.append(reply)
            logger.info("reply %d recorded for message %d", reply.id, message_id)
            return replace(reply)

    # --------- reads ----------
    def list_messages(self) -> List[Message]:
        with self._lock:
            return [replace(m) for m in self._messages]

    def get_message(self, message_id: int) -> Message:
        with self._lock:
            msg = self._index.get(message_id)
            if msg is None:
                raise NotFound(f"message {message_id} not found")
            return replace(msg)

    def stats(self) -> RelayStats:
        with self._lock:
            counts = {PENDING: 0, PROCESSING: 0, RESPONDED: 0}
            for msg in self._messages:
                counts[msg.state] += 1
            return RelayStats(
                pending=counts[PENDING],
                processing=counts[PROCESSING],
                responded=counts[RESPONDED],
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
