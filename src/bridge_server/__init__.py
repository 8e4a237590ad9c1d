"""Bridge server package relaying messages between GPT and Claude.

The producer ("GPT") submits messages, the consumer ("Claude") polls for
pending ones and posts replies, and the producer reads the replies back.
All state lives in one in-memory :class:`~bridge_server.relay.Relay`.

Typical usage
-------------
from bridge_server import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 127.0.0.1 --port 7777
"""

from __future__ import annotations

__all__ = ["create_app", "__version__", "get_version"]

__version__ = "2.0.0"


def get_version() -> str:
    """Return the package version."""
    return __version__


def create_app(*args, **kwargs):
    """Return a configured FastAPI application.

    This forwards to :func:`bridge_server.server.create_app`; the import is
    deferred so ``import bridge_server`` works without FastAPI installed.
    """
    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)
