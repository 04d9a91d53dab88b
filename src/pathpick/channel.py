# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-process message channel between the UI and the in-page agent.

Two directions:
- requests (UI → agent): ``request()`` always resolves to a ``Response``.
  No handler attached, a handler that answers nothing, or a handler that
  raises all become ``Response(success=False)``, and callers treat
  "no response" exactly like "declined".
- events (agent → UI): ``emit()`` is fire-and-forget.  Subscribers run in
  subscription order; a failing subscriber is logged and skipped.

No ordering is promised across the two directions; every message carries
its full state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from .errors import ChannelError, ProtocolError
from .protocol import Response, parse_request

logger = logging.getLogger("pathpick.channel")

RequestHandler = Callable[[Any], Response | None]
EventListener = Callable[[BaseModel], None]


class MessageChannel:
    """Request/response plus broadcast events over direct calls."""

    def __init__(self) -> None:
        self._handler: RequestHandler | None = None
        self._listeners: list[EventListener] = []
        self._sent: int = 0
        self._dropped: int = 0

    # -- Agent side --

    def serve(self, handler: RequestHandler) -> None:
        """Attach the agent's request handler (replaces any previous one)."""
        self._handler = handler

    def close(self) -> None:
        """Detach the agent: later requests fail with "no receiver"."""
        self._handler = None

    @property
    def connected(self) -> bool:
        return self._handler is not None

    def emit(self, event: BaseModel) -> bool:
        """Deliver *event* to every subscriber. False when nobody received it."""
        if not self._listeners:
            self._dropped += 1
            logger.debug("No listener for %s", getattr(event, "action", type(event).__name__))
            return False
        delivered = False
        for listener in list(self._listeners):
            try:
                listener(event)
                delivered = True
            except Exception:
                logger.warning("Event listener failed for %s", getattr(event, "action", "?"), exc_info=True)
        self._sent += 1
        return delivered

    # -- UI side --

    def subscribe(self, listener: EventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def request(self, message: BaseModel | dict) -> Response:
        """Send *message* to the agent and return its response. Never raises."""
        try:
            typed = parse_request(message) if isinstance(message, dict) else message
        except ProtocolError as e:
            return Response.fail(str(e))
        action = getattr(typed, "action", type(typed).__name__)
        try:
            return self._dispatch(typed)
        except ChannelError as e:
            logger.warning("Request %s failed: %s", action, e)
            return Response.fail(str(e))

    def _dispatch(self, message: BaseModel) -> Response:
        handler = self._handler
        if handler is None:
            raise ChannelError("no receiver")
        try:
            response = handler(message)
        except Exception as e:
            raise ChannelError(f"receiver error: {e}") from e
        if response is None:
            raise ChannelError("no response")
        return response

    @property
    def stats(self) -> dict[str, int]:
        return {"sent": self._sent, "dropped": self._dropped}
