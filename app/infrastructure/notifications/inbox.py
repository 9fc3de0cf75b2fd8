"""Registry of open inbox websockets."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class InboxConnections:
    """Open inbox sockets per user; a user may have several devices online."""

    def __init__(self) -> None:
        self._sockets: defaultdict[int, set[WebSocket]] = defaultdict(set)

    async def register(self, user_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self._sockets[user_id].add(websocket)

    def unregister(self, user_id: int, websocket: WebSocket) -> None:
        sockets = self._sockets.get(user_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._sockets[user_id]

    def online_among(self, user_ids: Iterable[int]) -> list[int]:
        """Return the users of ``user_ids`` with an open inbox, without repeats."""

        return [user_id for user_id in dict.fromkeys(user_ids) if self._sockets.get(user_id)]

    def socket_count(self, user_id: int | None = None) -> int:
        if user_id is not None:
            return len(self._sockets.get(user_id, ()))
        return sum(len(sockets) for sockets in self._sockets.values())

    async def deliver(self, user_ids: Iterable[int], message: dict[str, Any]) -> int:
        """Push ``message`` to every socket of ``user_ids``.

        Sockets that fail to send are dropped. Returns how many sockets got it.
        """

        targets = [
            (user_id, websocket)
            for user_id in dict.fromkeys(user_ids)
            for websocket in list(self._sockets.get(user_id, ()))
        ]
        if not targets:
            return 0
        results = await asyncio.gather(
            *(websocket.send_json(message) for _, websocket in targets),
            return_exceptions=True,
        )
        delivered = 0
        for (user_id, websocket), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.debug("Dropping inbox socket of user %s: %s", user_id, result)
                self.unregister(user_id, websocket)
            else:
                delivered += 1
        return delivered


inbox_connections = InboxConnections()


__all__ = ["InboxConnections", "inbox_connections"]
