import logging
from typing import List, Union

from trivia.schemas.base import WireModel
from trivia.services.connections import Connection
from trivia.services.registry import ConnectionRegistry
from trivia.services.replay_buffer import ReplayBuffer

Event = Union[WireModel, dict]


def _payload(event: Event) -> dict:
    if isinstance(event, WireModel):
        return event.to_wire()
    return event


class BroadcastRouter:
    """Fan room-wide events out to the host and players of a room."""

    def __init__(self, registry: ConnectionRegistry, buffer: ReplayBuffer):
        self.logger = logging.getLogger("coordinator")
        self.registry = registry
        self.buffer = buffer

    def destinations(self, room_id: str) -> List[Connection]:
        host = self.registry.host(room_id)
        targets: List[Connection] = [host] if host is not None else []
        for connection in self.registry.participant_connections(room_id):
            if any(connection is seen for seen in targets):
                continue
            targets.append(connection)
        return targets

    async def broadcast(self, room_id: str, event: Event) -> int:
        """Buffer ``event`` for replay, then send it. Returns the delivery count.

        The delivered frame carries the buffer ``timestamp``; a client echoes the
        last one it saw as the ``since`` cursor of a ``reconnect``.
        """
        payload = _payload(event)
        entry = self.buffer.record(room_id, payload)
        payload = {**payload, "timestamp": entry.timestamp}
        delivered = 0
        for connection in self.destinations(room_id):
            if not connection.is_open:
                continue
            if await self._send(connection, payload):
                delivered += 1
        return delivered

    async def unicast(self, connection: Connection, event: Event) -> bool:
        if connection is None or not connection.is_open:
            return False
        return await self._send(connection, _payload(event))

    async def _send(self, connection: Connection, payload: dict) -> bool:
        try:
            await connection.send_json(payload)
        except Exception:
            self.logger.warning("Dropping %s event for %r", payload.get("type"), connection, exc_info=True)
            return False
        return True
