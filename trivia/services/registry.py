import logging
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional

from trivia.core.errors import DuplicateRoom, NameConflict, ParticipantNotFound, RoomNotFound
from trivia.schemas.game import Participant, Room, RoomStatus
from trivia.services.connections import Connection


class JoinKind(str, Enum):
    FRESH = "fresh"
    REJOIN = "rejoin"


class RoomPosition(NamedTuple):
    status: RoomStatus
    current_question_index: int


class Binding(NamedTuple):
    room_id: str
    participant_id: Optional[str]

    @property
    def is_host(self) -> bool:
        return self.participant_id is None


class ConnectionRegistry:
    """Open rooms and the sockets bound to them.

    Room data and connections are kept in separate maps so a room can always be
    dumped to JSON. One socket may be bound in several rooms, so a close can
    unbind all of them. Nothing in here awaits, so every call is atomic with respect
    to other coroutines on the loop.
    """

    def __init__(self):
        self.logger = logging.getLogger("coordinator")
        self._rooms: Dict[str, Room] = {}
        self._hosts: Dict[str, Connection] = {}
        self._participants: Dict[str, Dict[str, Connection]] = {}
        self._bindings: Dict[Connection, List[Binding]] = {}

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def rooms(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def find(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def get(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def register_host(self, room: Room, connection: Connection) -> None:
        if room.id in self._rooms:
            raise DuplicateRoom()
        self._rooms[room.id] = room
        self._hosts[room.id] = connection
        self._participants[room.id] = {}
        self._add_binding(connection, Binding(room.id, None))

    def join_participant(self, room_id: str, participant: Participant, connection: Connection) -> JoinKind:
        room = self.get(room_id)
        if room.participant(participant.id) is not None:
            self._bind(room_id, participant.id, connection)
            return JoinKind.REJOIN
        if any(p.name == participant.name for p in room.participants):
            raise NameConflict()
        room.participants.append(participant)
        self._bind(room_id, participant.id, connection)
        return JoinKind.FRESH

    def reconnect(self, room_id: str, participant_id: str, connection: Connection) -> RoomPosition:
        room = self.get(room_id)
        if room.participant(participant_id) is None:
            raise ParticipantNotFound()
        self._bind(room_id, participant_id, connection)
        return RoomPosition(room.status, room.current_question_index)

    def remove_participant(self, room_id: str, participant_id: str) -> Optional[Connection]:
        """Drop a participant from the roster and return its detached connection."""
        room = self.get(room_id)
        participant = room.participant(participant_id)
        if participant is None:
            raise ParticipantNotFound()
        room.participants.remove(participant)
        connection = self._participants[room_id].pop(participant_id, None)
        if connection is not None:
            self._drop_binding(connection, Binding(room_id, participant_id))
        return connection

    def on_connection_closed(self, room_id: str, participant_id: str, connection: Connection) -> bool:
        """Unbind a dropped socket; the roster entry stays so the player can return."""
        sockets = self._participants.get(room_id)
        if sockets is None:
            return False
        self._drop_binding(connection, Binding(room_id, participant_id))
        # A reconnect may already have replaced this socket
        if sockets.get(participant_id) is not connection:
            return False
        del sockets[participant_id]
        return True

    def lookup(self, connection: Connection) -> List[Binding]:
        return list(self._bindings.get(connection, ()))

    def host(self, room_id: str) -> Optional[Connection]:
        return self._hosts.get(room_id)

    def participant_connection(self, room_id: str, participant_id: str) -> Optional[Connection]:
        return self._participants.get(room_id, {}).get(participant_id)

    def participant_connections(self, room_id: str) -> List[Connection]:
        return list(self._participants.get(room_id, {}).values())

    def is_online(self, room_id: str, participant_id: str) -> bool:
        connection = self.participant_connection(room_id, participant_id)
        return connection is not None and connection.is_open

    def unregister(self, room_id: str) -> Optional[Room]:
        room = self._rooms.pop(room_id, None)
        host = self._hosts.pop(room_id, None)
        if host is not None:
            self._drop_binding(host, Binding(room_id, None))
        for participant_id, connection in self._participants.pop(room_id, {}).items():
            self._drop_binding(connection, Binding(room_id, participant_id))
        return room

    def _bind(self, room_id: str, participant_id: str, connection: Connection) -> None:
        sockets = self._participants[room_id]
        previous = sockets.get(participant_id)
        if previous is not None and previous is not connection:
            self._drop_binding(previous, Binding(room_id, participant_id))
            self.logger.info("Rebinding player room=%s player=%s", room_id, participant_id)
        sockets[participant_id] = connection
        self._add_binding(connection, Binding(room_id, participant_id))

    def _add_binding(self, connection: Connection, binding: Binding) -> None:
        bindings = self._bindings.setdefault(connection, [])
        if binding not in bindings:
            bindings.append(binding)

    def _drop_binding(self, connection: Connection, binding: Binding) -> None:
        bindings = self._bindings.get(connection)
        if not bindings or binding not in bindings:
            return
        bindings.remove(binding)
        if not bindings:
            del self._bindings[connection]
