from collections import deque
from typing import Callable, Deque, Dict, List, NamedTuple

from trivia.core.time import epoch_ms

DEFAULT_CAPACITY = 50


class BufferedEvent(NamedTuple):
    timestamp: int
    event: dict


class ReplayBuffer:
    """Per-room FIFO of recently broadcast events, used to catch up reconnects.

    Retention is bounded by capacity only; the oldest entry is evicted first.
    Timestamps are epoch milliseconds bumped to stay strictly increasing within
    a room, so every entry can serve as a replay cursor.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, clock: Callable[[], int] = epoch_ms):
        self.capacity = capacity
        self.clock = clock
        self._events: Dict[str, Deque[BufferedEvent]] = {}
        self._last: Dict[str, int] = {}

    def record(self, room_id: str, event: dict) -> BufferedEvent:
        entries = self._events.get(room_id)
        if entries is None:
            entries = self._events[room_id] = deque(maxlen=self.capacity)
        timestamp = self.clock()
        last = self._last.get(room_id)
        if last is not None and timestamp <= last:
            timestamp = last + 1
        self._last[room_id] = timestamp
        entry = BufferedEvent(timestamp, event)
        entries.append(entry)
        return entry

    def replay_since(self, room_id: str, since: int) -> List[BufferedEvent]:
        entries = self._events.get(room_id)
        if not entries:
            return []
        return [entry for entry in entries if entry.timestamp > since]

    def discard(self, room_id: str) -> None:
        self._events.pop(room_id, None)
        self._last.pop(room_id, None)

    def __len__(self) -> int:
        return len(self._events)
