import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional


class RoomTimers:
    """At most one pending delayed callback per room, cancellable by room id."""

    def __init__(self):
        self.logger = logging.getLogger("coordinator")
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, room_id: str, delay: float, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        self.cancel(room_id)

        async def timer():
            try:
                await asyncio.sleep(delay)
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.logger.exception("Timer callback failed room=%s", room_id)
            finally:
                if self._tasks.get(room_id) is task:
                    del self._tasks[room_id]

        task = asyncio.create_task(timer(), name=f"room-timer-{room_id}")
        self._tasks[room_id] = task
        self.logger.debug("[timer-set] room=%s delay=%ss", room_id, delay)
        return task

    def cancel(self, room_id: str) -> bool:
        task = self._tasks.get(room_id)
        if task is None or task is asyncio.current_task():
            return False
        del self._tasks[room_id]
        if task.done():
            return False
        task.cancel()
        self.logger.debug("[timer-cancel] room=%s", room_id)
        return True

    def pending(self, room_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(room_id)

    def cancel_all(self) -> None:
        for room_id in list(self._tasks):
            self.cancel(room_id)

    def __len__(self) -> int:
        return len(self._tasks)
