import uuid
from typing import Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState


class Connection(Protocol):
    id: str

    @property
    def is_open(self) -> bool: ...

    async def send_json(self, data: dict) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class SocketConnection:
    """Adapter giving a FastAPI WebSocket the ``Connection`` shape."""

    def __init__(self, websocket: WebSocket):
        self.id = str(uuid.uuid4())[:8]
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, data: dict) -> None:
        await self.websocket.send_json(data)

    async def close(self, code: int = 1000) -> None:
        if self.is_open:
            await self.websocket.close(code=code)

    def __repr__(self) -> str:
        return f"SocketConnection({self.id})"
