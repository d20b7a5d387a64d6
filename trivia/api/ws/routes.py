import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from trivia.dependencies import get_coordinator
from trivia.services.connections import SocketConnection
from trivia.services.dispatcher import MessageDispatcher
from trivia.services.lifecycle import GameCoordinator

router = APIRouter()
logger = logging.getLogger("coordinator")


@router.websocket("/ws")
async def game_socket(websocket: WebSocket, coordinator: GameCoordinator = Depends(get_coordinator)):
    await websocket.accept()
    connection = SocketConnection(websocket)
    dispatcher = MessageDispatcher(coordinator)
    logger.info("Socket connected %r", connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            # Text and binary frames both carry JSON
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            await dispatcher.handle(connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        logger.info("Socket closed %r", connection)
        await dispatcher.connection_closed(connection)
