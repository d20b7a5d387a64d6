import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from trivia.core.errors import GameError, MalformedMessage, UnknownMessageType
from trivia.core.time import epoch_ms
from trivia.schemas.messages import (
    INBOUND_TYPES,
    CreateGameMessage,
    DisconnectPlayerMessage,
    ErrorEvent,
    FinishGameMessage,
    GetTimeMessage,
    JoinGameMessage,
    NextQuestionMessage,
    QuestionTimeoutMessage,
    ReconnectMessage,
    ServerTimeEvent,
    StartGameMessage,
    SubmitAnswerMessage,
    inbound_adapter,
)
from trivia.services.connections import Connection
from trivia.services.lifecycle import GameCoordinator


def parse_message(raw: Any):
    """Turn a text frame (or already decoded object) into an inbound message model."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise MalformedMessage("Invalid JSON")
    if not isinstance(raw, dict):
        raise MalformedMessage("Message must be a JSON object")
    if raw.get("type") not in INBOUND_TYPES:
        raise UnknownMessageType()
    try:
        return inbound_adapter.validate_python(raw)
    except ValidationError as exc:
        raise MalformedMessage(f"Invalid {raw['type']} message: {exc.error_count()} invalid field(s)")


class MessageDispatcher:
    """Routes one socket's inbound frames to the coordinator."""

    def __init__(self, coordinator: GameCoordinator):
        self.logger = logging.getLogger("coordinator")
        self.coordinator = coordinator
        self._handlers = {
            CreateGameMessage: self._create_game,
            JoinGameMessage: self._join_game,
            ReconnectMessage: self._reconnect,
            StartGameMessage: self._start_game,
            NextQuestionMessage: self._next_question,
            SubmitAnswerMessage: self._submit_answer,
            QuestionTimeoutMessage: self._question_timeout,
            DisconnectPlayerMessage: self._disconnect_player,
            FinishGameMessage: self._finish_game,
            GetTimeMessage: self._get_time,
        }

    async def handle(self, connection: Connection, raw: Any) -> None:
        game_id: Optional[str] = None
        try:
            message = parse_message(raw)
            game_id = getattr(message, "game_id", None)
            self.logger.debug("Incoming %s from %r", message.type, connection)
            await self._handlers[type(message)](connection, message)
        except GameError as exc:
            self.logger.info("Rejected message from %r: %s (%s)", connection, exc.message, exc.code)
            await self.coordinator.router.unicast(
                connection, ErrorEvent(message=exc.message, code=exc.code, game_id=game_id)
            )
        except Exception:
            self.logger.exception("Failed to handle message from %r", connection)
            await self.coordinator.router.unicast(
                connection, ErrorEvent(message="Internal server error", code="internal_error", game_id=game_id)
            )

    async def _create_game(self, connection: Connection, message: CreateGameMessage):
        data = message.data
        await self.coordinator.create_room(
            connection,
            data.quiz_data,
            data.settings,
            quiz_id=data.quiz_id,
            quiz_title=data.quiz_title,
            host_id=data.host_id,
        )

    async def _join_game(self, connection: Connection, message: JoinGameMessage):
        await self.coordinator.join(message.game_id, message.player, connection)

    async def _reconnect(self, connection: Connection, message: ReconnectMessage):
        await self.coordinator.reconnect(message.game_id, message.player_id, connection, since=message.since)

    async def _start_game(self, connection: Connection, message: StartGameMessage):
        await self.coordinator.start_room(message.game_id)

    async def _next_question(self, connection: Connection, message: NextQuestionMessage):
        await self.coordinator.advance_question(message.game_id)

    async def _submit_answer(self, connection: Connection, message: SubmitAnswerMessage):
        await self.coordinator.submit_answer(
            message.game_id, message.player_id, message.question_index, message.answer, connection
        )

    async def _question_timeout(self, connection: Connection, message: QuestionTimeoutMessage):
        await self.coordinator.reveal_results(message.game_id)

    async def _disconnect_player(self, connection: Connection, message: DisconnectPlayerMessage):
        await self.coordinator.remove_participant(message.game_id, message.player_id)

    async def _finish_game(self, connection: Connection, message: FinishGameMessage):
        await self.coordinator.finish_room(message.game_id)

    async def _get_time(self, connection: Connection, message: GetTimeMessage):
        await self.coordinator.router.unicast(connection, ServerTimeEvent(time=epoch_ms()))

    async def connection_closed(self, connection: Connection) -> None:
        await self.coordinator.connection_closed(connection)
