from typing import Optional


class GameError(Exception):
    """Base for every error that is reported back to the originating socket."""

    code = "game_error"
    default_message = "Game error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedMessage(GameError):
    code = "malformed_message"
    default_message = "Invalid message"


class UnknownMessageType(MalformedMessage):
    code = "unknown_message_type"
    default_message = "Unknown message type"


class RoomNotFound(GameError):
    code = "room_not_found"
    default_message = "Game not found"


class DuplicateRoom(GameError):
    code = "duplicate_room"
    default_message = "Game already exists"


class ParticipantNotFound(GameError):
    code = "participant_not_found"
    default_message = "Player not found"


class NameConflict(GameError):
    code = "name_conflict"
    default_message = "Name already taken"


class DuplicateAnswer(GameError):
    code = "duplicate_answer"
    default_message = "Already answered"


class StaleAnswer(GameError):
    code = "stale_answer"
    default_message = "Question is not open for answers"


class LateJoinRejected(GameError):
    code = "late_join_rejected"
    default_message = "Game already started"


class InvalidTransition(GameError):
    code = "invalid_transition"
    default_message = "Action not allowed in the current game state"
