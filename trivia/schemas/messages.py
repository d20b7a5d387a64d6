"""Wire protocol: closed set of inbound commands and outbound events."""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, Field, TypeAdapter

from trivia.schemas.base import WireModel
from trivia.schemas.game import Player, RawAnswer, RoomStatus, ScoreEntry
from trivia.schemas.quiz import GameSettings, QuizContent


# Inbound


class CreateGameData(WireModel):
    quiz_data: QuizContent = Field(default_factory=QuizContent)
    settings: GameSettings = Field(default_factory=GameSettings)
    quiz_id: Optional[str] = None
    quiz_title: Optional[str] = None
    host_id: Optional[str] = None


class CreateGameMessage(WireModel):
    type: Literal["create_game"]
    data: CreateGameData = Field(default_factory=CreateGameData)


class JoinGameMessage(WireModel):
    type: Literal["join_game"]
    game_id: str
    player: Player


class ReconnectMessage(WireModel):
    type: Literal["reconnect"]
    game_id: str
    player_id: str = Field(validation_alias=AliasChoices("playerId", "participantId", "player_id"))
    since: int = 0


class StartGameMessage(WireModel):
    type: Literal["start_game"]
    game_id: str


class NextQuestionMessage(WireModel):
    type: Literal["next_question"]
    game_id: str


class SubmitAnswerMessage(WireModel):
    type: Literal["addAnswer", "submit_answer"]
    game_id: str
    player_id: str = Field(validation_alias=AliasChoices("playerId", "participantId", "player_id"))
    question_index: int
    answer: RawAnswer


class QuestionTimeoutMessage(WireModel):
    type: Literal["question_timeout"]
    game_id: str


class DisconnectPlayerMessage(WireModel):
    type: Literal["disconnect_player"]
    game_id: str
    player_id: str = Field(validation_alias=AliasChoices("playerId", "participantId", "player_id"))


class FinishGameMessage(WireModel):
    type: Literal["finish_game"]
    game_id: str


class GetTimeMessage(WireModel):
    type: Literal["get_time"]


InboundMessage = Annotated[
    Union[
        CreateGameMessage,
        JoinGameMessage,
        ReconnectMessage,
        StartGameMessage,
        NextQuestionMessage,
        SubmitAnswerMessage,
        QuestionTimeoutMessage,
        DisconnectPlayerMessage,
        FinishGameMessage,
        GetTimeMessage,
    ],
    Field(discriminator="type"),
]

inbound_adapter: TypeAdapter = TypeAdapter(InboundMessage)

INBOUND_TYPES = frozenset(
    {
        "create_game",
        "join_game",
        "reconnect",
        "start_game",
        "next_question",
        "addAnswer",
        "submit_answer",
        "question_timeout",
        "disconnect_player",
        "finish_game",
        "get_time",
    }
)


# Outbound


class GameCreatedEvent(WireModel):
    type: Literal["game_created"] = "game_created"
    game_id: str
    game: Dict[str, Any]


class GameStartedEvent(WireModel):
    type: Literal["game_started"] = "game_started"
    game_id: str


class JoinedEvent(WireModel):
    type: Literal["joined"] = "joined"
    game_id: str
    player: Player
    rejoined: bool = False
    status: Optional[RoomStatus] = None
    current_question_index: Optional[int] = None


class BufferedEventOut(WireModel):
    timestamp: int
    event: Dict[str, Any]


class ReconnectedEvent(WireModel):
    type: Literal["reconnected"] = "reconnected"
    game_id: str
    player_id: str
    status: RoomStatus
    current_question_index: int
    missed_events: List[BufferedEventOut] = Field(default_factory=list)


class CountdownEvent(WireModel):
    type: Literal["countdown"] = "countdown"
    game_id: str
    seconds: float
    index: int


class QuestionEvent(WireModel):
    type: Literal["question"] = "question"
    game_id: str
    index: int
    question: Dict[str, Any]
    question_type: str
    time_limit: int


class ResultsEvent(WireModel):
    type: Literal["results"] = "results"
    game_id: str
    question_index: int
    answer_count: int
    correct_count: int
    correct_answer: Optional[RawAnswer] = None
    scoreboard: List[ScoreEntry] = Field(default_factory=list)


class AnswerReceivedEvent(WireModel):
    type: Literal["answer_received"] = "answer_received"
    game_id: str
    question_index: int
    is_correct: bool
    points: int


class AnswerUpdateEvent(WireModel):
    type: Literal["answer_update"] = "answer_update"
    game_id: str
    question_index: int
    answered_count: int
    participant_count: int
    answered_questions: List[Dict[str, Any]]


class PlayerDisconnectedEvent(WireModel):
    type: Literal["player_disconnected"] = "player_disconnected"
    game_id: str
    player_id: str
    removed: bool


class DisconnectedEvent(WireModel):
    type: Literal["disconnected"] = "disconnected"
    game_id: str
    reason: str = "removed_by_host"


class GameFinishedEvent(WireModel):
    type: Literal["game_finished"] = "game_finished"
    game_id: str
    scoreboard: List[ScoreEntry]


class ServerTimeEvent(WireModel):
    type: Literal["server_time"] = "server_time"
    time: int


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str
    code: Optional[str] = None
    game_id: Optional[str] = None
