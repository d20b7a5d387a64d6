from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import Field, StrictBool, StrictInt

from trivia.core.time import utc_now
from trivia.schemas.base import WireModel
from trivia.schemas.quiz import GameSettings, QuizContent

# bool for true-false questions, one or more option indices for standard ones
RawAnswer = Union[StrictBool, StrictInt, List[StrictInt]]


class RoomStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class Player(WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class Participant(Player):
    joined_at: datetime = Field(default_factory=utc_now)


class Answer(WireModel):
    participant_id: str
    question_id: str
    question_index: int
    answer: RawAnswer
    answered_at: datetime
    is_correct: bool
    points: int


class AnsweredQuestion(WireModel):
    question_index: int
    question_id: str
    started_at: datetime
    opened: bool = False
    ends_at: Optional[datetime] = None
    answers: List[Answer] = Field(default_factory=list)

    @property
    def accepting_answers(self) -> bool:
        return self.opened and self.ends_at is None

    def answer_for(self, participant_id: str) -> Optional[Answer]:
        for answer in self.answers:
            if answer.participant_id == participant_id:
                return answer
        return None


class ScoreEntry(WireModel):
    id: str
    name: str
    points: int


class Room(WireModel):
    """A single trivia game. Holds no connection handles."""

    id: str
    game_pin: str
    quiz_id: Optional[str] = None
    quiz_title: Optional[str] = None
    host_id: Optional[str] = None
    status: RoomStatus = RoomStatus.WAITING
    participants: List[Participant] = Field(default_factory=list)
    current_question_index: int = 0
    total_questions: int = 0
    answered_questions: List[AnsweredQuestion] = Field(default_factory=list)
    settings: GameSettings = Field(default_factory=GameSettings)
    quiz_data: QuizContent = Field(default_factory=QuizContent)
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def participant(self, participant_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def answered_question(self, question_index: int) -> Optional[AnsweredQuestion]:
        for entry in self.answered_questions:
            if entry.question_index == question_index:
                return entry
        return None

    def snapshot(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RoomSummary(WireModel):
    id: str
    quiz_title: Optional[str]
    status: RoomStatus
    player_count: int
    current_question_index: int
    total_questions: int


class RosterEntry(Participant):
    is_online: bool = False


class RoomView(WireModel):
    id: str
    game_pin: str
    quiz_title: Optional[str]
    status: RoomStatus
    current_question_index: int
    total_questions: int
    participants: List[RosterEntry]
    scoreboard: List[ScoreEntry]
    settings: GameSettings
