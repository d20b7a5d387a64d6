from trivia.schemas.game import (
    Answer,
    AnsweredQuestion,
    Participant,
    Player,
    Room,
    RoomStatus,
    RoomSummary,
    RoomView,
    RosterEntry,
    ScoreEntry,
)
from trivia.schemas.quiz import (
    GameSettings,
    Question,
    QuestionOption,
    QuizContent,
    StandardQuestion,
    TrueFalseQuestion,
)

__all__ = [
    "Answer",
    "AnsweredQuestion",
    "Participant",
    "Player",
    "Room",
    "RoomStatus",
    "RoomSummary",
    "RoomView",
    "RosterEntry",
    "ScoreEntry",
    "GameSettings",
    "Question",
    "QuestionOption",
    "QuizContent",
    "StandardQuestion",
    "TrueFalseQuestion",
]
