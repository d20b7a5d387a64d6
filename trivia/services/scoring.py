"""Answer evaluation and point rules.

Everything here is pure: no clock reads, no I/O, no mutation of the room.
"""
import math
from datetime import datetime
from typing import List

from trivia.schemas.game import RawAnswer, Room, ScoreEntry
from trivia.schemas.quiz import StandardQuestion, TrueFalseQuestion

BASE_POINTS = 500
MAX_TIME_BONUS = 500
PENALTY_PER_SECOND = 10


def _is_option_index(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def evaluate(question, submitted: RawAnswer) -> bool:
    """Return True if ``submitted`` is a correct answer to ``question``.

    True/false questions need the exact boolean. Standard questions accept an
    option index that belongs to ``correct_answers``; a list of indices counts
    only when it selects exactly the correct set. There is no partial credit.
    """
    if isinstance(question, TrueFalseQuestion):
        return isinstance(submitted, bool) and submitted == question.correct_answer
    if isinstance(question, StandardQuestion):
        correct = set(question.correct_answers)
        if _is_option_index(submitted):
            return submitted in correct
        if isinstance(submitted, list) and all(_is_option_index(item) for item in submitted):
            return bool(submitted) and set(submitted) == correct
        return False
    return False


def score(
    is_correct: bool,
    started_at: datetime,
    answered_at: datetime,
    *,
    base_points: int = BASE_POINTS,
    max_time_bonus: int = MAX_TIME_BONUS,
    penalty_per_second: int = PENALTY_PER_SECOND,
) -> int:
    if not is_correct:
        return 0
    elapsed = max(0.0, (answered_at - started_at).total_seconds())
    bonus = max(0, max_time_bonus - penalty_per_second * math.floor(elapsed))
    return base_points + bonus


def aggregate(room: Room, participant_id: str) -> int:
    return sum(
        answer.points
        for entry in room.answered_questions
        for answer in entry.answers
        if answer.participant_id == participant_id
    )


def rank_participants(room: Room) -> List[ScoreEntry]:
    entries = [
        ScoreEntry(id=participant.id, name=participant.name, points=aggregate(room, participant.id))
        for participant in room.participants
    ]
    # sorted() is stable, so ties keep join order
    return sorted(entries, key=lambda entry: entry.points, reverse=True)
