import os
import tempfile

# Must be set before trivia.core.config is imported
os.environ.setdefault("TRIVIA_ARCHIVE_BACKEND", "none")
os.environ.setdefault("TRIVIA_LOG_DIR", tempfile.mkdtemp(prefix="trivia-logs-"))

from datetime import datetime, timedelta, timezone

import pytest

from trivia.core.config import Settings
from trivia.schemas import QuestionOption, QuizContent, StandardQuestion, TrueFalseQuestion
from trivia.services.lifecycle import GameCoordinator


class FakeConnection:
    """Stands in for a WebSocket; records every JSON frame sent to it."""

    def __init__(self, name: str = "conn", fail_sends: bool = False):
        self.id = name
        self.is_open = True
        self.fail_sends = fail_sends
        self.sent = []
        self.close_code = None

    async def send_json(self, data: dict) -> None:
        if self.fail_sends:
            raise RuntimeError("socket gone")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.is_open = False
        self.close_code = code

    def types(self):
        return [message["type"] for message in self.sent]

    def of_type(self, message_type: str):
        return [message for message in self.sent if message["type"] == message_type]

    def __repr__(self):
        return f"FakeConnection({self.id})"


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class MemoryArchive:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.documents = []

    async def store(self, document: dict) -> None:
        if self.fail:
            raise ConnectionError("document store unavailable")
        self.documents.append(document)


def make_quiz(count: int = 2) -> QuizContent:
    questions = []
    for index in range(count):
        if index % 2 == 0:
            questions.append(TrueFalseQuestion(id=f"q{index}", question=f"Statement {index}?", correct_answer=True))
        else:
            questions.append(
                StandardQuestion(
                    id=f"q{index}",
                    question=f"Pick one {index}",
                    options=[QuestionOption(text="A"), QuestionOption(text="B"), QuestionOption(text="C")],
                    correct_answers=[1],
                )
            )
    return QuizContent(id="quiz-1", title="Pub Quiz", questions=questions)


async def open_question(coordinator: GameCoordinator, room_id: str) -> None:
    """Let a pending countdown fire so the question is revealed."""
    task = coordinator.timers.pending(room_id)
    if task is not None:
        await task


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def archive():
    return MemoryArchive()


@pytest.fixture()
def config():
    return Settings(countdown_seconds=0, archive_backend="none")


@pytest.fixture()
def coordinator(config, archive, clock):
    return GameCoordinator.build(config, archive=archive, clock=clock)


@pytest.fixture()
def host():
    return FakeConnection("host")
