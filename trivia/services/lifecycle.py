import asyncio
import functools
import logging
import random
from datetime import datetime
from typing import Callable, Container, Dict, List, Optional, Set

from trivia.core.config import Settings
from trivia.core.errors import (
    DuplicateAnswer,
    InvalidTransition,
    LateJoinRejected,
    ParticipantNotFound,
    RoomNotFound,
    StaleAnswer,
)
from trivia.core.time import utc_now
from trivia.schemas.game import (
    Answer,
    AnsweredQuestion,
    Participant,
    Player,
    RawAnswer,
    Room,
    RoomStatus,
    RoomSummary,
    RoomView,
    RosterEntry,
)
from trivia.schemas.messages import (
    AnswerReceivedEvent,
    AnswerUpdateEvent,
    BufferedEventOut,
    CountdownEvent,
    DisconnectedEvent,
    GameCreatedEvent,
    GameFinishedEvent,
    GameStartedEvent,
    JoinedEvent,
    PlayerDisconnectedEvent,
    QuestionEvent,
    ReconnectedEvent,
    ResultsEvent,
)
from trivia.schemas.quiz import GameSettings, QuizContent
from trivia.services import scoring
from trivia.services.archive import ArchiveSink, build_archive_sink
from trivia.services.broadcast import BroadcastRouter
from trivia.services.connections import Connection
from trivia.services.registry import Binding, ConnectionRegistry, JoinKind, RoomPosition
from trivia.services.replay_buffer import ReplayBuffer
from trivia.services.scheduler import RoomTimers

archive_logger = logging.getLogger("archive")


def generate_room_id(taken: Container[str], rng=random) -> str:
    """Draw 6-digit codes until one is not held by an open room."""
    while True:
        candidate = str(rng.randint(100000, 999999))
        if candidate not in taken:
            return candidate


class GameCoordinator:
    """Owns every open room: lifecycle, answers and fan-out.

    Each room has its own ``asyncio.Lock``; all mutations of a room and its
    registry entries happen while holding it. Rooms never share a lock.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        buffer: ReplayBuffer,
        router: BroadcastRouter,
        timers: RoomTimers,
        archive: ArchiveSink,
        config: Settings,
        clock: Callable[[], datetime] = utc_now,
        rng=random,
    ):
        self.logger = logging.getLogger("coordinator")
        self.registry = registry
        self.buffer = buffer
        self.router = router
        self.timers = timers
        self.archive = archive
        self.config = config
        self.clock = clock
        self.rng = rng
        self._locks: Dict[str, asyncio.Lock] = {}
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def build(cls, config: Settings, archive: Optional[ArchiveSink] = None, **kwargs) -> "GameCoordinator":
        registry = ConnectionRegistry()
        buffer = ReplayBuffer(config.replay_buffer_capacity)
        return cls(
            registry,
            buffer,
            BroadcastRouter(registry, buffer),
            RoomTimers(),
            archive or build_archive_sink(config),
            config,
            **kwargs,
        )

    def _lock(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            raise RoomNotFound()
        return lock

    # Queries

    def get_room(self, room_id: str) -> Room:
        return self.registry.get(room_id)

    def summaries(self) -> List[RoomSummary]:
        return [
            RoomSummary(
                id=room.id,
                quiz_title=room.quiz_title,
                status=room.status,
                player_count=len(room.participants),
                current_question_index=room.current_question_index,
                total_questions=room.total_questions,
            )
            for room in self.registry.rooms()
        ]

    def room_view(self, room_id: str) -> RoomView:
        room = self.registry.get(room_id)
        roster = [
            RosterEntry(**participant.model_dump(), is_online=self.registry.is_online(room_id, participant.id))
            for participant in room.participants
        ]
        return RoomView(
            id=room.id,
            game_pin=room.game_pin,
            quiz_title=room.quiz_title,
            status=room.status,
            current_question_index=room.current_question_index,
            total_questions=room.total_questions,
            participants=roster,
            scoreboard=scoring.rank_participants(room),
            settings=room.settings,
        )

    # Lifecycle

    async def create_room(
        self,
        host: Connection,
        quiz: QuizContent,
        settings: Optional[GameSettings] = None,
        *,
        quiz_id: Optional[str] = None,
        quiz_title: Optional[str] = None,
        host_id: Optional[str] = None,
    ) -> Room:
        # No await between drawing the id and registering it
        room_id = generate_room_id(self.registry, self.rng)
        room = Room(
            id=room_id,
            game_pin=room_id,
            quiz_id=quiz_id or quiz.id,
            quiz_title=quiz_title or quiz.title,
            host_id=host_id,
            total_questions=len(quiz.questions),
            settings=settings or GameSettings(),
            quiz_data=quiz,
            created_at=self.clock(),
        )
        self.registry.register_host(room, host)
        self._locks[room_id] = asyncio.Lock()
        self.logger.info("Game created room=%s questions=%s", room_id, room.total_questions)
        await self.router.unicast(host, GameCreatedEvent(game_id=room_id, game=room.snapshot()))
        return room

    async def join(self, room_id: str, player: Player, connection: Connection) -> JoinKind:
        async with self._lock(room_id):
            room = self.registry.get(room_id)
            existing = room.participant(player.id)
            if existing is None and room.status != RoomStatus.WAITING and not room.settings.allow_late_joins:
                raise LateJoinRejected()
            participant = existing or Participant(id=player.id, name=player.name, joined_at=self.clock())
            kind = self.registry.join_participant(room_id, participant, connection)
            self.logger.info("Player %s room=%s player=%s name=%r", kind.value, room_id, player.id, player.name)
            if kind is JoinKind.FRESH:
                await self.router.broadcast(room_id, JoinedEvent(game_id=room_id, player=participant))
            else:
                await self.router.unicast(
                    connection,
                    JoinedEvent(
                        game_id=room_id,
                        player=participant,
                        rejoined=True,
                        status=room.status,
                        current_question_index=room.current_question_index,
                    ),
                )
            return kind

    async def reconnect(self, room_id: str, participant_id: str, connection: Connection, since: int = 0) -> RoomPosition:
        async with self._lock(room_id):
            position = self.registry.reconnect(room_id, participant_id, connection)
            missed = self.buffer.replay_since(room_id, since)
            self.logger.info(
                "Player reconnected room=%s player=%s since=%s replayed=%s", room_id, participant_id, since, len(missed)
            )
            await self.router.unicast(
                connection,
                ReconnectedEvent(
                    game_id=room_id,
                    player_id=participant_id,
                    status=position.status,
                    current_question_index=position.current_question_index,
                    missed_events=[BufferedEventOut(timestamp=entry.timestamp, event=entry.event) for entry in missed],
                ),
            )
            return position

    async def start_room(self, room_id: str) -> None:
        async with self._lock(room_id):
            room = self.registry.get(room_id)
            if room.status != RoomStatus.WAITING:
                raise InvalidTransition("Game already started")
            room.status = RoomStatus.ACTIVE
            room.current_question_index = 0
            room.started_at = self.clock()
            self.logger.info("Game started room=%s players=%s", room_id, len(room.participants))
            await self.router.unicast(self.registry.host(room_id), GameStartedEvent(game_id=room_id))
            await self._advance(room)

    async def advance_question(self, room_id: str) -> None:
        async with self._lock(room_id):
            room = self.registry.get(room_id)
            if room.status != RoomStatus.ACTIVE:
                raise InvalidTransition("Game is not active")
            await self._advance(room)

    async def _advance(self, room: Room) -> None:
        if room.current_question_index >= room.total_questions:
            await self._finish(room)
            return
        index = room.current_question_index
        question = room.quiz_data.questions[index]
        room.answered_questions.append(
            AnsweredQuestion(question_index=index, question_id=question.id, started_at=self.clock())
        )
        seconds = self.config.countdown_seconds
        await self.router.broadcast(room.id, CountdownEvent(game_id=room.id, seconds=seconds, index=index))
        self.timers.schedule(room.id, seconds, functools.partial(self._reveal_question, room.id, index))
        room.current_question_index = index + 1
        self.logger.info("Countdown room=%s question=%s seconds=%s", room.id, index, seconds)

    async def _reveal_question(self, room_id: str, index: int) -> None:
        lock = self._locks.get(room_id)
        if lock is None:
            return
        async with lock:
            room = self.registry.find(room_id)
            if room is None or room.status != RoomStatus.ACTIVE or not room.answered_questions:
                return
            entry = room.answered_questions[-1]
            if entry.question_index != index or entry.opened or entry.ends_at is not None:
                return
            # Time bonus runs from the moment players can see the question
            entry.started_at = self.clock()
            entry.opened = True
            question = room.quiz_data.questions[index]
            await self.router.broadcast(
                room_id,
                QuestionEvent(
                    game_id=room_id,
                    index=index,
                    question=question.public_view(),
                    question_type=question.type,
                    time_limit=room.settings.question_time_limit,
                ),
            )
            self.logger.info("Question revealed room=%s question=%s", room_id, index)

    async def submit_answer(
        self,
        room_id: str,
        participant_id: str,
        question_index: int,
        raw_answer: RawAnswer,
        connection: Optional[Connection] = None,
    ) -> Answer:
        async with self._lock(room_id):
            room = self.registry.get(room_id)
            if room.status != RoomStatus.ACTIVE:
                raise StaleAnswer("Game is not active")
            if room.participant(participant_id) is None:
                raise ParticipantNotFound()
            expected = room.current_question_index - 1
            if question_index != expected:
                raise StaleAnswer()
            entry = room.answered_question(expected)
            if entry is None or not entry.accepting_answers:
                raise StaleAnswer()
            if entry.answer_for(participant_id) is not None:
                raise DuplicateAnswer()

            question = room.quiz_data.questions[expected]
            answered_at = self.clock()
            is_correct = scoring.evaluate(question, raw_answer)
            points = scoring.score(
                is_correct,
                entry.started_at,
                answered_at,
                base_points=self.config.base_points,
                max_time_bonus=self.config.max_time_bonus,
                penalty_per_second=self.config.penalty_per_second,
            )
            answer = Answer(
                participant_id=participant_id,
                question_id=question.id,
                question_index=expected,
                answer=raw_answer,
                answered_at=answered_at,
                is_correct=is_correct,
                points=points,
            )
            entry.answers.append(answer)
            self.logger.info(
                "Answer recorded room=%s player=%s question=%s is_correct=%s points=%s",
                room_id,
                participant_id,
                expected,
                is_correct,
                points,
            )

            reply_to = connection or self.registry.participant_connection(room_id, participant_id)
            await self.router.unicast(
                reply_to,
                AnswerReceivedEvent(game_id=room_id, question_index=expected, is_correct=is_correct, points=points),
            )
            await self.router.unicast(
                self.registry.host(room_id),
                AnswerUpdateEvent(
                    game_id=room_id,
                    question_index=expected,
                    answered_count=len(entry.answers),
                    participant_count=len(room.participants),
                    answered_questions=[
                        item.model_dump(mode="json", by_alias=True) for item in room.answered_questions
                    ],
                ),
            )
            return answer

    async def reveal_results(self, room_id: str) -> None:
        async with self._lock(room_id):
            room = self.registry.get(room_id)
            if room.status != RoomStatus.ACTIVE or not room.answered_questions:
                raise InvalidTransition("No question to reveal")
            entry = room.answered_questions[-1]
            # A results request during the countdown skips the reveal
            self.timers.cancel(room_id)
            if entry.ends_at is None:
                entry.ends_at = self.clock()
            question = room.quiz_data.questions[entry.question_index]
            await self.router.broadcast(
                room_id,
                ResultsEvent(
                    game_id=room_id,
                    question_index=entry.question_index,
                    answer_count=len(entry.answers),
                    correct_count=sum(1 for answer in entry.answers if answer.is_correct),
                    correct_answer=question.correct_view() if room.settings.show_correct_answers else None,
                    scoreboard=scoring.rank_participants(room),
                ),
            )

    async def remove_participant(self, room_id: str, participant_id: str) -> None:
        async with self._lock(room_id):
            connection = self.registry.remove_participant(room_id, participant_id)
            self.logger.info("Player removed room=%s player=%s", room_id, participant_id)
            if connection is not None:
                await self.router.unicast(connection, DisconnectedEvent(game_id=room_id))
                await connection.close()
            await self.router.broadcast(
                room_id, PlayerDisconnectedEvent(game_id=room_id, player_id=participant_id, removed=True)
            )

    async def connection_closed(self, connection: Connection) -> None:
        for binding in self.registry.lookup(connection):
            if binding.is_host:
                self.logger.info("Host connection closed room=%s", binding.room_id)
                continue
            await self._participant_offline(binding, connection)

    async def _participant_offline(self, binding: Binding, connection: Connection) -> None:
        lock = self._locks.get(binding.room_id)
        if lock is None:
            return
        async with lock:
            if not self.registry.on_connection_closed(binding.room_id, binding.participant_id, connection):
                return
            self.logger.info("Player offline room=%s player=%s", binding.room_id, binding.participant_id)
            await self.router.broadcast(
                binding.room_id,
                PlayerDisconnectedEvent(game_id=binding.room_id, player_id=binding.participant_id, removed=False),
            )

    async def finish_room(self, room_id: str) -> bool:
        """Finish and archive a room. Returns False if it was already finished."""
        async with self._lock(room_id):
            room = self.registry.find(room_id)
            if room is None:
                return False
            return await self._finish(room)

    async def _finish(self, room: Room) -> bool:
        if room.status == RoomStatus.FINISHED:
            return False
        self.timers.cancel(room.id)
        room.status = RoomStatus.FINISHED
        room.finished_at = self.clock()
        scoreboard = scoring.rank_participants(room)

        document = room.snapshot()
        document["scoreboard"] = [entry.to_wire() for entry in scoreboard]
        self._spawn(self._archive(document))

        await self.router.broadcast(room.id, GameFinishedEvent(game_id=room.id, scoreboard=scoreboard))
        self.registry.unregister(room.id)
        self.buffer.discard(room.id)
        self._locks.pop(room.id, None)
        self.logger.info("Game finished room=%s winner=%s", room.id, scoreboard[0].id if scoreboard else None)
        return True

    async def _archive(self, document: dict) -> None:
        try:
            await self.archive.store(document)
        except Exception:
            archive_logger.exception("Archiving game=%s failed", document.get("id"))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for pending archive writes."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        self.timers.cancel_all()
        await self.drain()
