import json

import pytest

from conftest import FakeConnection, make_quiz, open_question
from trivia.core.errors import MalformedMessage, UnknownMessageType
from trivia.schemas.messages import JoinGameMessage, SubmitAnswerMessage
from trivia.services.dispatcher import MessageDispatcher, parse_message


@pytest.fixture()
def dispatcher(coordinator):
    return MessageDispatcher(coordinator)


def test_parse_known_message():
    message = parse_message('{"type": "join_game", "gameId": "123456", "player": {"id": "p1", "name": "Ann"}}')
    assert isinstance(message, JoinGameMessage)
    assert message.player.name == "Ann"


@pytest.mark.parametrize("tag", ["addAnswer", "submit_answer"])
def test_both_answer_tags_share_a_shape(tag):
    message = parse_message({"type": tag, "gameId": "1", "participantId": "p1", "questionIndex": 0, "answer": [1, 2]})
    assert isinstance(message, SubmitAnswerMessage)
    assert message.player_id == "p1"
    assert message.answer == [1, 2]


def test_parse_rejects_unknown_type():
    with pytest.raises(UnknownMessageType):
        parse_message({"type": "launch_rockets"})
    with pytest.raises(UnknownMessageType):
        parse_message({"gameId": "1"})


def test_parse_rejects_bad_json_and_shapes():
    with pytest.raises(MalformedMessage, match="Invalid JSON"):
        parse_message("{not json")
    with pytest.raises(MalformedMessage):
        parse_message("[1, 2]")
    with pytest.raises(MalformedMessage):
        parse_message({"type": "join_game", "gameId": "1"})
    with pytest.raises(MalformedMessage):
        parse_message({"type": "addAnswer", "gameId": "1", "playerId": "p", "questionIndex": 0, "answer": "yes"})


async def test_unknown_type_replies_with_error(dispatcher):
    connection = FakeConnection()

    await dispatcher.handle(connection, json.dumps({"type": "bogus"}))

    assert connection.sent == [{"type": "error", "message": "Unknown message type", "code": "unknown_message_type"}]


async def test_get_time_touches_no_state(dispatcher, coordinator):
    connection = FakeConnection()

    await dispatcher.handle(connection, '{"type": "get_time"}')

    reply = connection.sent[0]
    assert reply["type"] == "server_time"
    assert isinstance(reply["time"], int)
    assert len(coordinator.registry) == 0


async def test_missing_room_is_typed_error(dispatcher):
    connection = FakeConnection()

    await dispatcher.handle(connection, {"type": "start_game", "gameId": "000000"})

    assert connection.sent == [
        {"type": "error", "message": "Game not found", "code": "room_not_found", "gameId": "000000"}
    ]


async def test_full_flow_through_messages(dispatcher, coordinator):
    host, player = FakeConnection("host"), FakeConnection("player")

    await dispatcher.handle(
        host,
        {
            "type": "create_game",
            "data": {"quizData": make_quiz(1).to_wire(), "quizTitle": "Friday", "settings": {"questionTimeLimit": 20}},
        },
    )
    game_id = host.of_type("game_created")[0]["gameId"]
    assert coordinator.get_room(game_id).quiz_title == "Friday"

    await dispatcher.handle(player, {"type": "join_game", "gameId": game_id, "player": {"id": "p1", "name": "Ann"}})
    await dispatcher.handle(host, {"type": "start_game", "gameId": game_id})
    await open_question(coordinator, game_id)
    assert player.of_type("question")[0]["timeLimit"] == 20

    answer = {"type": "addAnswer", "gameId": game_id, "playerId": "p1", "questionIndex": 0, "answer": True}
    await dispatcher.handle(player, answer)
    await dispatcher.handle(player, answer)

    assert player.of_type("answer_received")[0]["isCorrect"] is True
    assert player.of_type("error")[-1]["code"] == "duplicate_answer"
    assert len(host.of_type("answer_update")) == 1

    await dispatcher.handle(host, {"type": "question_timeout", "gameId": game_id})
    await dispatcher.handle(host, {"type": "finish_game", "gameId": game_id})
    await coordinator.drain()

    assert player.of_type("game_finished")[0]["scoreboard"] == [{"id": "p1", "name": "Ann", "points": 1000}]


async def test_disconnect_player_message(dispatcher, coordinator):
    host, player = FakeConnection("host"), FakeConnection("player")
    await dispatcher.handle(host, {"type": "create_game", "data": {"quizData": make_quiz(1).to_wire()}})
    game_id = host.of_type("game_created")[0]["gameId"]
    await dispatcher.handle(player, {"type": "join_game", "gameId": game_id, "player": {"id": "p1", "name": "Ann"}})

    await dispatcher.handle(host, {"type": "disconnect_player", "gameId": game_id, "playerId": "p1"})

    assert player.types()[-1] == "disconnected"
    assert coordinator.get_room(game_id).participants == []


async def test_name_conflict_error_goes_to_sender_only(dispatcher, coordinator):
    host, first, second = FakeConnection("host"), FakeConnection("a"), FakeConnection("b")
    await dispatcher.handle(host, {"type": "create_game", "data": {"quizData": make_quiz(1).to_wire()}})
    game_id = host.of_type("game_created")[0]["gameId"]

    await dispatcher.handle(first, {"type": "join_game", "gameId": game_id, "player": {"id": "a", "name": "Sam"}})
    await dispatcher.handle(second, {"type": "join_game", "gameId": game_id, "player": {"id": "b", "name": "Sam"}})

    assert second.sent[-1]["code"] == "name_conflict"
    assert host.of_type("error") == []
    assert len(coordinator.get_room(game_id).participants) == 1


async def test_binary_frames_are_parsed_like_text(dispatcher):
    connection = FakeConnection()

    await dispatcher.handle(connection, b'{"type": "get_time"}')
    await dispatcher.handle(connection, b"\xff\xfe")

    assert connection.types() == ["server_time", "error"]
    assert connection.sent[1]["code"] == "malformed_message"


async def test_unexpected_failure_replies_and_keeps_serving(dispatcher, coordinator, monkeypatch):
    async def explode(room_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(coordinator, "start_room", explode)
    connection = FakeConnection()

    await dispatcher.handle(connection, {"type": "start_game", "gameId": "123456"})
    await dispatcher.handle(connection, {"type": "get_time"})

    assert connection.sent[0] == {
        "type": "error",
        "message": "Internal server error",
        "code": "internal_error",
        "gameId": "123456",
    }
    assert connection.types()[-1] == "server_time"
