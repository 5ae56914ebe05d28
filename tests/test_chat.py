"""ChatSession tests against a mocked completion endpoint."""

import json
from unittest.mock import MagicMock

import httpx

from duckli.chat import ChatSession, Message
from duckli.config import Config
from duckli.globals import CLIENT_TITLE

from conftest import completion_body, mock_client_factory

CONFIG = Config("k1", "openai/gpt-4", "serious")


def make_session(personalities, handler, config=CONFIG) -> ChatSession:
    return ChatSession(
        config,
        personalities.resolve(config.personality_id),
        client_factory=mock_client_factory(handler),
    )


def reply_with(content):
    def handler(request):
        return httpx.Response(200, json=completion_body(content))

    return handler


# 1. Submission gating


def test_blank_submissions_do_nothing(personalities):
    handler = MagicMock(side_effect=reply_with("unused"))
    session = make_session(personalities, handler)

    session.submit("")
    session.submit("   ")

    assert session.transcript == []
    handler.assert_not_called()


def test_busy_session_ignores_submission(personalities):
    handler = MagicMock(side_effect=reply_with("unused"))
    session = make_session(personalities, handler)
    session.busy = True

    session.submit("hello")

    assert session.transcript == []
    handler.assert_not_called()


def test_missing_credential_ignores_submission(personalities):
    handler = MagicMock(side_effect=reply_with("unused"))
    session = make_session(personalities, handler, Config("", "openai/gpt-4", "serious"))

    session.submit("hello")

    assert session.transcript == []


# 2. Request construction


def test_request_carries_system_prompt_history_and_new_turn(personalities):
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["title"] = request.headers["X-Title"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion_body("Have you tried printing it?"))

    session = make_session(personalities, handler)
    session.greet()
    session.submit("  my loop never ends  ")

    assert seen["path"] == "/api/v1/chat/completions"
    assert seen["auth"] == "Bearer k1"
    assert seen["title"] == CLIENT_TITLE
    assert seen["body"]["model"] == "openai/gpt-4"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": session.personality.system_prompt},
        {"role": "assistant", "content": session.personality.welcome_message},
        {"role": "user", "content": "my loop never ends"},
    ]
    assert session.transcript[-2:] == [
        Message("user", "my loop never ends"),
        Message("assistant", "Have you tried printing it?"),
    ]
    assert not session.busy


def test_code_fences_pass_through_unmodified(personalities):
    content = "Try this:\n```python\nwhile i < 10:\n    i += 1\n```\n"
    session = make_session(personalities, reply_with(content))

    session.submit("fix it")

    assert session.transcript[-1].content == content


# 3. Failures become transcript entries


def test_server_error_becomes_assistant_message(personalities):
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "Internal Server Error"}})

    session = make_session(personalities, handler)
    session.submit("fix my loop")

    assert len(session.transcript) == 2
    assert session.transcript[0] == Message("user", "fix my loop")
    assert session.transcript[1].role == "assistant"
    assert "500" in session.transcript[1].content
    assert not session.busy


def test_connection_error_becomes_assistant_message(personalities):
    def handler(request):
        raise httpx.ConnectError("network unreachable", request=request)

    session = make_session(personalities, handler)
    session.submit("hello")

    assert session.transcript[-1].role == "assistant"
    assert "Connection error" in session.transcript[-1].content
    assert not session.busy


def test_malformed_body_becomes_assistant_message(personalities):
    def handler(request):
        return httpx.Response(200, json={"id": "gen-1", "choices": []})

    session = make_session(personalities, handler)
    session.submit("hello")

    assert "Malformed response" in session.transcript[-1].content


def test_session_is_usable_after_error(personalities):
    responses = iter(
        [
            httpx.Response(503, json={"error": {"message": "Overloaded"}}),
            httpx.Response(200, json=completion_body("Back online.")),
        ]
    )
    session = make_session(personalities, lambda request: next(responses))

    session.submit("first")
    session.submit("second")

    assert [m.role for m in session.transcript] == ["user", "assistant", "user", "assistant"]
    assert "503" in session.transcript[1].content
    assert session.transcript[3] == Message("assistant", "Back online.")


# 4. Helpers


def test_turns_and_last_assistant_message(personalities):
    session = make_session(personalities, reply_with("pong"))
    assert session.last_assistant_message() is None

    session.greet()
    session.submit("ping")

    assert session.count_turns() == 1
    assert session.last_assistant_message() == "pong"
