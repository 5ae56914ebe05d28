"""Shared fixtures. Network calls go through httpx.MockTransport, never the wire."""

import httpx
import pytest

from duckli.client import build_client
from duckli.config import CredentialStore
from duckli.personalities import PersonalityCatalog


def mock_client_factory(handler):
    """A client factory whose OpenAI clients answer with `handler(request)`."""

    def factory(credential: str):
        transport = httpx.MockTransport(handler)
        return build_client(credential, http_client=httpx.Client(transport=transport))

    return factory


def completion_body(content: str) -> dict:
    return {
        "id": "gen-1",
        "object": "chat.completion",
        "created": 0,
        "model": "openai/gpt-4",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


@pytest.fixture
def personalities() -> PersonalityCatalog:
    return PersonalityCatalog()


@pytest.fixture
def config_path(tmp_path):
    """Config file location inside a temp dir, so real settings are never touched."""
    return tmp_path / "config" / "config.json"


@pytest.fixture
def store(config_path) -> CredentialStore:
    return CredentialStore(str(config_path))
