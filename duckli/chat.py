"""Chat session: transcript, request construction and response handling."""

import logging
from typing import Callable, NamedTuple

import tiktoken
from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    OpenAI,
)
from openai.types.chat import ChatCompletionMessageParam

from duckli.client import build_client
from duckli.config import Config
from duckli.errors import CompletionRequestFailure
from duckli.globals import log_exception
from duckli.personalities import PersonalityDefinition

logger = logging.getLogger(__name__)

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"


class Message(NamedTuple):
    role: str
    content: str

    def to_param(self) -> ChatCompletionMessageParam:
        return {"role": self.role, "content": self.content}  # pyright: ignore


def _status_detail(e: APIStatusError) -> str:
    """Pulls a readable message out of an error response."""
    body = e.body
    if isinstance(body, dict):
        message = body.get("message")
        if not message and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
        if isinstance(message, str) and message:
            return message
    return e.response.reason_phrase or e.message


def error_message(failure: CompletionRequestFailure) -> str:
    """Assistant-side text shown in place of a reply."""
    return (
        f"❌ Sorry, I encountered an error: {failure.kind}: {failure.detail}. "
        "Please check your API key and try again."
    )


class ChatSession:
    """Holds the transcript and talks to the completion endpoint, one turn at a time."""

    def __init__(
        self,
        config: Config,
        personality: PersonalityDefinition,
        client_factory: Callable[[str], OpenAI] = build_client,
    ):
        self.config: Config = config
        self.personality: PersonalityDefinition = personality
        self.client_factory = client_factory
        self.transcript: list[Message] = []
        self.busy: bool = False
        self._client: OpenAI | None = None
        self._encoder = None
        self._encoder_failed: bool = False

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = self.client_factory(self.config.credential)
        return self._client

    def greet(self):
        """Opens the transcript with the personality's welcome message."""
        self.transcript.append(Message(ASSISTANT_ROLE, self.personality.welcome_message))

    def build_messages(self, user_message: Message) -> list[ChatCompletionMessageParam]:
        """System prompt, then the whole transcript so far, then the new turn."""
        messages: list[ChatCompletionMessageParam] = [
            {"role": SYSTEM_ROLE, "content": self.personality.system_prompt}
        ]
        messages.extend(m.to_param() for m in self.transcript)
        messages.append(user_message.to_param())
        return messages

    def submit(self, text: str):
        """Sends one user turn. The reply (or an error) lands in the transcript."""
        content = text.strip()
        if not content or self.busy or not self.config.credential:
            return

        user_message = Message(USER_ROLE, content)
        messages = self.build_messages(user_message)
        self.transcript.append(user_message)
        self.busy = True
        try:
            reply = self.complete(messages)
        except CompletionRequestFailure as failure:
            log_exception(failure, "Error in ChatSession.submit()")
            reply = error_message(failure)
        finally:
            self.busy = False
        self.transcript.append(Message(ASSISTANT_ROLE, reply))

    def complete(self, messages: list[ChatCompletionMessageParam]) -> str:
        """One completion call. Every failure is raised as CompletionRequestFailure."""
        try:
            completion = self.client.chat.completions.create(
                model=self.config.model_id,
                messages=messages,
            )
            choices = getattr(completion, "choices", None)
            content = choices[0].message.content if choices else None
        except APIStatusError as e:
            raise CompletionRequestFailure(
                f"HTTP {e.status_code}", _status_detail(e)
            ) from e
        except APIConnectionError as e:
            raise CompletionRequestFailure("Connection error", str(e)) from e
        except (
            APIResponseValidationError,
            AttributeError,
            IndexError,
            KeyError,
            TypeError,
            ValueError,
        ) as e:
            raise CompletionRequestFailure("Malformed response", str(e)) from e
        if not isinstance(content, str):
            raise CompletionRequestFailure(
                "Malformed response", "no message content in the first choice"
            )
        return content

    # <~~STATUS HELPERS~~>
    def count_turns(self) -> int:
        return sum(1 for m in self.transcript if m.role == USER_ROLE)

    def encode(self, text: str) -> int:
        """Token count for a string, 0 when no encoder is available"""
        if self._encoder is None and not self._encoder_failed:
            try:
                self._encoder = tiktoken.get_encoding("cl100k_base")
            except Exception as e:
                logger.debug("Token counting disabled: %s", e)
                self._encoder_failed = True
        if self._encoder is None:
            return 0
        try:
            return len(self._encoder.encode(text))
        except Exception:
            return 0

    def count_tokens(self) -> int:
        """Rough size of the next request: system prompt plus transcript."""
        total = self.encode(self.personality.system_prompt)
        for m in self.transcript:
            total += self.encode(m.content)
        return total

    def last_assistant_message(self) -> str | None:
        for m in reversed(self.transcript):
            if m.role == ASSISTANT_ROLE:
                return m.content
        return None
