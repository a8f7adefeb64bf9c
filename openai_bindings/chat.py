"""
Chat completions: given a conversation, the model returns the next message.

Request side: ChatCompletionMessage, ChatCompletionRequest and its builder.
Response side: ChatCompletion (one round trip) and ChatCompletionEvent
(one server-sent event of a streamed completion).

Streamed deltas arrive untagged on the wire:
    {"role": "assistant"}   -> RoleDelta
    {"content": "foo"}      -> ContentDelta
    {}                      -> EmptyDelta (usually with finish_reason set)
parse_delta() turns field presence into an explicit variant type.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Iterable, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from openai_bindings.client import OpenAIClient
from openai_bindings.schema import (
    ApiRequest,
    LogitBias,
    ModelName,
    RequestBuilder,
    Usage,
)

if TYPE_CHECKING:
    from openai_bindings.streaming import ChatCompletionStream, DecodeErrorPolicy

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_ROUTE = "chat/completions"


# ─────────────────────────────────────────────────────────────────────
# MESSAGES
# ─────────────────────────────────────────────────────────────────────

class Role(str, Enum):
    """Author of a chat message."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    def __str__(self) -> str:
        return self.value


class ChatCompletionMessage(BaseModel):
    """A single message in a conversation."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    name: Optional[str] = None  # author name in a multi-user chat

    @classmethod
    def system(cls, content: str, name: Optional[str] = None) -> "ChatCompletionMessage":
        return cls(role=Role.SYSTEM, content=content, name=name)

    @classmethod
    def user(cls, content: str, name: Optional[str] = None) -> "ChatCompletionMessage":
        return cls(role=Role.USER, content=content, name=name)

    @classmethod
    def assistant(cls, content: str, name: Optional[str] = None) -> "ChatCompletionMessage":
        return cls(role=Role.ASSISTANT, content=content, name=name)


# ─────────────────────────────────────────────────────────────────────
# REQUEST
# ─────────────────────────────────────────────────────────────────────

class ChatCompletionRequest(ApiRequest):
    """
    Body of POST /chat/completions.

    Only ``model`` and ``messages`` are required; every other field is left
    out of the payload unless set. Prefer building through
    ChatCompletion.builder().
    """
    omit_if_empty = ("stop", "user")

    model: ModelName
    messages: list[ChatCompletionMessage] = Field(min_length=1)
    # 0-2; higher is more random. Alter this or top_p, not both.
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    # nucleus sampling: 0.1 keeps only the top 10% probability mass
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    n: Optional[int] = Field(default=None, ge=1)
    stream: Optional[bool] = None
    stop: list[str] = Field(default_factory=list, max_length=4)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    presence_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    # token id -> bias in [-100, 100], added to the logits before sampling
    logit_bias: Optional[LogitBias] = None
    user: str = ""  # end-user identifier for abuse monitoring


class ChatCompletionBuilder(RequestBuilder):
    """
    Collects ChatCompletionRequest fields.

    Usage:
        builder = ChatCompletion.builder(ModelID.GPT_3_5_TURBO, [ChatCompletionMessage.user("Hello!")])
        completion = await builder.temperature(0.0).create(client)

        async for event in builder.create_stream(client):
            ...
    """

    request_type = ChatCompletionRequest
    required = ("model", "messages")

    def model(self, model: "ModelName") -> "ChatCompletionBuilder":
        return self._with(model=model)

    def messages(self, messages: Iterable[ChatCompletionMessage]) -> "ChatCompletionBuilder":
        return self._with(messages=list(messages))

    def temperature(self, temperature: float) -> "ChatCompletionBuilder":
        return self._with(temperature=temperature)

    def top_p(self, top_p: float) -> "ChatCompletionBuilder":
        return self._with(top_p=top_p)

    def n(self, n: int) -> "ChatCompletionBuilder":
        """How many choices to generate for each input message."""
        return self._with(n=n)

    def stop(self, stop: Union[str, Iterable[str]]) -> "ChatCompletionBuilder":
        """Up to 4 sequences where the API stops generating further tokens."""
        if isinstance(stop, str):
            stop = [stop]
        return self._with(stop=list(stop))

    def max_tokens(self, max_tokens: int) -> "ChatCompletionBuilder":
        return self._with(max_tokens=max_tokens)

    def presence_penalty(self, presence_penalty: float) -> "ChatCompletionBuilder":
        return self._with(presence_penalty=presence_penalty)

    def frequency_penalty(self, frequency_penalty: float) -> "ChatCompletionBuilder":
        return self._with(frequency_penalty=frequency_penalty)

    def logit_bias(self, logit_bias: dict) -> "ChatCompletionBuilder":
        return self._with(logit_bias=logit_bias)

    def user(self, user: str) -> "ChatCompletionBuilder":
        return self._with(user=user)

    def build(self) -> ChatCompletionRequest:
        return super().build()

    async def create(self, client: OpenAIClient) -> "ChatCompletion":
        """Build and send as a single round trip."""
        return await ChatCompletion.create(client, self.build())

    def create_stream(
        self,
        client: OpenAIClient,
        on_decode_error: "DecodeErrorPolicy" = "yield",
    ) -> "ChatCompletionStream":
        """
        Build and return a lazily-opened event stream.

        No connection is made until the stream is first iterated.
        """
        from openai_bindings.streaming import ChatCompletionStream

        return ChatCompletionStream(client, self.build(), on_decode_error=on_decode_error)


# ─────────────────────────────────────────────────────────────────────
# RESPONSE (single round trip)
# ─────────────────────────────────────────────────────────────────────

class ChatCompletionChoice(BaseModel):
    index: int
    message: ChatCompletionMessage
    finish_reason: Optional[str] = None


class ChatCompletion(BaseModel):
    """Complete response of a non-streaming chat completion."""
    id: str
    object: str
    created: int
    model: str
    choices: list[ChatCompletionChoice]
    usage: Optional[Usage] = None

    @staticmethod
    def builder(
        model: "ModelName", messages: Iterable[ChatCompletionMessage]
    ) -> ChatCompletionBuilder:
        """Start a request with its two required fields set."""
        return ChatCompletionBuilder().model(model).messages(messages)

    @classmethod
    async def create(
        cls, client: OpenAIClient, request: ChatCompletionRequest
    ) -> "ChatCompletion":
        """
        POST the request and wait for the complete response.

        The request's stream flag is ignored; use create_stream() for events.
        """
        payload = request.to_payload()
        payload.pop("stream", None)
        return await client.post(CHAT_COMPLETIONS_ROUTE, payload, cls)

    @property
    def content(self) -> str:
        """Text of the first choice ("" when there are none)."""
        return self.choices[0].message.content if self.choices else ""


# ─────────────────────────────────────────────────────────────────────
# STREAMED DELTAS
# ─────────────────────────────────────────────────────────────────────

class RoleDelta(BaseModel):
    """First delta of a candidate: announces the author role."""
    model_config = ConfigDict(frozen=True)
    role: Role


class ContentDelta(BaseModel):
    """A fragment of message text."""
    model_config = ConfigDict(frozen=True)
    content: str


class EmptyDelta(BaseModel):
    """No payload; paired with finish_reason on a candidate's terminal event."""
    model_config = ConfigDict(frozen=True)


Delta = Union[RoleDelta, ContentDelta, EmptyDelta]


def parse_delta(value: Any) -> Delta:
    """
    Pick the Delta variant from which fields are present.

    Precedence follows the wire format: a non-null ``role`` wins, then a string
    ``content``, and anything else is an EmptyDelta. Content sent alongside a
    role is dropped (logged at DEBUG). Extra fields are ignored.

    Raises:
        ValueError: value isn't an object, or role isn't a known Role
    """
    if isinstance(value, (RoleDelta, ContentDelta, EmptyDelta)):
        return value
    if not isinstance(value, dict):
        raise ValueError(f"delta must be an object, got {type(value).__name__}")
    if value.get("role") is not None:
        if value.get("content"):
            logger.debug("Discarding content %r sent alongside role", value["content"])
        return RoleDelta(role=Role(value["role"]))
    if isinstance(value.get("content"), str):
        return ContentDelta(content=value["content"])
    return EmptyDelta()


class ChatCompletionChoiceDelta(BaseModel):
    """One candidate's increment within an event."""
    model_config = ConfigDict(frozen=True)

    index: int  # which of the n parallel candidates
    delta: Annotated[Delta, BeforeValidator(parse_delta)]
    finish_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.finish_reason is not None


class ChatCompletionEvent(BaseModel):
    """One decoded server-sent event of a streamed chat completion."""
    model_config = ConfigDict(frozen=True)

    id: str
    object: str
    created: int
    model: str
    choices: list[ChatCompletionChoiceDelta]
