"""
Streaming chat completions over server-sent events.

ChatCompletionStream turns the live event stream into an async sequence of
ChatCompletionEvent values. It distinguishes three outcomes:

- clean end: the server sent the [DONE] sentinel; iteration stops normally
- ended by error: transport failure (including EOF before [DONE]) raises
  StreamTransportError, an in-stream {"error": ...} body raises OpenAIAPIError
- one undecodable event: a StreamDecodeError is yielded in-band and the
  stream keeps going (policy "yield", the default). Policy "raise" raises it
  instead; policy "skip" logs and drops it.

ChatCompletionAccumulator rebuilds whole messages from events, keeping each
candidate index separate.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import AsyncGenerator, AsyncIterator, Literal, Optional, Union

import httpx
from pydantic import ValidationError

from openai_bindings.chat import (
    CHAT_COMPLETIONS_ROUTE,
    ChatCompletion,
    ChatCompletionChoice,
    ChatCompletionEvent,
    ChatCompletionMessage,
    ChatCompletionRequest,
    ContentDelta,
    Role,
    RoleDelta,
)
from openai_bindings.client import OpenAIClient
from openai_bindings.config import STREAM_DONE_SENTINEL
from openai_bindings.errors import (
    OpenAIAPIError,
    StreamConsumedError,
    StreamDecodeError,
    StreamTransportError,
)

logger = logging.getLogger(__name__)

DecodeErrorPolicy = Literal["yield", "raise", "skip"]
DECODE_ERROR_POLICIES: tuple[str, ...] = ("yield", "raise", "skip")

StreamItem = Union[ChatCompletionEvent, StreamDecodeError]


# ─────────────────────────────────────────────────────────────────────
# SSE FRAMING
# ─────────────────────────────────────────────────────────────────────

@dataclass
class ServerSentEvent:
    """One dispatched event."""
    data: str
    event: str = "message"
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEDecoder:
    """
    Line-at-a-time server-sent-event parser.

    Feed it lines without their terminators (as httpx's aiter_lines() yields
    them); a blank line dispatches the pending event.
    """

    def __init__(self):
        self._data: list[str] = []
        self._event: Optional[str] = None
        self._retry: Optional[int] = None
        self._last_event_id: Optional[str] = None

    def decode(self, line: str) -> Optional[ServerSentEvent]:
        """Consume one line; return an event when the line completes one."""
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None  # comment / keep-alive

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value
        elif name == "id":
            if "\0" not in value:
                self._last_event_id = value
        elif name == "retry":
            if value.isdigit():
                self._retry = int(value)
        # unknown fields are ignored
        return None

    def flush(self) -> Optional[ServerSentEvent]:
        """Dispatch whatever is pending at end of input."""
        return self._dispatch()

    def _dispatch(self) -> Optional[ServerSentEvent]:
        if not self._data:
            self._event = None
            self._retry = None
            return None

        sse = ServerSentEvent(
            data="\n".join(self._data),
            event=self._event or "message",
            id=self._last_event_id,
            retry=self._retry,
        )
        self._data = []
        self._event = None
        self._retry = None
        return sse


async def iter_sse(response: httpx.Response) -> AsyncGenerator[ServerSentEvent, None]:
    """
    Decode an open response body into events.

    Raises:
        StreamTransportError: the connection failed while reading
    """
    decoder = SSEDecoder()
    try:
        async for line in response.aiter_lines():
            sse = decoder.decode(line)
            if sse is not None:
                yield sse
    except httpx.HTTPError as e:
        raise StreamTransportError(f"event stream interrupted: {e}") from e

    sse = decoder.flush()
    if sse is not None:
        yield sse


# ─────────────────────────────────────────────────────────────────────
# STREAM
# ─────────────────────────────────────────────────────────────────────

def _decode_error_message(e: ValidationError) -> str:
    errors = e.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", str(e))
    return f"undecodable chat completion event: {location + ': ' if location else ''}{detail}"


def _api_error_in(data: str) -> Optional[OpenAIAPIError]:
    """An {"error": {...}} payload sent in place of an event, if that's what data is."""
    try:
        body = json.loads(data)
    except ValueError:
        return None
    if isinstance(body, dict) and set(body) == {"error"}:
        return OpenAIAPIError.from_body(200, data.encode())
    return None


class ChatCompletionStream:
    """
    Single-use async iterator over a streamed chat completion.

    Usage:
        async with builder.create_stream(client) as stream:
            async for item in stream:
                if isinstance(item, StreamDecodeError):
                    ...  # one bad event; the stream continues
                else:
                    ...  # ChatCompletionEvent

    The connection is opened on first iteration and closed when the stream
    ends, fails, or is closed with aclose() / by leaving the ``async with``.
    """

    def __init__(
        self,
        client: OpenAIClient,
        request: ChatCompletionRequest,
        on_decode_error: DecodeErrorPolicy = "yield",
    ):
        if on_decode_error not in DECODE_ERROR_POLICIES:
            raise ValueError(
                f"on_decode_error must be one of {', '.join(DECODE_ERROR_POLICIES)}, "
                f"got {on_decode_error!r}"
            )
        self._client = client
        self.request = request.model_copy(update={"stream": True})
        self.on_decode_error = on_decode_error
        self._generator: Optional[AsyncGenerator[StreamItem, None]] = None
        self._response: Optional[httpx.Response] = None
        self.done = False  # [DONE] received
        self.closed = False

    def __aiter__(self) -> "ChatCompletionStream":
        if self.closed:
            raise StreamConsumedError(
                "stream already consumed; call create_stream() again for a new one"
            )
        if self._generator is None:
            self._generator = self._items()
        return self

    async def __anext__(self) -> StreamItem:
        if self._generator is None:
            self._generator = self._items()
        return await self._generator.__anext__()

    async def __aenter__(self) -> "ChatCompletionStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the stream and release its connection."""
        if self._generator is not None:
            await self._generator.aclose()
        await self._close_response()

    async def _close_response(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._response is not None:
            await self._response.aclose()
            logger.debug("event stream closed (done=%s)", self.done)

    async def _items(self) -> AsyncGenerator[StreamItem, None]:
        if self.closed:
            return
        events = None
        try:
            self._response = await self._client.open_stream(
                CHAT_COMPLETIONS_ROUTE, self.request.to_payload()
            )
            events = iter_sse(self._response)
            async for sse in events:
                if sse.data == STREAM_DONE_SENTINEL:
                    self.done = True
                    return

                try:
                    event = ChatCompletionEvent.model_validate_json(sse.data)
                except ValidationError as e:
                    api_error = _api_error_in(sse.data)
                    if api_error is not None:
                        raise api_error from None

                    error = StreamDecodeError(_decode_error_message(e), sse.data)
                    error.__cause__ = e
                    if self.on_decode_error == "raise":
                        raise error
                    if self.on_decode_error == "skip":
                        logger.warning("Skipping %s", error)
                        continue
                    yield error
                    continue

                yield event

            raise StreamTransportError(
                f"event stream closed before {STREAM_DONE_SENTINEL}"
            )
        finally:
            if events is not None:
                await events.aclose()
            await self._close_response()

    async def collect(self) -> ChatCompletion:
        """
        Drain the stream and return the reassembled completion.

        Raises:
            StreamDecodeError: an event couldn't be decoded
            StreamTransportError: the stream ended before [DONE]
        """
        accumulator = ChatCompletionAccumulator()
        async with self:
            async for item in self:
                if isinstance(item, StreamDecodeError):
                    raise item
                accumulator.add(item)
        return accumulator.build()


# ─────────────────────────────────────────────────────────────────────
# REASSEMBLY
# ─────────────────────────────────────────────────────────────────────

@dataclass
class CandidateState:
    """Everything received so far for one candidate index."""
    role: Optional[Role] = None
    fragments: list[str] = field(default_factory=list)
    finish_reason: Optional[str] = None

    @property
    def content(self) -> str:
        return "".join(self.fragments)

    @property
    def finished(self) -> bool:
        return self.finish_reason is not None


class ChatCompletionAccumulator:
    """
    Rebuilds complete messages from streamed events, one per candidate index.

    For each index: the RoleDelta sets the role, ContentDelta fragments are
    concatenated in arrival order, and the finish_reason of the terminal
    event closes it. Fragments are never mixed across indices.
    """

    def __init__(self):
        self.id: Optional[str] = None
        self.object: Optional[str] = None
        self.created: Optional[int] = None
        self.model: Optional[str] = None
        self.candidates: dict[int, CandidateState] = {}

    def add(self, event: ChatCompletionEvent) -> None:
        if self.id is None:
            self.id = event.id
            self.object = event.object
            self.created = event.created
            self.model = event.model
        elif event.id != self.id:
            logger.warning(
                "Event id %s differs from stream id %s; attributing to %s",
                event.id, self.id, self.id,
            )

        for choice in event.choices:
            state = self.candidates.setdefault(choice.index, CandidateState())
            if state.finished:
                logger.warning(
                    "Event for index %d after its finish_reason %r",
                    choice.index, state.finish_reason,
                )

            delta = choice.delta
            if isinstance(delta, RoleDelta):
                state.role = delta.role
            elif isinstance(delta, ContentDelta):
                state.fragments.append(delta.content)

            if choice.finish_reason is not None:
                state.finish_reason = choice.finish_reason

    async def consume(self, events: AsyncIterator[StreamItem]) -> None:
        """
        Add every event from an async iterator.

        Raises:
            StreamDecodeError: the iterator yielded an undecodable event
        """
        async for item in events:
            if isinstance(item, StreamDecodeError):
                raise item
            self.add(item)

    def content(self, index: int = 0) -> str:
        state = self.candidates.get(index)
        return state.content if state else ""

    def role(self, index: int = 0) -> Optional[Role]:
        state = self.candidates.get(index)
        return state.role if state else None

    @property
    def finished(self) -> bool:
        """True once every candidate seen so far has a finish_reason."""
        return bool(self.candidates) and all(s.finished for s in self.candidates.values())

    def build(self) -> ChatCompletion:
        """Snapshot as a ChatCompletion (choices ordered by index; no usage)."""
        choices = [
            ChatCompletionChoice(
                index=index,
                message=ChatCompletionMessage(
                    role=state.role or Role.ASSISTANT,
                    content=state.content,
                ),
                finish_reason=state.finish_reason,
            )
            for index, state in sorted(self.candidates.items())
        ]
        return ChatCompletion(
            id=self.id or "",
            object="chat.completion",
            created=self.created or 0,
            model=self.model or "",
            choices=choices,
        )
