"""Tests for openai_bindings.chat: messages, request builder, deltas, plain create."""

import json

import httpx
import pytest
import respx
from pydantic import ValidationError

from openai_bindings.chat import (
    ChatCompletion,
    ChatCompletionBuilder,
    ChatCompletionChoiceDelta,
    ChatCompletionEvent,
    ChatCompletionMessage,
    ContentDelta,
    EmptyDelta,
    Role,
    RoleDelta,
    parse_delta,
)
from openai_bindings.errors import BuilderError, OpenAIAPIError
from openai_bindings.models import ModelID

from tests.conftest import (
    CHAT_URL,
    FOOBAR_CHUNK,
    MOCK_CHAT_MODEL,
    MOCK_CHAT_RESPONSE,
    MOCK_COMPLETION_ID,
    MOCK_ERROR_RESPONSE,
    ROLE_CHUNK,
    STOP_CHUNK,
    chunk,
)


class TestMessage:
    """Tests for ChatCompletionMessage."""

    def test_constructors_set_role(self):
        assert ChatCompletionMessage.system("s").role is Role.SYSTEM
        assert ChatCompletionMessage.user("u").role is Role.USER
        assert ChatCompletionMessage.assistant("a").role is Role.ASSISTANT

    def test_role_parsed_from_wire_string(self):
        msg = ChatCompletionMessage(role="user", content="Hello!")
        assert msg.role is Role.USER

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            ChatCompletionMessage(role="robot", content="beep")

    def test_name_only_serialized_when_set(self, chat_builder):
        plain = ChatCompletionMessage.user("Hi")
        named = ChatCompletionMessage.user("Hi", name="alice")

        payload = chat_builder.messages([plain, named]).build().to_payload()

        assert payload["messages"][0] == {"role": "user", "content": "Hi"}
        assert payload["messages"][1] == {"role": "user", "content": "Hi", "name": "alice"}

    def test_message_is_immutable(self):
        msg = ChatCompletionMessage.user("Hi")
        with pytest.raises(ValidationError):
            msg.content = "changed"


class TestRequestBuilder:
    """Tests for ChatCompletionBuilder / ChatCompletionRequest."""

    def test_minimal_payload_has_only_required_fields(self, chat_builder):
        payload = chat_builder.build().to_payload()

        assert set(payload) == {"model", "messages"}
        assert payload["model"] == MOCK_CHAT_MODEL

    def test_unset_fields_not_sent_as_null(self, chat_builder):
        payload = chat_builder.temperature(0.0).build().to_payload()

        assert payload["temperature"] == 0.0
        assert None not in payload.values()
        assert "top_p" not in payload

    def test_all_optional_fields(self, chat_builder):
        request = (
            chat_builder
            .temperature(0.5)
            .top_p(0.9)
            .n(2)
            .stop(["\n", "END"])
            .max_tokens(64)
            .presence_penalty(0.5)
            .frequency_penalty(-0.5)
            .logit_bias({50256: -100})
            .user("user-1234")
            .build()
        )
        payload = request.to_payload()

        assert payload["temperature"] == 0.5
        assert payload["top_p"] == 0.9
        assert payload["n"] == 2
        assert payload["stop"] == ["\n", "END"]
        assert payload["max_tokens"] == 64
        assert payload["presence_penalty"] == 0.5
        assert payload["frequency_penalty"] == -0.5
        assert payload["logit_bias"] == {"50256": -100}
        assert payload["user"] == "user-1234"

    def test_single_stop_string_wrapped(self, chat_builder):
        payload = chat_builder.stop("###").build().to_payload()
        assert payload["stop"] == ["###"]

    def test_empty_stop_and_user_omitted(self, chat_builder):
        payload = chat_builder.stop([]).user("").build().to_payload()
        assert "stop" not in payload
        assert "user" not in payload

    def test_model_id_enum_serialized_as_string(self, sample_messages):
        request = ChatCompletion.builder(ModelID.GPT_3_5_TURBO_0301, sample_messages).build()

        assert request.model == "gpt-3.5-turbo-0301"
        assert json.loads(json.dumps(request.to_payload()))["model"] == "gpt-3.5-turbo-0301"

    def test_setters_return_new_builder(self, chat_builder):
        hot = chat_builder.temperature(1.5)

        assert "temperature" not in chat_builder.build().to_payload()
        assert hot.build().temperature == 1.5

    def test_missing_model_rejected(self, sample_messages):
        with pytest.raises(BuilderError, match="model"):
            ChatCompletionBuilder().messages(sample_messages).build()

    def test_missing_messages_rejected(self):
        with pytest.raises(BuilderError, match="messages"):
            ChatCompletionBuilder().model(MOCK_CHAT_MODEL).build()

    def test_builder_error_is_value_error(self):
        with pytest.raises(ValueError):
            ChatCompletionBuilder().build()

    def test_out_of_range_temperature_rejected(self, chat_builder):
        with pytest.raises(ValidationError):
            chat_builder.temperature(3.0).build()

    def test_too_many_stop_sequences_rejected(self, chat_builder):
        with pytest.raises(ValidationError):
            chat_builder.stop(["a", "b", "c", "d", "e"]).build()

    def test_empty_conversation_rejected(self):
        with pytest.raises(ValidationError):
            ChatCompletion.builder(MOCK_CHAT_MODEL, []).build()

    def test_request_is_immutable(self, chat_builder):
        request = chat_builder.build()
        with pytest.raises(ValidationError):
            request.temperature = 1.0

    def test_message_order_preserved(self, chat_builder):
        payload = chat_builder.build().to_payload()
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]


class TestDeltaDecoding:
    """Field-presence decoding of the untagged delta union."""

    def test_role_delta(self):
        assert parse_delta({"role": "assistant"}) == RoleDelta(role=Role.ASSISTANT)

    def test_content_delta(self):
        assert parse_delta({"content": "foobar"}) == ContentDelta(content="foobar")

    def test_empty_content_is_still_content(self):
        assert parse_delta({"content": ""}) == ContentDelta(content="")

    def test_empty_delta(self):
        assert isinstance(parse_delta({}), EmptyDelta)

    def test_null_content_is_empty(self):
        assert isinstance(parse_delta({"content": None}), EmptyDelta)

    def test_null_role_is_absent(self):
        assert parse_delta({"role": None, "content": "foo"}) == ContentDelta(content="foo")
        assert isinstance(parse_delta({"role": None}), EmptyDelta)

    def test_null_role_event_decodes(self):
        event = ChatCompletionEvent.model_validate(chunk({"role": None, "content": "foo"}))
        assert event.choices[0].delta == ContentDelta(content="foo")

    def test_role_takes_precedence_over_content(self):
        delta = parse_delta({"role": "assistant", "content": ""})
        assert isinstance(delta, RoleDelta)

    def test_content_beside_role_logged(self, caplog):
        with caplog.at_level("DEBUG", logger="openai_bindings.chat"):
            delta = parse_delta({"role": "assistant", "content": "Hi"})

        assert delta == RoleDelta(role=Role.ASSISTANT)
        assert "Discarding content 'Hi'" in caplog.text

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            parse_delta({"role": "narrator"})

    def test_non_object_rejected(self):
        with pytest.raises(ValueError, match="must be an object"):
            parse_delta("content")

    def test_reference_events(self):
        """The three canonical events decode to role, content and terminal variants."""
        role = ChatCompletionEvent.model_validate_json(json.dumps(ROLE_CHUNK))
        content = ChatCompletionEvent.model_validate_json(json.dumps(FOOBAR_CHUNK))
        end = ChatCompletionEvent.model_validate_json(json.dumps(STOP_CHUNK))

        assert role.id == MOCK_COMPLETION_ID
        assert role.object == "chat.completion.chunk"
        assert role.created == 1679325191
        assert role.model == ModelID.GPT_3_5_TURBO
        assert role.choices == [
            ChatCompletionChoiceDelta(index=0, delta=RoleDelta(role=Role.ASSISTANT), finish_reason=None)
        ]
        assert content.choices == [
            ChatCompletionChoiceDelta(index=0, delta=ContentDelta(content="foobar"), finish_reason=None)
        ]
        assert end.choices == [
            ChatCompletionChoiceDelta(index=0, delta=EmptyDelta(), finish_reason="stop")
        ]
        assert end.choices[0].is_terminal
        assert not content.choices[0].is_terminal

    @pytest.mark.parametrize("payload", [ROLE_CHUNK, FOOBAR_CHUNK, STOP_CHUNK])
    def test_reencode_preserves_variant(self, payload):
        event = ChatCompletionEvent.model_validate(payload)

        encoded = event.model_dump(mode="json")
        again = ChatCompletionEvent.model_validate_json(json.dumps(encoded))

        assert encoded["choices"][0]["delta"] == payload["choices"][0]["delta"]
        assert again == event
        assert type(again.choices[0].delta) is type(event.choices[0].delta)

    def test_bad_delta_fails_event_validation(self):
        payload = dict(ROLE_CHUNK)
        payload["choices"] = [{"delta": [1, 2], "index": 0, "finish_reason": None}]
        with pytest.raises(ValidationError):
            ChatCompletionEvent.model_validate(payload)


class TestCreate:
    """Non-streaming round trip."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_create_returns_completion(self, client, chat_builder):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json=MOCK_CHAT_RESPONSE))

        completion = await chat_builder.temperature(0.0).create(client)

        assert completion.content == "\n\nHello there! How can I assist you today?"
        assert completion.choices[0].message.role is Role.ASSISTANT
        assert completion.choices[0].finish_reason == "stop"
        assert completion.usage.total_tokens == 21

    @respx.mock
    @pytest.mark.asyncio
    async def test_create_never_requests_stream(self, client, chat_builder):
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json=MOCK_CHAT_RESPONSE))
        request = chat_builder.build().model_copy(update={"stream": True})

        await ChatCompletion.create(client, request)

        body = json.loads(route.calls.last.request.content)
        assert "stream" not in body
        assert body["model"] == MOCK_CHAT_MODEL

    @respx.mock
    @pytest.mark.asyncio
    async def test_create_api_error(self, client, chat_builder):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(401, json=MOCK_ERROR_RESPONSE))

        with pytest.raises(OpenAIAPIError) as exc_info:
            await chat_builder.create(client)

        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "invalid_api_key"
        assert "Incorrect API key" in str(exc_info.value)
