"""Shared test fixtures for openai-bindings tests."""

import json

import pytest
import pytest_asyncio


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_API_KEY = "sk-test-key-123"
MOCK_BASE_URL = "https://api.test.local/v1/"
CHAT_URL = MOCK_BASE_URL + "chat/completions"

MOCK_CHAT_MODEL = "gpt-3.5-turbo"
MOCK_COMPLETION_ID = "chatcmpl-6wBU7HGxEXqdShNC81ZlfkOLDM0MF"
MOCK_CREATED = 1679325191

MOCK_MODELS_RESPONSE = {
    "object": "list",
    "data": [
        {"id": "gpt-3.5-turbo", "object": "model", "created": 1677610602, "owned_by": "openai"},
        {"id": "text-embedding-ada-002", "object": "model", "created": 1671217299, "owned_by": "openai-internal"},
        {"id": "my-finetune", "object": "model", "created": 1680000000, "owned_by": "user-abc"},
    ],
}

MOCK_CHAT_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1677652288,
    "model": "gpt-3.5-turbo-0301",
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "\n\nHello there! How can I assist you today?",
            },
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 9, "completion_tokens": 12, "total_tokens": 21},
}

MOCK_ERROR_RESPONSE = {
    "error": {
        "message": "Incorrect API key provided: sk-bad.",
        "type": "invalid_request_error",
        "param": None,
        "code": "invalid_api_key",
    }
}


def chunk(delta: dict, index: int = 0, finish_reason=None, **overrides) -> dict:
    """One chat.completion.chunk payload with a single choice."""
    payload = {
        "id": MOCK_COMPLETION_ID,
        "object": "chat.completion.chunk",
        "created": MOCK_CREATED,
        "model": MOCK_CHAT_MODEL,
        "choices": [{"delta": delta, "index": index, "finish_reason": finish_reason}],
    }
    payload.update(overrides)
    return payload


def sse_body(*payloads, done: bool = True) -> str:
    """
    Build an SSE response body.

    dict payloads are JSON-encoded; str payloads are sent verbatim.
    """
    lines = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {data}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines)


ROLE_CHUNK = chunk({"role": "assistant"})
FOOBAR_CHUNK = chunk({"content": "foobar"})
STOP_CHUNK = chunk({}, finish_reason="stop")

MOCK_STREAMING_CHUNKS = [
    chunk({"role": "assistant"}),
    chunk({"content": "The"}),
    chunk({"content": " capital"}),
    chunk({"content": " of"}),
    chunk({"content": " France"}),
    chunk({"content": " is"}),
    chunk({"content": " Paris."}),
    chunk({}, finish_reason="stop"),
]


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's real OPENAI_* settings out of unit tests."""
    for key in ("OPENAI_API_KEY", "OPENAI_KEY", "OPENAI_BASE_URL", "OPENAI_TIMEOUT_SECONDS"):
        monkeypatch.delenv(key, raising=False)


@pytest_asyncio.fixture
async def client():
    """OpenAIClient pointed at the mock base URL."""
    from openai_bindings.client import OpenAIClient

    async with OpenAIClient(api_key=MOCK_API_KEY, base_url=MOCK_BASE_URL) as c:
        yield c


@pytest.fixture
def sample_messages():
    """Return sample conversation messages."""
    from openai_bindings.chat import ChatCompletionMessage

    return [
        ChatCompletionMessage.system("You are a helpful assistant."),
        ChatCompletionMessage.user("What is the capital of France?"),
    ]


@pytest.fixture
def chat_builder(sample_messages):
    from openai_bindings.chat import ChatCompletion

    return ChatCompletion.builder(MOCK_CHAT_MODEL, sample_messages)


@pytest.fixture
def mock_streaming_chunks():
    """Return mock streaming response chunks."""
    return list(MOCK_STREAMING_CHUNKS)
