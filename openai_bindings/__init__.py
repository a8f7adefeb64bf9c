"""
Async client bindings for the OpenAI HTTP API.

Chat completions (plain and streamed), text completions, edits, embeddings
and model listing, all dispatched through an explicit OpenAIClient.
"""

from .chat import (
    ChatCompletion,
    ChatCompletionBuilder,
    ChatCompletionChoice,
    ChatCompletionChoiceDelta,
    ChatCompletionEvent,
    ChatCompletionMessage,
    ChatCompletionRequest,
    ContentDelta,
    Delta,
    EmptyDelta,
    Role,
    RoleDelta,
    parse_delta,
)
from .client import OpenAIClient
from .completions import Completion, CompletionBuilder, CompletionRequest
from .edits import Edit
from .embeddings import Embedding, Embeddings
from .errors import (
    BuilderError,
    DecodeError,
    OpenAIAPIError,
    OpenAIBindingsError,
    StreamConsumedError,
    StreamDecodeError,
    StreamTransportError,
    TransportError,
)
from .models import Model, ModelID, list_models, retrieve_model
from .schema import Usage
from .streaming import (
    ChatCompletionAccumulator,
    ChatCompletionStream,
    ServerSentEvent,
    SSEDecoder,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "OpenAIClient",
    # Chat
    "ChatCompletion",
    "ChatCompletionBuilder",
    "ChatCompletionChoice",
    "ChatCompletionChoiceDelta",
    "ChatCompletionEvent",
    "ChatCompletionMessage",
    "ChatCompletionRequest",
    "ContentDelta",
    "Delta",
    "EmptyDelta",
    "Role",
    "RoleDelta",
    "parse_delta",
    # Streaming
    "ChatCompletionAccumulator",
    "ChatCompletionStream",
    "ServerSentEvent",
    "SSEDecoder",
    # Other endpoints
    "Completion",
    "CompletionBuilder",
    "CompletionRequest",
    "Edit",
    "Embedding",
    "Embeddings",
    "Model",
    "ModelID",
    "list_models",
    "retrieve_model",
    "Usage",
    # Errors
    "BuilderError",
    "DecodeError",
    "OpenAIAPIError",
    "OpenAIBindingsError",
    "StreamConsumedError",
    "StreamDecodeError",
    "StreamTransportError",
    "TransportError",
]
