"""
Model identifiers and the model listing endpoints.

ModelID members compare equal to their wire strings, and every request field
that takes a model also accepts a plain string (fine-tunes, new releases).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from openai_bindings.client import OpenAIClient


class ModelID(str, Enum):
    """Known model identifiers."""

    ADA = "ada"
    BABBAGE = "babbage"
    CURIE = "curie"
    DAVINCI = "davinci"
    TEXT_ADA_001 = "text-ada-001"
    TEXT_BABBAGE_001 = "text-babbage-001"
    TEXT_CURIE_001 = "text-curie-001"
    TEXT_DAVINCI_001 = "text-davinci-001"
    TEXT_DAVINCI_002 = "text-davinci-002"
    TEXT_DAVINCI_003 = "text-davinci-003"
    CODE_CUSHMAN_001 = "code-cushman-001"
    CODE_DAVINCI_002 = "code-davinci-002"
    TEXT_DAVINCI_EDIT_001 = "text-davinci-edit-001"
    CODE_DAVINCI_EDIT_001 = "code-davinci-edit-001"
    TEXT_EMBEDDING_ADA_002 = "text-embedding-ada-002"
    TEXT_MODERATION_STABLE = "text-moderation-stable"
    TEXT_MODERATION_LATEST = "text-moderation-latest"
    GPT_3_5_TURBO = "gpt-3.5-turbo"
    GPT_3_5_TURBO_0301 = "gpt-3.5-turbo-0301"
    WHISPER_1 = "whisper-1"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "ModelID | str":
        """Known member for ``value``, or ``value`` itself if unknown."""
        try:
            return cls(value)
        except ValueError:
            return value


class Model(BaseModel):
    """One entry of GET /models."""
    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: Optional[str] = None


class ModelList(BaseModel):
    object: str = "list"
    data: list[Model] = Field(default_factory=list)


async def list_models(client: OpenAIClient) -> list[Model]:
    """Return every model the credential can use."""
    result = await client.get("models", ModelList)
    return result.data


async def retrieve_model(client: OpenAIClient, model_id: "ModelID | str") -> Model:
    """Return basic information about one model."""
    return await client.get(f"models/{model_id}", Model)
