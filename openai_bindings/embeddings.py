"""
Embeddings: a vector representation of input text for use by ML models and algorithms.
"""

from typing import Union

from pydantic import BaseModel, Field

from openai_bindings.client import OpenAIClient
from openai_bindings.errors import DecodeError
from openai_bindings.schema import ApiRequest, ModelName, Usage

EMBEDDINGS_ROUTE = "embeddings"


class EmbeddingsRequest(ApiRequest):
    omit_if_empty = ("user",)

    model: ModelName
    input: list[str] = Field(min_length=1)
    user: str = ""


class Embedding(BaseModel):
    object: str = "embedding"
    embedding: list[float]
    index: int = 0

    @property
    def vec(self) -> list[float]:
        return self.embedding

    @classmethod
    async def create(
        cls, client: OpenAIClient, model: "ModelName", input: str, user: str = ""
    ) -> "Embedding":
        """Embed a single text."""
        embeddings = await Embeddings.create(client, model, [input], user)
        if not embeddings.data:
            raise DecodeError("embeddings response has no data")
        return embeddings.data[0]


class Embeddings(BaseModel):
    object: str = "list"
    data: list[Embedding]
    model: str
    usage: Usage

    @classmethod
    async def create(
        cls,
        client: OpenAIClient,
        model: "ModelName",
        input: Union[str, list[str]],
        user: str = "",
    ) -> "Embeddings":
        """
        Embed one or more texts in a single request.

        Returned vectors are ordered to match ``input``.
        """
        if isinstance(input, str):
            input = [input]
        request = EmbeddingsRequest(model=model, input=input, user=user)
        result = await client.post(EMBEDDINGS_ROUTE, request.to_payload(), cls)
        result.data.sort(key=lambda e: e.index)
        return result

    @property
    def vectors(self) -> list[list[float]]:
        return [e.embedding for e in self.data]
