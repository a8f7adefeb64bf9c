"""
Edits: given an input text and an instruction, the model returns an edited version.
"""

from typing import Optional

from pydantic import BaseModel, Field

from openai_bindings.client import OpenAIClient
from openai_bindings.schema import ApiRequest, ModelName, Usage

EDITS_ROUTE = "edits"


class EditRequest(ApiRequest):
    model: ModelName
    input: str = ""  # empty input asks the model to write from the instruction alone
    instruction: str
    n: Optional[int] = Field(default=None, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class EditChoice(BaseModel):
    text: str
    index: int


class Edit(BaseModel):
    object: str
    created: int
    choices: list[EditChoice]
    usage: Usage

    @classmethod
    async def create(
        cls,
        client: OpenAIClient,
        model: "ModelName",
        instruction: str,
        input: str = "",
        n: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
    ) -> "Edit":
        """Create a new edit for the provided input and instruction."""
        request = EditRequest(
            model=model,
            input=input,
            instruction=instruction,
            n=n,
            temperature=temperature,
            top_p=top_p,
        )
        return await client.post(EDITS_ROUTE, request.to_payload(), cls)

    @property
    def texts(self) -> list[str]:
        return [choice.text for choice in sorted(self.choices, key=lambda c: c.index)]
