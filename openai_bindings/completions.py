"""
Text completions: given a prompt, the model returns one or more predicted completions.
"""

from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from openai_bindings.client import OpenAIClient
from openai_bindings.schema import (
    ApiRequest,
    LogitBias,
    ModelName,
    RequestBuilder,
    Usage,
)

COMPLETIONS_ROUTE = "completions"


class CompletionRequest(ApiRequest):
    """Body of POST /completions."""
    omit_if_empty = ("stop", "user")

    model: ModelName
    prompt: Union[str, list[str]]
    suffix: Optional[str] = None
    max_tokens: Optional[int] = Field(default=None, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    n: Optional[int] = Field(default=None, ge=1)
    logprobs: Optional[int] = Field(default=None, ge=0, le=5)
    echo: Optional[bool] = None
    stop: list[str] = Field(default_factory=list, max_length=4)
    presence_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    # server-side candidates; must be >= n when both are set
    best_of: Optional[int] = Field(default=None, ge=1)
    logit_bias: Optional[LogitBias] = None
    user: str = ""


class CompletionBuilder(RequestBuilder):
    request_type = CompletionRequest
    required = ("model", "prompt")

    def model(self, model: "ModelName") -> "CompletionBuilder":
        return self._with(model=model)

    def prompt(self, prompt: Union[str, Iterable[str]]) -> "CompletionBuilder":
        if not isinstance(prompt, str):
            prompt = list(prompt)
        return self._with(prompt=prompt)

    def suffix(self, suffix: str) -> "CompletionBuilder":
        """Text that comes after the inserted completion."""
        return self._with(suffix=suffix)

    def max_tokens(self, max_tokens: int) -> "CompletionBuilder":
        return self._with(max_tokens=max_tokens)

    def temperature(self, temperature: float) -> "CompletionBuilder":
        return self._with(temperature=temperature)

    def top_p(self, top_p: float) -> "CompletionBuilder":
        return self._with(top_p=top_p)

    def n(self, n: int) -> "CompletionBuilder":
        return self._with(n=n)

    def logprobs(self, logprobs: int) -> "CompletionBuilder":
        """Include log probabilities of the most likely ``logprobs`` tokens."""
        return self._with(logprobs=logprobs)

    def echo(self, echo: bool = True) -> "CompletionBuilder":
        """Echo back the prompt in addition to the completion."""
        return self._with(echo=echo)

    def stop(self, stop: Union[str, Iterable[str]]) -> "CompletionBuilder":
        if isinstance(stop, str):
            stop = [stop]
        return self._with(stop=list(stop))

    def presence_penalty(self, presence_penalty: float) -> "CompletionBuilder":
        return self._with(presence_penalty=presence_penalty)

    def frequency_penalty(self, frequency_penalty: float) -> "CompletionBuilder":
        return self._with(frequency_penalty=frequency_penalty)

    def best_of(self, best_of: int) -> "CompletionBuilder":
        return self._with(best_of=best_of)

    def logit_bias(self, logit_bias: dict) -> "CompletionBuilder":
        return self._with(logit_bias=logit_bias)

    def user(self, user: str) -> "CompletionBuilder":
        return self._with(user=user)

    def build(self) -> CompletionRequest:
        request = super().build()
        if request.best_of is not None and request.n is not None and request.best_of < request.n:
            raise ValueError(f"best_of ({request.best_of}) must be >= n ({request.n})")
        return request

    async def create(self, client: OpenAIClient) -> "Completion":
        return await Completion.create(client, self.build())


class CompletionChoice(BaseModel):
    text: str
    index: int
    logprobs: Optional[dict] = None
    finish_reason: Optional[str] = None


class Completion(BaseModel):
    id: str
    object: str
    created: int
    model: str
    choices: list[CompletionChoice]
    usage: Optional[Usage] = None

    @staticmethod
    def builder(model: "ModelName", prompt: Union[str, Iterable[str]]) -> CompletionBuilder:
        return CompletionBuilder().model(model).prompt(prompt)

    @classmethod
    async def create(cls, client: OpenAIClient, request: CompletionRequest) -> "Completion":
        return await client.post(COMPLETIONS_ROUTE, request.to_payload(), cls)

    @property
    def text(self) -> str:
        """Text of the first choice ("" when there are none)."""
        return self.choices[0].text if self.choices else ""
