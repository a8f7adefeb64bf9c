"""Shared request base, owned-style request builder and common field types."""

from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, Tuple, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict

from openai_bindings.errors import BuilderError


def _model_id_value(value: Any) -> Any:
    """Accept ModelID members (or any str Enum) wherever a model name goes."""
    if isinstance(value, Enum):
        return value.value
    return value


# Model identifier as sent on the wire; ModelID members are unwrapped to their value
ModelName = Annotated[str, BeforeValidator(_model_id_value)]


def _stringify_keys(value: Any) -> Any:
    """Token ids in logit_bias are JSON object keys, so always strings."""
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items()}
    return value


LogitBias = Annotated[Dict[str, float], BeforeValidator(_stringify_keys)]


class Usage(BaseModel):
    """Token accounting attached to non-streaming responses."""
    prompt_tokens: int
    completion_tokens: int = 0  # embeddings don't report it
    total_tokens: int


class ApiRequest(BaseModel):
    """
    Immutable request body.

    Unset optional fields are omitted from the payload rather than sent as null.
    Fields listed in ``omit_if_empty`` are also dropped when empty ("" or []).
    """
    model_config = ConfigDict(frozen=True)

    omit_if_empty: ClassVar[Tuple[str, ...]] = ()

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent to the API."""
        payload = self.model_dump(mode="json", exclude_none=True)
        for name in self.omit_if_empty:
            if name in payload and not payload[name]:
                del payload[name]
        return payload


BuilderT = TypeVar("BuilderT", bound="RequestBuilder")


class RequestBuilder:
    """
    Owned-style builder: every setter returns a new builder, the original is untouched.

    Subclasses set ``request_type`` and ``required`` and add one setter per field.
    """

    request_type: ClassVar[Type[ApiRequest]] = ApiRequest
    required: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, **fields: Any):
        self._fields = fields

    def _with(self: BuilderT, **changes: Any) -> BuilderT:
        return type(self)(**{**self._fields, **changes})

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self._fields.items())
        return f"{type(self).__name__}({fields})"

    def build(self):
        """
        Validate and freeze the collected fields.

        Raises:
            BuilderError: a required field was never set
            pydantic.ValidationError: a field value is out of range or mistyped
        """
        for name in self.required:
            if name not in self._fields:
                raise BuilderError(name)
        return self.request_type(**self._fields)
