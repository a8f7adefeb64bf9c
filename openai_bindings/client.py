"""
OpenAIClient - authorized request dispatch against the API base URL.

Every request goes through this class: it joins the route onto the base URL,
injects the bearer credential, and maps failures onto the error taxonomy in
errors.py. Endpoint modules (chat, completions, edits, embeddings, models)
never touch httpx directly except through it.
"""

import json
import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from openai_bindings.config import (
    EVENT_STREAM_CONTENT_TYPE,
    get_api_key,
    get_base_url,
    get_timeout_seconds,
    normalize_base_url,
)
from openai_bindings.errors import (
    DecodeError,
    OpenAIAPIError,
    StreamTransportError,
    TransportError,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def _is_error_body(data: Any) -> bool:
    """The API may answer with {"error": {...}} even on a 2xx status."""
    return isinstance(data, dict) and set(data) == {"error"}


class OpenAIClient:
    """
    Holds the base URL, credential and underlying httpx.AsyncClient.

    Usage:
        async with OpenAIClient(api_key="sk-...") as client:
            completion = await ChatCompletion.builder(model, messages).create(client)

    A caller-supplied ``http_client`` is used as-is and left open on aclose().
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Bearer credential. Falls back to OPENAI_API_KEY / OPENAI_KEY.
            base_url: API root. Falls back to OPENAI_BASE_URL, then the public endpoint.
            timeout: HTTP timeout in seconds. Falls back to OPENAI_TIMEOUT_SECONDS.
            http_client: Pre-configured httpx.AsyncClient to send requests with.

        Raises:
            ValueError: If no api_key provided and none found in environment
        """
        self._api_key = api_key or get_api_key()
        if not self._api_key:
            raise ValueError(
                "OpenAI API key required. "
                "Provide api_key parameter or set OPENAI_API_KEY environment variable."
            )
        self.base_url = normalize_base_url(base_url) if base_url else get_base_url()
        self.timeout = timeout if timeout is not None else get_timeout_seconds()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self) -> "OpenAIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    # ─────────────────────────────────────────────────────────────────
    # REQUEST CONSTRUCTION
    # ─────────────────────────────────────────────────────────────────

    def url(self, route: str) -> str:
        """Absolute URL for a route relative to the base URL."""
        return self.base_url + route.lstrip("/")

    def headers(self, accept: str = "application/json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": accept,
        }

    def build_request(
        self,
        method: str,
        route: str,
        json_body: Optional[dict] = None,
        accept: str = "application/json",
    ) -> httpx.Request:
        """Authorized request; nothing is sent."""
        return self._http.build_request(
            method,
            self.url(route),
            json=json_body,
            headers=self.headers(accept),
        )

    # ─────────────────────────────────────────────────────────────────
    # DISPATCH
    # ─────────────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        route: str,
        response_model: Type[ResponseT],
        json_body: Optional[dict] = None,
    ) -> ResponseT:
        """
        Send one request and decode the JSON body into ``response_model``.

        Raises:
            TransportError: connection, TLS or timeout failure
            OpenAIAPIError: the API returned an error body
            DecodeError: the body isn't JSON or doesn't match response_model
        """
        request = self.build_request(method, route, json_body)
        logger.debug("%s %s", method, request.url)

        try:
            response = await self._http.send(request)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {route} failed: {e}") from e

        if response.status_code >= 400:
            raise OpenAIAPIError.from_response(response)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"{route} returned a non-JSON body: {response.text[:200]}") from e

        if _is_error_body(data):
            raise OpenAIAPIError.from_response(response)

        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            raise DecodeError(
                f"{route} returned an unexpected {response_model.__name__} shape: {e}"
            ) from e

    async def get(self, route: str, response_model: Type[ResponseT]) -> ResponseT:
        return await self.request("GET", route, response_model)

    async def post(
        self, route: str, json_body: dict, response_model: Type[ResponseT]
    ) -> ResponseT:
        return await self.request("POST", route, response_model, json_body)

    async def open_stream(self, route: str, json_body: dict) -> httpx.Response:
        """
        POST and return the response with its body still unread.

        The caller owns the returned response and must aclose() it.

        Raises:
            StreamTransportError: the connection couldn't be opened
            OpenAIAPIError: the API rejected the request (body is read and closed)
        """
        request = self.build_request(
            "POST", route, json_body, accept=EVENT_STREAM_CONTENT_TYPE
        )
        logger.debug("POST %s (stream)", request.url)

        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as e:
            raise StreamTransportError(f"POST {route} failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                raise StreamTransportError(
                    f"POST {route} failed reading HTTP {response.status_code} body: {e}"
                ) from e
            finally:
                await response.aclose()
            raise OpenAIAPIError.from_body(response.status_code, body)

        return response
