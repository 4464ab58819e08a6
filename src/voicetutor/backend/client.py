"""
Assistant backend client.

The backend is a request/response endpoint: one JSON POST per turn,
answered with the reply text and optional token usage.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from voicetutor.backend.models import ChatRequest, ChatResponse, ErrorResponse
from voicetutor.core.errors import BackendRequestError, MalformedResponseError
from voicetutor.core.logging import get_logger
from voicetutor.costs.accumulator import UsageDelta

if TYPE_CHECKING:
    from voicetutor.config.schema import BackendConfig

logger = get_logger("backend.client")


@dataclass(frozen=True)
class ChatReply:
    """Parsed assistant reply."""

    text: str
    usage: UsageDelta | None = None


class ChatBackend(ABC):
    """Abstract assistant backend."""

    @abstractmethod
    async def complete(self, request: ChatRequest) -> ChatReply:
        """
        Send one request and wait for the reply.

        Raises:
            BackendRequestError: Transport failure or non-success status
            MalformedResponseError: Unexpected payload shape
        """
        pass

    async def aclose(self) -> None:
        """Release any held resources."""
        return None


class HttpChatBackend(ChatBackend):
    """ChatBackend over HTTP using httpx."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize HTTP backend.

        Args:
            endpoint: Absolute URL of the chat endpoint
            timeout: Request timeout in seconds
            client: Optional pre-built client (tests inject a MockTransport)
        """
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config: BackendConfig) -> HttpChatBackend:
        return cls(endpoint=config.endpoint, timeout=config.timeout_seconds)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def complete(self, request: ChatRequest) -> ChatReply:
        payload = request.to_payload()
        logger.debug(
            f"POST {self._endpoint} type={request.request_type.value} "
            f"history={len(request.conversation_history)}"
        )

        try:
            response = await self._client.post(self._endpoint, json=payload)
        except httpx.HTTPError as e:
            raise BackendRequestError(f"Request to {self._endpoint} failed: {e}") from e

        if not response.is_success:
            detail = self._error_detail(response)
            raise BackendRequestError(
                f"Backend returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            body = ChatResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(
                f"Unexpected response payload: {e}", status_code=response.status_code
            ) from e

        usage = body.usage.to_delta() if body.usage else None
        return ChatReply(text=body.response, usage=usage)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            return ErrorResponse.model_validate(response.json()).error or response.reason_phrase
        except (ValueError, ValidationError):
            return response.reason_phrase

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
