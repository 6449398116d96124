import json
from typing import Any, AsyncIterator, Dict, List, Optional
import httpx
from src.api.models.chat import ModelsResponse, SessionResponse
from src.config.settings import settings
from src.core.models.chat import ConversationTurn, NavigationLink
from src.core.services.sse import data_payload
from src.utils.logging import logger

class RelayError(Exception):
    """A call to the relay API failed."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class ChatStreamError(RelayError):
    """The chat stream could not be opened or broke off before completion."""

def _error_message(body: bytes, fallback: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return fallback

class RelayClient:
    """HTTP client for the relay's chat stream and persistence endpoints."""

    def __init__(
        self,
        base_url: str = settings.RELAY_URL,
        token: str = settings.RELAY_TOKEN,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=None,
            transport=self._transport,
        )

    async def stream_chat(self, model: str, messages: List[Dict[str, str]]) -> AsyncIterator[Dict[str, Any]]:
        """Yield the decoded JSON payload of every frame the relay sends."""
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    "/api/chat/stream",
                    json={"model": model, "messages": messages},
                ) as resp:
                    if resp.status_code >= 400:
                        body = await resp.aread()
                        raise ChatStreamError(
                            _error_message(body, "Failed to get AI response"),
                            resp.status_code
                        )
                    async for line in resp.aiter_lines():
                        data = _decode(line)
                        if data is not None:
                            yield data
        except httpx.HTTPError as e:
            raise ChatStreamError(str(e) or e.__class__.__name__) from e

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RelayError(str(e) or e.__class__.__name__) from e
        if resp.status_code >= 400:
            raise RelayError(
                _error_message(resp.content, f"Relay returned {resp.status_code}"),
                resp.status_code
            )
        return resp

    async def get_models(self) -> ModelsResponse:
        resp = await self._request("GET", "/api/chat/models")
        return ModelsResponse.model_validate(resp.json())

    async def create_session(self, first_message: str) -> SessionResponse:
        resp = await self._request("POST", "/api/chat/sessions", json={"firstMessage": first_message})
        return SessionResponse.model_validate(resp.json())

    async def list_sessions(self, query: Optional[str] = None) -> List[SessionResponse]:
        params = {"q": query} if query else None
        resp = await self._request("GET", "/api/chat/sessions", params=params)
        return [SessionResponse.model_validate(item) for item in resp.json()]

    async def get_messages(self, session_id: int) -> List[ConversationTurn]:
        resp = await self._request("GET", f"/api/chat/sessions/{session_id}/messages")
        return [ConversationTurn.model_validate(item) for item in resp.json()]

    async def save_message(
        self,
        session_id: int,
        role: str,
        content: str,
        links: Optional[List[NavigationLink]] = None
    ) -> ConversationTurn:
        body: Dict[str, Any] = {"role": role, "content": content}
        if links:
            body["navigationLinks"] = [link.model_dump() for link in links]
        resp = await self._request("POST", f"/api/chat/sessions/{session_id}/messages", json=body)
        return ConversationTurn.model_validate(resp.json())

    async def rename_session(self, session_id: int, title: str) -> SessionResponse:
        resp = await self._request("PATCH", f"/api/chat/sessions/{session_id}", json={"title": title})
        return SessionResponse.model_validate(resp.json())

    async def delete_session(self, session_id: int):
        await self._request("DELETE", f"/api/chat/sessions/{session_id}")

def _decode(line: str) -> Optional[Dict[str, Any]]:
    payload = data_payload(line)
    if payload is None:
        return None
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug(f"Skipping unreadable relay frame: {payload[:80]!r}")
        return None
    return data if isinstance(data, dict) else None
