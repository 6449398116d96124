"""OpenAI-compatible chat completion client and its stream decoder."""
import json
from typing import Any, AsyncIterator, Dict, List, Optional
import httpx
from src.config.settings import settings
from src.core.models.events import DeltaEvent, DoneEvent, ErrorEvent, StreamEvent
from src.core.services.sse import data_payload
from src.utils.logging import logger

DONE_SENTINEL = "[DONE]"

class UpstreamDecoder:
    """Turns provider SSE lines into delta/done/error events.

    Lines that are not valid JSON are skipped; nothing is produced once a
    terminal event has been emitted.
    """

    def __init__(self):
        self.finished = False

    def feed(self, line: str) -> List[StreamEvent]:
        if self.finished:
            return []
        payload = data_payload(line)
        if payload is None:
            return []
        return self._decode_payload(payload)

    def close(self) -> List[StreamEvent]:
        """A stream that ends without a terminator ends as done."""
        if self.finished:
            return []
        self.finished = True
        return [DoneEvent()]

    def _decode_payload(self, payload: str) -> List[StreamEvent]:
        if payload.strip() == DONE_SENTINEL:
            self.finished = True
            return [DoneEvent()]
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug(f"Skipping non-JSON stream line: {payload[:80]!r}")
            return []
        if not isinstance(data, dict):
            return []

        if data.get("error"):
            self.finished = True
            return [ErrorEvent(detail=_error_detail(data["error"]))]

        events: List[StreamEvent] = []
        choices = data.get("choices") or []
        choice = choices[0] if choices and isinstance(choices[0], dict) else {}
        delta = choice.get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(content, str) and content:
            events.append(DeltaEvent(text=content))
        if choice.get("finish_reason"):
            self.finished = True
            events.append(DoneEvent())
        return events

def _error_detail(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)

class LLMProvider:
    """Streams chat completions from the configured provider.

    There is no internal timeout and no retry: the provider connection's own
    lifecycle bounds a request, and any failure becomes a single error event.
    """

    name = "openrouter"

    def __init__(self, cfg=settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = cfg
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.LLM_API_KEY}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._settings.APP_URL,
            "X-Title": self._settings.APP_NAME,
        }

    async def stream_completion(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> AsyncIterator[StreamEvent]:
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self._settings.LLM_TEMPERATURE,
            "max_tokens": max_tokens or self._settings.LLM_MAX_TOKENS,
            "stream": True,
        }
        decoder = UpstreamDecoder()
        url = f"{self._settings.LLM_BASE_URL.rstrip('/')}/chat/completions"
        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                async with client.stream("POST", url, json=payload, headers=self._headers()) as resp:
                    if resp.status_code >= 400:
                        body = (await resp.aread()).decode("utf-8", errors="replace")
                        logger.error(f"Provider returned {resp.status_code}: {body[:500]}")
                        yield ErrorEvent(detail=_status_detail(resp.status_code, body))
                        return
                    async for line in resp.aiter_lines():
                        for event in decoder.feed(line):
                            yield event
                        if decoder.finished:
                            return
                    for event in decoder.close():
                        yield event
        except httpx.HTTPError as e:
            logger.error(f"Provider request failed: {e}")
            yield ErrorEvent(detail=str(e) or e.__class__.__name__)

def _status_detail(status_code: int, body: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return _error_detail(data["error"])
    return f"AI provider error: {status_code}"
