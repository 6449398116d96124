"""Server-Sent-Events framing shared by the relay and its clients.

Both directions use the same line-oriented framing: every event is a single
``data: <json>`` line followed by a blank line.  Readers split the body with
``httpx``'s ``aiter_lines`` and pass each line through ``data_payload``;
``encode_event``/``encode_stream`` produce the relay's outbound frames.
"""
import json
from typing import AsyncIterator, Optional
from src.core.models.events import (
    DeltaEvent,
    DoneEvent,
    ErrorEvent,
    LinksEvent,
    MessageEvent,
    StreamEvent,
)
from src.utils.logging import logger

DATA_PREFIX = "data:"

def data_payload(line: str) -> Optional[str]:
    """Payload of a ``data:`` line; None for blank separators, comments and heartbeats."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].lstrip(" ")

def event_payload(event: StreamEvent) -> Optional[dict]:
    if isinstance(event, DeltaEvent):
        return {"content": event.text}
    if isinstance(event, MessageEvent):
        return {"message": event.text}
    if isinstance(event, LinksEvent):
        return {"navigationLinks": [link.model_dump() for link in event.links]}
    if isinstance(event, DoneEvent):
        return {"done": True}
    return None

def encode_event(event: StreamEvent) -> bytes:
    payload = event_payload(event)
    if payload is None:
        raise ValueError(f"{event.kind} events have no outbound frame")
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"data: {data}\n\n".encode("utf-8")

async def encode_stream(events: AsyncIterator[StreamEvent]) -> AsyncIterator[bytes]:
    """Frame relay events one by one until the first terminal event.

    An error after streaming started ends the body without a ``done`` frame,
    which clients treat as a failed transport.  The source is closed on every
    path, including when the consumer stops iterating early.
    """
    try:
        async for event in events:
            if isinstance(event, ErrorEvent):
                logger.error(f"Upstream failed mid-stream: {event.detail}")
                return
            yield encode_event(event)
            if isinstance(event, DoneEvent):
                return
    except Exception as e:
        logger.error(f"Error in stream generation: {e}")
        raise
    finally:
        await events.aclose()
