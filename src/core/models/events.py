"""Transient events flowing through the relay, never persisted."""
from typing import List, Literal, Union
from pydantic import BaseModel
from src.core.models.chat import NavigationLink

class DeltaEvent(BaseModel):
    kind: Literal["delta"] = "delta"
    text: str

class MessageEvent(BaseModel):
    kind: Literal["message"] = "message"
    text: str

class LinksEvent(BaseModel):
    kind: Literal["links"] = "links"
    links: List[NavigationLink]

class DoneEvent(BaseModel):
    kind: Literal["done"] = "done"

class ErrorEvent(BaseModel):
    kind: Literal["error"] = "error"
    detail: str

StreamEvent = Union[DeltaEvent, MessageEvent, LinksEvent, DoneEvent, ErrorEvent]

TERMINAL_EVENTS = (DoneEvent, ErrorEvent)
