"""Recovers the ``{message, navigationLinks}`` envelope from a streamed reply.

The model is asked to answer with a single JSON object but streams it token
by token and sometimes stops early or answers in plain markdown.  Fragments
are forwarded untouched while streaming; only once the stream has ended is
the accumulated text parsed.

Repair is deliberately narrow: a reply missing closing ``}`` gets them
appended, nothing else (unclosed arrays or strings, trailing commas) is
fixed.  When parsing still fails, markdown ``[label](url)`` links are pulled
out of the raw text instead and the raw text stays the displayed message.
"""
import json
import re
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from src.core.models.events import DeltaEvent
from src.utils.logging import logger

LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
TRAILING_FENCE = re.compile(r"\s*```\s*$")
MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

class RecoveredReply(BaseModel):
    # None when the envelope could not be parsed or had no message
    message: Optional[str] = None
    candidates: List[Any] = Field(default_factory=list)
    structured: bool = False

def strip_code_fence(text: str) -> str:
    text = LEADING_FENCE.sub("", text.strip())
    return TRAILING_FENCE.sub("", text)

def balance_braces(candidate: str) -> str:
    """Append the ``}`` a truncated object is missing."""
    missing = candidate.count("{") - candidate.count("}")
    if missing > 0:
        candidate += "}" * missing
    return candidate

def parse_envelope(text: str) -> Optional[Dict[str, Any]]:
    cleaned = strip_code_fence(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        return None
    try:
        parsed = json.loads(balance_braces(cleaned[start:end + 1]))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None

def extract_markdown_links(text: str) -> List[Dict[str, str]]:
    """Internal ``[label](/path)`` links in order of appearance."""
    return [
        {"label": label, "url": url}
        for label, url in MARKDOWN_LINK.findall(text)
        if url.startswith("/")
    ]

class ResponseRecovery:
    """Per-request accumulator; one instance per relayed reply."""

    def __init__(self):
        self.accumulated = ""

    def push(self, fragment: str) -> DeltaEvent:
        self.accumulated += fragment
        return DeltaEvent(text=fragment)

    def recover(self) -> RecoveredReply:
        if not self.accumulated.strip():
            return RecoveredReply()

        envelope = parse_envelope(self.accumulated)
        if envelope is None:
            links = extract_markdown_links(self.accumulated)
            logger.info(f"Reply is not a JSON envelope, found {len(links)} markdown links")
            return RecoveredReply(candidates=links)

        message = envelope.get("message")
        links = envelope.get("navigationLinks")
        return RecoveredReply(
            message=message if isinstance(message, str) and message else None,
            candidates=links if isinstance(links, list) else [],
            structured=True,
        )
