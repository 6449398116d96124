"""Client-side transcript built from the relay's event stream.

A send moves through ``idle -> sending -> streaming -> settled``.  Streamed
``content`` frames are appended to a lazily created assistant message, a
``message`` frame replaces that text, ``navigationLinks`` attach to it and
``done`` finalizes and persists the exchange.  Every send is tagged with the
conversation's generation; starting a new chat or loading another session
bumps the generation, and frames from the abandoned stream are ignored.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from src.client.relay_client import ChatStreamError, RelayClient, RelayError
from src.config.settings import settings
from src.core.models.chat import NavigationLink
from src.utils.logging import logger

class RequestState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    SETTLED_OK = "settled_ok"
    SETTLED_ERROR = "settled_error"

@dataclass
class DisplayMessage:
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    navigation_links: Optional[List[NavigationLink]] = None
    is_error: bool = False

@dataclass
class _PendingReply:
    generation: int
    content: str = ""
    message: Optional[DisplayMessage] = None
    links: List[NavigationLink] = field(default_factory=list)
    done: bool = False

def clean_links(raw: Any) -> List[NavigationLink]:
    """Keep well-formed ``{label, url}`` entries of a links frame."""
    if not isinstance(raw, list):
        return []
    links = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        label, url = item.get("label"), item.get("url")
        if isinstance(label, str) and isinstance(url, str) and label.strip() and url.strip():
            links.append(NavigationLink(label=label, url=url))
    return links

class ChatConversation:
    def __init__(
        self,
        client: RelayClient,
        model: str = "",
        history_limit: int = settings.CHAT_HISTORY_LIMIT,
        on_update: Optional[Callable[["ChatConversation"], None]] = None
    ):
        self.client = client
        self.model = model
        self.history_limit = history_limit
        self.on_update = on_update
        self.messages: List[DisplayMessage] = []
        self.session_id: Optional[int] = None
        self.state = RequestState.IDLE
        self.error: Optional[str] = None
        self._generation = 0

    @property
    def is_loading(self) -> bool:
        return self.state in (RequestState.SENDING, RequestState.STREAMING)

    def _notify(self):
        if self.on_update:
            self.on_update(self)

    def _is_current(self, reply: _PendingReply) -> bool:
        return reply.generation == self._generation

    def new_chat(self):
        self._generation += 1
        self.session_id = None
        self.messages = []
        self.error = None
        self.state = RequestState.IDLE
        self._notify()

    async def load_session(self, session_id: int):
        """Replace the transcript with a persisted session."""
        self._generation += 1
        generation = self._generation
        self.state = RequestState.IDLE
        try:
            turns = await self.client.get_messages(session_id)
        except RelayError as e:
            if generation != self._generation:
                return
            logger.error(f"Failed to load chat session {session_id}: {e}")
            self.messages = []
            self.session_id = None
            self.error = f"Failed to load chat: {e}"
            self._notify()
            return
        if generation != self._generation:
            return
        self.messages = [
            DisplayMessage(
                role=turn.role,
                content=turn.content,
                timestamp=turn.created_at,
                navigation_links=turn.navigation_links or None,
            )
            for turn in turns
        ]
        self.session_id = session_id
        self.error = None
        self._notify()

    async def discard_session(self, session_id: int):
        await self.client.delete_session(session_id)
        if session_id == self.session_id:
            self.new_chat()

    def _history(self, prompt: str) -> List[Dict[str, str]]:
        prior = [m for m in self.messages if not m.is_error]
        if self.history_limit:
            prior = prior[-self.history_limit:]
        history = [{"role": m.role, "content": m.content} for m in prior]
        history.append({"role": "user", "content": prompt})
        return history

    async def send(self, text: str) -> Optional[DisplayMessage]:
        """Send a user prompt and consume the reply stream.

        Returns the finalized assistant message, or None when the send was
        rejected, produced no content or was abandoned.  Transport failures
        are recorded in the transcript and re-raised.
        """
        prompt = text.strip()
        if not prompt or not self.model or self.is_loading:
            return None

        history = self._history(prompt)
        self.messages.append(DisplayMessage(role="user", content=prompt))
        self.state = RequestState.SENDING
        self.error = None
        self._notify()

        reply = _PendingReply(generation=self._generation)
        stream = self.client.stream_chat(self.model, history)
        try:
            async for payload in stream:
                if not self._is_current(reply):
                    logger.info("Ignoring frames from an abandoned chat stream")
                    return None
                self.state = RequestState.STREAMING
                self._apply(reply, payload)
                if reply.done:
                    break
            if not reply.done and self._is_current(reply):
                raise ChatStreamError("The response stream ended unexpectedly")
        except RelayError as e:
            if self._is_current(reply):
                self._fail(e)
                raise
            return None
        finally:
            await stream.aclose()

        if not self._is_current(reply):
            return None
        return await self._finalize(reply, prompt)

    def _apply(self, reply: _PendingReply, payload: Dict[str, Any]):
        content = payload.get("content")
        if isinstance(content, str) and content:
            reply.content += content
            self._show(reply)

        message = payload.get("message")
        if isinstance(message, str) and message:
            reply.content = message
            self._show(reply)

        links = clean_links(payload.get("navigationLinks"))
        if links:
            reply.links = links
            if reply.message is not None:
                reply.message.navigation_links = links

        if payload.get("done"):
            reply.done = True
        self._notify()

    def _show(self, reply: _PendingReply):
        if reply.message is None:
            reply.message = DisplayMessage(
                role="assistant",
                content=reply.content,
                navigation_links=reply.links or None,
            )
            self.messages.append(reply.message)
        else:
            reply.message.content = reply.content

    async def _finalize(self, reply: _PendingReply, prompt: str) -> Optional[DisplayMessage]:
        if not reply.content.strip():
            if reply.message is not None and reply.message in self.messages:
                self.messages.remove(reply.message)
            reply.message = None
        else:
            reply.message.navigation_links = reply.links or None
        self._notify()

        # The send stays in flight until its turns are stored
        try:
            await self._persist(reply, prompt)
        except RelayError as e:
            logger.error(f"Failed to save chat turn: {e}")
            self.error = f"Failed to save chat: {e}"
        if self._is_current(reply):
            self.state = RequestState.SETTLED_OK
        self._notify()
        return reply.message

    async def _persist(self, reply: _PendingReply, prompt: str):
        session_id = self.session_id
        if session_id is None:
            session = await self.client.create_session(prompt)
            session_id = session.id
            if self._is_current(reply):
                self.session_id = session_id
        await self.client.save_message(session_id, "user", prompt)
        if reply.message is not None:
            await self.client.save_message(
                session_id,
                "assistant",
                reply.content,
                reply.links or None
            )

    def _fail(self, error: Exception):
        last = self.messages[-1] if self.messages else None
        if last is not None and last.role == "assistant" and not last.content.strip():
            self.messages.pop()
        self.messages.append(
            DisplayMessage(
                role="assistant",
                content=f"Sorry, I encountered an error: {error}",
                is_error=True,
            )
        )
        self.error = str(error)
        self.state = RequestState.SETTLED_ERROR
        self._notify()
