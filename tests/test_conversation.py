import asyncio
from datetime import datetime
from types import SimpleNamespace

import pytest

from src.client.conversation import ChatConversation, DisplayMessage, RequestState, clean_links
from src.client.relay_client import ChatStreamError, RelayError
from src.core.models.chat import ConversationTurn, NavigationLink


class FakeRelayClient:
    """Scripted relay: frames are dicts, exceptions to raise, or callables to run mid-stream."""

    def __init__(self, frames=()):
        self.frames = list(frames)
        self.streams = []
        self.created = []
        self.saved = []
        self.turns = {}
        self.closed = False
        self.fail_saves = False
        self.session_gate = None

    async def stream_chat(self, model, messages):
        self.streams.append((model, messages))
        try:
            for item in self.frames:
                if isinstance(item, Exception):
                    raise item
                if callable(item):
                    item()
                    continue
                yield item
        finally:
            self.closed = True

    async def create_session(self, first_message):
        self.created.append(first_message)
        if self.session_gate is not None:
            await self.session_gate.wait()
        return SimpleNamespace(id=7)

    async def save_message(self, session_id, role, content, links=None):
        if self.fail_saves:
            raise RelayError("Relay returned 503", 503)
        self.saved.append((session_id, role, content, links))

    async def get_messages(self, session_id):
        if session_id not in self.turns:
            raise RelayError(f"Chat session {session_id} not found", 404)
        return self.turns[session_id]

    async def delete_session(self, session_id):
        self.turns.pop(session_id, None)


UNIT = NavigationLink(label="Unit 1", url="/units/5")
BOOK = NavigationLink(label="Arabic Basics", url="/books/1")


def link_frame(*links):
    return {"navigationLinks": [link.model_dump() for link in links]}


@pytest.mark.anyio("asyncio")
async def test_message_frame_replaces_streamed_text_and_exchange_is_saved():
    client = FakeRelayClient([
        {"content": '{"message": "'},
        {"content": 'Hi"}'},
        {"message": "Hi"},
        link_frame(UNIT),
        {"done": True},
    ])
    conversation = ChatConversation(client, model="openai/gpt-4o")

    reply = await conversation.send("  Where do I start?  ")

    assert reply.content == "Hi"
    assert reply.navigation_links == [UNIT]
    assert [(m.role, m.content) for m in conversation.messages] == [
        ("user", "Where do I start?"),
        ("assistant", "Hi"),
    ]
    assert conversation.state == RequestState.SETTLED_OK
    assert conversation.session_id == 7
    assert client.created == ["Where do I start?"]
    assert client.saved == [
        (7, "user", "Where do I start?", None),
        (7, "assistant", "Hi", [UNIT]),
    ]
    assert client.streams == [
        ("openai/gpt-4o", [{"role": "user", "content": "Where do I start?"}])
    ]


@pytest.mark.anyio("asyncio")
async def test_latest_non_empty_links_win():
    client = FakeRelayClient([
        link_frame(BOOK),
        {"content": "Look here"},
        {"navigationLinks": []},
        {"navigationLinks": [{"label": "", "url": "/x"}, "junk"]},
        link_frame(UNIT),
        {"done": True},
    ])
    conversation = ChatConversation(client, model="m")

    reply = await conversation.send("links please")

    assert reply.navigation_links == [UNIT]
    assert client.saved[-1] == (7, "assistant", "Look here", [UNIT])


@pytest.mark.anyio("asyncio")
async def test_empty_reply_discards_placeholder_and_saves_user_turn_only():
    client = FakeRelayClient([{"done": True}])
    conversation = ChatConversation(client, model="m")

    assert await conversation.send("Hello") is None

    assert [(m.role, m.content) for m in conversation.messages] == [("user", "Hello")]
    assert client.saved == [(7, "user", "Hello", None)]
    assert conversation.state == RequestState.SETTLED_OK


@pytest.mark.anyio("asyncio")
async def test_existing_session_is_reused():
    client = FakeRelayClient([{"content": "Again"}, {"done": True}])
    conversation = ChatConversation(client, model="m")
    conversation.session_id = 3

    await conversation.send("Once more")

    assert client.created == []
    assert [entry[0] for entry in client.saved] == [3, 3]


@pytest.mark.anyio("asyncio")
async def test_transport_error_is_shown_and_raised():
    client = FakeRelayClient([ChatStreamError("AI features are currently disabled", 403)])
    conversation = ChatConversation(client, model="m")

    with pytest.raises(ChatStreamError):
        await conversation.send("Hi")

    last = conversation.messages[-1]
    assert last.is_error
    assert last.content == "Sorry, I encountered an error: AI features are currently disabled"
    assert [m.role for m in conversation.messages] == ["user", "assistant"]
    assert conversation.state == RequestState.SETTLED_ERROR
    assert not conversation.is_loading
    assert client.saved == []
    assert client.closed


@pytest.mark.anyio("asyncio")
async def test_stream_without_done_is_an_error():
    client = FakeRelayClient([{"content": "Hel"}])
    conversation = ChatConversation(client, model="m")

    with pytest.raises(ChatStreamError):
        await conversation.send("Hi")

    assert [(m.content, m.is_error) for m in conversation.messages[1:]] == [
        ("Hel", False),
        ("Sorry, I encountered an error: The response stream ended unexpectedly", True),
    ]
    assert client.saved == []


@pytest.mark.anyio("asyncio")
async def test_send_is_rejected_while_loading_or_without_model():
    client = FakeRelayClient([{"done": True}])
    conversation = ChatConversation(client, model="m")
    conversation.state = RequestState.STREAMING

    assert await conversation.send("Hi") is None

    conversation.state = RequestState.IDLE
    conversation.model = ""
    assert await conversation.send("Hi") is None
    assert await ChatConversation(client, model="m").send("   ") is None
    assert client.streams == []
    assert conversation.messages == []


@pytest.mark.anyio("asyncio")
async def test_abandoned_stream_is_ignored():
    client = FakeRelayClient()
    conversation = ChatConversation(client, model="m")
    client.frames = [{"content": "Hel"}, conversation.new_chat, {"content": "lo"}, {"done": True}]

    assert await conversation.send("Hi") is None

    assert conversation.messages == []
    assert conversation.session_id is None
    assert conversation.state == RequestState.IDLE
    assert client.saved == []
    assert client.closed


@pytest.mark.anyio("asyncio")
async def test_history_is_limited_and_skips_error_messages():
    client = FakeRelayClient([{"content": "ok"}, {"done": True}])
    conversation = ChatConversation(client, model="m", history_limit=2)
    conversation.messages = [
        DisplayMessage(role="user", content="a"),
        DisplayMessage(role="assistant", content="b"),
        DisplayMessage(role="user", content="c"),
        DisplayMessage(role="assistant", content="Sorry, I encountered an error: x", is_error=True),
        DisplayMessage(role="assistant", content="d"),
    ]

    await conversation.send("e")

    _, history = client.streams[0]
    assert history == [
        {"role": "user", "content": "c"},
        {"role": "assistant", "content": "d"},
        {"role": "user", "content": "e"},
    ]


@pytest.mark.anyio("asyncio")
async def test_failed_save_keeps_reply_and_records_error():
    client = FakeRelayClient([{"content": "Hi"}, {"done": True}])
    client.fail_saves = True
    conversation = ChatConversation(client, model="m")

    reply = await conversation.send("Hello")

    assert reply.content == "Hi"
    assert conversation.state == RequestState.SETTLED_OK
    assert conversation.error == "Failed to save chat: Relay returned 503"


@pytest.mark.anyio("asyncio")
async def test_load_session_replaces_transcript():
    client = FakeRelayClient()
    stamp = datetime(2026, 1, 5, 9, 30)
    client.turns[4] = [
        ConversationTurn(role="user", content="Colors?", created_at=stamp),
        ConversationTurn(role="assistant", content="Here.", created_at=stamp, navigation_links=[UNIT]),
    ]
    conversation = ChatConversation(client, model="m")
    conversation.messages = [DisplayMessage(role="user", content="old")]

    await conversation.load_session(4)

    assert conversation.session_id == 4
    assert [(m.role, m.content) for m in conversation.messages] == [("user", "Colors?"), ("assistant", "Here.")]
    assert conversation.messages[1].navigation_links == [UNIT]
    assert conversation.messages[0].timestamp == stamp

    await conversation.discard_session(4)
    assert conversation.session_id is None
    assert conversation.messages == []


def test_clean_links_filters_malformed_entries():
    raw = [{"label": "Unit 1", "url": "/units/5"}, {"label": "x"}, {"label": " ", "url": "/a"}, None]
    assert clean_links(raw) == [UNIT]
    assert clean_links("nope") == []


@pytest.mark.anyio("asyncio")
async def test_second_send_is_rejected_while_first_reply_is_saved():
    client = FakeRelayClient([{"content": "Hi"}, {"done": True}])
    client.session_gate = asyncio.Event()
    conversation = ChatConversation(client, model="m")

    first = asyncio.create_task(conversation.send("one"))
    while not client.created:
        await asyncio.sleep(0)

    assert conversation.is_loading
    assert await conversation.send("two") is None

    client.session_gate.set()
    reply = await first

    assert reply.content == "Hi"
    assert conversation.state == RequestState.SETTLED_OK
    assert not conversation.is_loading
    assert client.created == ["one"]
    assert client.saved == [(7, "user", "one", None), (7, "assistant", "Hi", None)]
    assert len(client.streams) == 1


@pytest.mark.anyio("asyncio")
async def test_failed_load_clears_transcript():
    client = FakeRelayClient()
    conversation = ChatConversation(client, model="m")
    conversation.session_id = 3
    conversation.messages = [DisplayMessage(role="user", content="old")]

    await conversation.load_session(99)

    assert conversation.messages == []
    assert conversation.session_id is None
    assert conversation.error == "Failed to load chat: Chat session 99 not found"
    assert conversation.state == RequestState.IDLE
