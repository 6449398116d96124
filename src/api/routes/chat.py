from typing import AsyncIterator, List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import StreamingResponse
from src.api.dependencies.auth import get_current_user, require_ai_access
from src.api.models.chat import (
    ChatStreamRequest,
    MessageCreateRequest,
    MessageResponse,
    ModelsResponse,
    SessionCreateRequest,
    SessionRenameRequest,
    SessionResponse,
)
from src.core.models.events import DoneEvent, ErrorEvent, StreamEvent
from src.core.models.user import UserIdentity
from src.core.services.catalog import CatalogService
from src.core.services.chat_service import ChatService
from src.core.services.chat_store import ChatStore
from src.core.services.db_service import get_db_service
from src.core.services.link_validator import LinkValidator
from src.core.services.llm_provider import LLMProvider
from src.core.services.prompt import PromptBuilder
from src.core.services.sse import encode_stream
from src.utils.errors import AppError, UpstreamError
from src.utils.logging import logger

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

# Create dependency for services
def get_chat_service() -> ChatService:
    catalog = CatalogService(get_db_service())
    return ChatService(PromptBuilder(catalog), LLMProvider(), LinkValidator(catalog))

def get_chat_store() -> ChatStore:
    return ChatStore(get_db_service())

async def _prepend(first: StreamEvent, rest: AsyncIterator[StreamEvent]) -> AsyncIterator[StreamEvent]:
    try:
        yield first
        async for event in rest:
            yield event
    finally:
        await rest.aclose()

@router.post("/chat/stream", response_class=StreamingResponse)
async def stream_endpoint(
    request: ChatStreamRequest,
    user: UserIdentity = Depends(require_ai_access),
    chat_service: ChatService = Depends(get_chat_service)
):
    messages = [message.model_dump() for message in request.messages]
    events = chat_service.stream_reply(request.model, messages, request.mode)

    # Pull the first event before committing to a 200 so that failures
    # up to that point still get a proper status code.
    try:
        first = await events.__anext__()
    except StopAsyncIteration:
        first = DoneEvent()
    except AppError:
        await events.aclose()
        raise
    except Exception as e:
        await events.aclose()
        logger.error(f"Error in stream endpoint: {e}")
        raise AppError(str(e)) from e

    if isinstance(first, ErrorEvent):
        await events.aclose()
        raise UpstreamError(first.detail)

    logger.info(f"Streaming reply for user {user.id}")
    return StreamingResponse(
        encode_stream(_prepend(first, events)),
        media_type="text/event-stream",
        headers=STREAM_HEADERS
    )

@router.get("/chat/models", response_model=ModelsResponse)
async def models_endpoint(
    user: UserIdentity = Depends(require_ai_access),
    chat_service: ChatService = Depends(get_chat_service)
):
    models = chat_service.available_models()
    return ModelsResponse(models=models, default_model=chat_service.default_model())

@router.post("/chat/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session_endpoint(
    request: SessionCreateRequest,
    user: UserIdentity = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store)
):
    return await store.create_session(user.id, request.first_message)

@router.get("/chat/sessions", response_model=List[SessionResponse])
async def list_sessions_endpoint(
    q: Optional[str] = Query(default=None, description="Filter by title"),
    user: UserIdentity = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store)
):
    return await store.list_sessions(user.id, q)

@router.get("/chat/sessions/{session_id}/messages", response_model=List[MessageResponse])
async def list_messages_endpoint(
    session_id: int,
    user: UserIdentity = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store)
):
    return await store.get_turns(session_id, user.id)

@router.post(
    "/chat/sessions/{session_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED
)
async def save_message_endpoint(
    session_id: int,
    request: MessageCreateRequest,
    user: UserIdentity = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store)
):
    return await store.save_message(
        session_id,
        user.id,
        request.role,
        request.content,
        request.navigation_links
    )

@router.patch("/chat/sessions/{session_id}", response_model=SessionResponse)
async def rename_session_endpoint(
    session_id: int,
    request: SessionRenameRequest,
    user: UserIdentity = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store)
):
    return await store.rename_session(session_id, user.id, request.title)

@router.delete("/chat/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_endpoint(
    session_id: int,
    user: UserIdentity = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store)
):
    await store.delete_session(session_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
