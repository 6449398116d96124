import json
from typing import Any, Dict, List, Optional
from src.core.models.chat import ChatSession, ConversationTurn, NavigationLink
from src.core.services.db_service import DatabaseService
from src.utils.errors import NotFoundError
from src.utils.logging import logger

TITLE_MAX_LENGTH = 50

def derive_title(first_message: str) -> str:
    """Session title from the first user turn."""
    title = " ".join(first_message.split())
    if len(title) > TITLE_MAX_LENGTH:
        title = title[:TITLE_MAX_LENGTH].rstrip() + "..."
    return title or "New chat"

def _session_from_row(row: Dict[str, Any]) -> ChatSession:
    return ChatSession(
        id=row["id"],
        owner_id=row["user_id"],
        title=row["title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )

def _turn_from_row(row: Dict[str, Any]) -> ConversationTurn:
    links = row.get("navigation_links")
    if isinstance(links, str):
        links = json.loads(links)
    return ConversationTurn(
        role=row["role"],
        content=row["content"],
        created_at=row["created_at"],
        navigation_links=[NavigationLink(**link) for link in links] if links else None,
    )

class ChatStore:
    """Owner-scoped persistence for chat sessions and their turns."""

    def __init__(self, db_service: DatabaseService):
        self.db_service = db_service

    async def create_session(self, owner_id: str, first_message: str) -> ChatSession:
        row = await self.db_service.execute(
            """
            INSERT INTO chat_sessions (user_id, title)
            VALUES (%s, %s)
            RETURNING id, user_id, title, created_at, updated_at
            """,
            (owner_id, derive_title(first_message))
        )
        logger.info(f"Created chat session {row['id']} for user {owner_id}")
        return _session_from_row(row)

    async def get_session(self, session_id: int, owner_id: str) -> ChatSession:
        row = await self.db_service.fetch_one(
            """
            SELECT id, user_id, title, created_at, updated_at
            FROM chat_sessions
            WHERE id = %s AND user_id = %s
            """,
            (session_id, owner_id)
        )
        if row is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return _session_from_row(row)

    async def list_sessions(self, owner_id: str, query: Optional[str] = None) -> List[ChatSession]:
        if query:
            rows = await self.db_service.fetch_all(
                """
                SELECT id, user_id, title, created_at, updated_at
                FROM chat_sessions
                WHERE user_id = %s AND title ILIKE %s
                ORDER BY updated_at DESC
                """,
                (owner_id, f"%{query}%")
            )
        else:
            rows = await self.db_service.fetch_all(
                """
                SELECT id, user_id, title, created_at, updated_at
                FROM chat_sessions
                WHERE user_id = %s
                ORDER BY updated_at DESC
                """,
                (owner_id,)
            )
        return [_session_from_row(row) for row in rows]

    async def get_turns(self, session_id: int, owner_id: str) -> List[ConversationTurn]:
        await self.get_session(session_id, owner_id)
        rows = await self.db_service.fetch_all(
            """
            SELECT role, content, navigation_links, created_at
            FROM chat_messages
            WHERE session_id = %s
            ORDER BY id
            """,
            (session_id,)
        )
        return [_turn_from_row(row) for row in rows]

    async def save_message(
        self,
        session_id: int,
        owner_id: str,
        role: str,
        content: str,
        links: Optional[List[NavigationLink]] = None
    ) -> ConversationTurn:
        await self.get_session(session_id, owner_id)
        links_json = json.dumps([link.model_dump() for link in links]) if links else None
        # The message insert and the session bump commit together
        row = await self.db_service.execute(
            """
            WITH inserted AS (
                INSERT INTO chat_messages (session_id, role, content, navigation_links)
                VALUES (%s, %s, %s, %s::jsonb)
                RETURNING role, content, navigation_links, created_at
            ), touched AS (
                UPDATE chat_sessions SET updated_at = now() WHERE id = %s
            )
            SELECT role, content, navigation_links, created_at FROM inserted
            """,
            (session_id, role, content, links_json, session_id)
        )
        return _turn_from_row(row)

    async def rename_session(self, session_id: int, owner_id: str, title: str) -> ChatSession:
        row = await self.db_service.execute(
            """
            UPDATE chat_sessions SET title = %s, updated_at = now()
            WHERE id = %s AND user_id = %s
            RETURNING id, user_id, title, created_at, updated_at
            """,
            (title.strip(), session_id, owner_id)
        )
        if row is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return _session_from_row(row)

    async def delete_session(self, session_id: int, owner_id: str):
        row = await self.db_service.execute(
            "DELETE FROM chat_sessions WHERE id = %s AND user_id = %s RETURNING id",
            (session_id, owner_id)
        )
        if row is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        logger.info(f"Deleted chat session {session_id}")
