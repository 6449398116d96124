import json
from typing import Optional
from src.config.settings import settings
from src.core.models.user import UserIdentity
from src.core.services.db_service import DatabaseService
from src.utils.logging import logger

class UserService:
    """Session lookup and AI feature switch, both owned by the platform."""

    def __init__(self, db_service: DatabaseService, cfg=settings):
        self.db_service = db_service
        self._settings = cfg

    async def get_user_for_token(self, token: str) -> Optional[UserIdentity]:
        row = await self.db_service.fetch_one(
            """
            SELECT u.id, u.role, u.ai_enabled
            FROM session s
            JOIN "user" u ON u.id = s.user_id
            WHERE s.token = %s AND s.expires_at > now()
            """,
            (token,)
        )
        return UserIdentity(**row) if row else None

    async def is_globally_enabled(self) -> bool:
        row = await self.db_service.fetch_one(
            "SELECT value FROM settings WHERE key = %s",
            (self._settings.AI_GLOBAL_SETTING_KEY,)
        )
        # A missing setting means enabled
        if row is None:
            return True
        try:
            return json.loads(row["value"]) is True
        except ValueError:
            logger.warning(f"Unreadable {self._settings.AI_GLOBAL_SETTING_KEY} value: {row['value']!r}")
            return False

    async def is_ai_available(self, user: UserIdentity) -> bool:
        if not self._settings.LLM_API_KEY:
            return False
        if not await self.is_globally_enabled():
            return False
        return user.ai_enabled is not False
