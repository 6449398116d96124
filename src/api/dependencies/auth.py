# src/api/dependencies/auth.py
from typing import Optional
from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from src.core.models.user import UserIdentity
from src.core.services.db_service import get_db_service
from src.core.services.user_service import UserService
from src.utils.errors import FeatureDisabledError, UnauthorizedError

security = HTTPBearer(auto_error=False)

def get_user_service() -> UserService:
    return UserService(get_db_service())

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    users: UserService = Depends(get_user_service)
) -> UserIdentity:
    """Resolve the session token to a user."""
    if credentials is None:
        raise UnauthorizedError()
    user = await users.get_user_for_token(credentials.credentials)
    if user is None:
        raise UnauthorizedError()
    return user

async def require_ai_access(
    user: UserIdentity = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
) -> UserIdentity:
    """Reject users for whom the AI features are switched off."""
    if not await users.is_ai_available(user):
        raise FeatureDisabledError()
    return user
