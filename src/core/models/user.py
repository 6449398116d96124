from typing import Optional
from pydantic import BaseModel

class UserIdentity(BaseModel):
    id: str
    role: str = "user"
    # None means the user never toggled it, which counts as enabled
    ai_enabled: Optional[bool] = None
