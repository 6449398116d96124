from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]

class NavigationLink(BaseModel):
    label: str
    url: str

class ConversationTurn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Role
    content: str
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")
    navigation_links: Optional[List[NavigationLink]] = Field(default=None, alias="navigationLinks")

class ChatSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    owner_id: str = Field(alias="ownerId")
    title: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    turns: List[ConversationTurn] = Field(default_factory=list)
