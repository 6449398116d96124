from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional
from src.core.models.chat import NavigationLink

class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant"] = Field(..., description="Author of the turn")
    content: str = Field(..., description="Text of the turn")

class ChatStreamRequest(BaseModel):
    model: str = Field(..., min_length=1, description="Provider model identifier")
    messages: List[ChatMessageIn] = Field(..., description="Conversation so far, oldest first")
    mode: Optional[str] = Field(default="chat", description="Client surface issuing the request")

class ModelsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    models: List[str]
    default_model: Optional[str] = Field(default=None, alias="defaultModel")

class SessionCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_message: str = Field(..., min_length=1, alias="firstMessage")

class SessionRenameRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)

class SessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

class MessageCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)
    navigation_links: Optional[List[NavigationLink]] = Field(default=None, alias="navigationLinks")

class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["user", "assistant"]
    content: str
    created_at: datetime = Field(alias="createdAt")
    navigation_links: Optional[List[NavigationLink]] = Field(default=None, alias="navigationLinks")
