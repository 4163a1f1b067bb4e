from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


class ContactRequest(BaseModel):
    listing_id: str


class ContactResponse(BaseModel):
    conversation_id: str
    created: bool


class MessageCreate(BaseModel):
    content: str = Field(max_length=5000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be empty")
        return value


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationSummaryResponse(BaseModel):
    """Inbox row"""
    id: str
    listing_id: str
    listing_owner_id: str
    inquirer_id: str
    listing_title: Optional[str] = None
    listing_location: Optional[str] = None
    last_message: Optional[MessageResponse] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime


class ConversationResponse(BaseModel):
    id: str
    listing_id: str
    listing_owner_id: str
    inquirer_id: str
    listing_title: Optional[str] = None
    listing_location: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime
    messages: List[MessageResponse] = []
