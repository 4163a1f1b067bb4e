from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime


class InvitationCreate(BaseModel):
    email: EmailStr


class InvitationResponse(BaseModel):
    id: str
    email: str
    invite_code: str
    invited_by: Optional[str] = None
    status: str = "pending"
    created_at: datetime
    used_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvitationCreateResponse(BaseModel):
    invitation: InvitationResponse
    email_sent: bool
    invite_link: str


class SendInvitationRequest(BaseModel):
    """Body of POST /send-invitation; field names match the web client"""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    invite_code: Optional[str] = Field(default=None, alias="inviteCode")


class SendInvitationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    email_id: Optional[str] = Field(default=None, alias="emailId")


class InvitationValidationResponse(BaseModel):
    valid: bool
    email: Optional[str] = None
