from fastapi import APIRouter, Depends
from subleshnn.database.supabase_client import get_supabase
from subleshnn.modules.conversations.schemas import (
    ContactRequest, ContactResponse, ConversationSummaryResponse,
    ConversationResponse, MessageCreate, MessageResponse
)
from subleshnn.modules.conversations.service import ConversationService
from subleshnn.core.dependencies import get_current_user_id, check_conversation_participant
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_service(supabase: Client = Depends(get_supabase)) -> ConversationService:
    return ConversationService(supabase)


@router.post("/contact", response_model=ContactResponse)
async def contact_owner(
    contact: ContactRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service)
):
    """Start a conversation with a listing's owner, or return the existing one"""
    return service.contact_owner(contact.listing_id, user_data["id"])


@router.get("", response_model=List[ConversationSummaryResponse])
async def list_conversations(
    user_data: Dict = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service)
):
    """Inbox of the current user"""
    return service.list_conversations(user_data["id"])


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
    supabase: Client = Depends(get_supabase)
):
    """Conversation with all its messages (participants only)"""
    conversation = check_conversation_participant(conversation_id, user_data, supabase)
    return service.get_conversation(conversation)


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: str,
    message: MessageCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
    supabase: Client = Depends(get_supabase)
):
    """Send a message in a conversation (participants only)"""
    check_conversation_participant(conversation_id, user_data, supabase)
    return service.send_message(conversation_id, user_data["id"], message.content)
