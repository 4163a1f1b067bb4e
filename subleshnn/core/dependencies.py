"""
Core dependencies for route protection and ownership checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from subleshnn.config import settings
from subleshnn.database.supabase_client import get_supabase
from subleshnn.modules.auth.service import AuthService
from supabase import Client
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user_id(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info (id, email) from JWT token"""
    return auth_service.get_current_user(token)


def is_admin(user_data: dict) -> bool:
    """Admins are the users whose email is on the configured allow-list"""
    email = (user_data.get("email") or "").lower()
    return bool(email) and email in settings.get_admin_emails_list()


def require_admin(user_data: dict = Depends(get_current_user_id)) -> dict:
    if not is_admin(user_data):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user_data


def check_listing_owner(listing_id: str, user_data: dict, supabase: Client) -> Dict[str, Any]:
    """Return the listing row if the user owns it; 404 when missing, 403 otherwise"""
    result = supabase.table("listings")\
        .select("id, user_id")\
        .eq("id", listing_id)\
        .maybe_single()\
        .execute()
    if not result or not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found"
        )
    if result.data.get("user_id") != user_data["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only edit your own listings"
        )
    return result.data


def check_conversation_participant(conversation_id: str, user_data: dict, supabase: Client) -> Dict[str, Any]:
    """Return the conversation row if the user is its listing owner or inquirer"""
    result = supabase.table("conversations")\
        .select("*")\
        .eq("id", conversation_id)\
        .maybe_single()\
        .execute()
    if not result or not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found"
        )
    conversation = result.data
    if user_data["id"] not in (conversation.get("listing_owner_id"), conversation.get("inquirer_id")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not part of this conversation"
        )
    return conversation
