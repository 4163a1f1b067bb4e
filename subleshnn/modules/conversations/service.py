from supabase import Client
from postgrest.exceptions import APIError
from subleshnn.modules.conversations.schemas import (
    ContactResponse, ConversationSummaryResponse, ConversationResponse, MessageResponse
)
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = "Hi! I'm interested in your listing: {title}"
UNIQUE_VIOLATION = "23505"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sort_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(messages, key=lambda m: m.get("created_at") or "")


class ConversationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_listing(self, listing_id: str) -> Dict[str, Any]:
        result = self.supabase.table("listings")\
            .select("id, user_id, title, location")\
            .eq("id", listing_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Listing not found")
        return result.data

    def find_conversation(self, listing_id: str, inquirer_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("conversations")\
            .select("id")\
            .eq("listing_id", listing_id)\
            .eq("inquirer_id", inquirer_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def contact_owner(self, listing_id: str, inquirer_id: str) -> ContactResponse:
        """
        Open (or reuse) the conversation between an inquirer and a listing owner.
        One conversation exists per (listing, inquirer); a new one starts with a
        greeting message naming the listing.
        """
        try:
            listing = self._get_listing(listing_id)
            if listing["user_id"] == inquirer_id:
                raise HTTPException(status_code=400, detail="You cannot contact yourself about your own listing")

            existing = self.find_conversation(listing_id, inquirer_id)
            if existing:
                return ContactResponse(conversation_id=existing["id"], created=False)

            try:
                result = self.supabase.table("conversations").insert({
                    "listing_id": listing_id,
                    "listing_owner_id": listing["user_id"],
                    "inquirer_id": inquirer_id,
                    "last_message_at": _utcnow_iso()
                }).execute()
            except APIError as e:
                # A concurrent contact won the unique (listing_id, inquirer_id) race
                if e.code != UNIQUE_VIOLATION:
                    raise
                existing = self.find_conversation(listing_id, inquirer_id)
                if not existing:
                    raise
                return ContactResponse(conversation_id=existing["id"], created=False)
            if not result.data:
                raise HTTPException(status_code=500, detail="Error creating conversation")
            conversation_id = result.data[0]["id"]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating conversation: {e}")
            raise HTTPException(status_code=500, detail=f"Error creating conversation: {e}")

        try:
            self.supabase.table("messages").insert({
                "conversation_id": conversation_id,
                "sender_id": inquirer_id,
                "content": INITIAL_MESSAGE.format(title=listing.get("title") or listing.get("location"))
            }).execute()
        except Exception as e:
            # The conversation is still usable without the greeting
            logger.error(f"Error sending initial message in conversation {conversation_id}: {e}")

        logger.info(f"Opened conversation {conversation_id} on listing {listing_id}")
        return ContactResponse(conversation_id=conversation_id, created=True)

    def _listings_by_id(self, listing_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not listing_ids:
            return {}
        result = self.supabase.table("listings")\
            .select("id, title, location")\
            .in_("id", listing_ids)\
            .execute()
        return {row["id"]: row for row in result.data or []}

    def list_conversations(self, user_id: str) -> List[ConversationSummaryResponse]:
        """Inbox: conversations where the user is owner or inquirer, most recent activity first"""
        try:
            result = self.supabase.table("conversations")\
                .select("*")\
                .or_(f"listing_owner_id.eq.{user_id},inquirer_id.eq.{user_id}")\
                .order("last_message_at", desc=True, nullsfirst=False)\
                .order("created_at", desc=True)\
                .execute()
            conversations = result.data or []
            if not conversations:
                return []

            conversation_ids = [c["id"] for c in conversations]
            listings = self._listings_by_id(list({c["listing_id"] for c in conversations}))
            messages_result = self.supabase.table("messages")\
                .select("*")\
                .in_("conversation_id", conversation_ids)\
                .execute()
            last_messages: Dict[str, Dict[str, Any]] = {}
            for message in _sort_messages(messages_result.data or []):
                last_messages[message["conversation_id"]] = message

            inbox = []
            for c in conversations:
                listing = listings.get(c["listing_id"], {})
                last = last_messages.get(c["id"])
                inbox.append(ConversationSummaryResponse(
                    id=c["id"],
                    listing_id=c["listing_id"],
                    listing_owner_id=c["listing_owner_id"],
                    inquirer_id=c["inquirer_id"],
                    listing_title=listing.get("title"),
                    listing_location=listing.get("location"),
                    last_message=MessageResponse(**last) if last else None,
                    last_message_at=c.get("last_message_at"),
                    created_at=c["created_at"],
                ))
            return inbox
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching conversations: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_conversation(self, conversation: Dict[str, Any]) -> ConversationResponse:
        """Full thread for an already access-checked conversation row"""
        try:
            listing = self._listings_by_id([conversation["listing_id"]]).get(conversation["listing_id"], {})
            messages_result = self.supabase.table("messages")\
                .select("*")\
                .eq("conversation_id", conversation["id"])\
                .order("created_at")\
                .execute()
            return ConversationResponse(
                id=conversation["id"],
                listing_id=conversation["listing_id"],
                listing_owner_id=conversation["listing_owner_id"],
                inquirer_id=conversation["inquirer_id"],
                listing_title=listing.get("title"),
                listing_location=listing.get("location"),
                last_message_at=conversation.get("last_message_at"),
                created_at=conversation["created_at"],
                messages=[MessageResponse(**m) for m in _sort_messages(messages_result.data or [])],
            )
        except Exception as e:
            logger.error(f"Error fetching conversation {conversation['id']}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def send_message(self, conversation_id: str, sender_id: str, content: str) -> MessageResponse:
        """Append a message and bump the conversation's last_message_at"""
        try:
            result = self.supabase.table("messages").insert({
                "conversation_id": conversation_id,
                "sender_id": sender_id,
                "content": content
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")
            message = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to send message: {e}")

        try:
            self.supabase.table("conversations")\
                .update({"last_message_at": message.get("created_at") or _utcnow_iso()})\
                .eq("id", conversation_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating last_message_at for {conversation_id}: {e}")
        return MessageResponse(**message)
