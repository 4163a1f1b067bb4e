import secrets
from supabase import Client
from subleshnn.modules.invitations.email_sender import (
    EmailNotConfiguredError, EmailSendError, build_invite_link, send_invitation_email
)
from subleshnn.modules.invitations.schemas import InvitationResponse, InvitationCreateResponse
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

# PostgREST refuses an unfiltered delete; every real id differs from this
NIL_UUID = "00000000-0000-0000-0000-000000000000"


def generate_invite_code() -> str:
    return secrets.token_urlsafe(9)


class InvitationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_invitations(self) -> List[InvitationResponse]:
        try:
            result = self.supabase.table("invitations")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
            return [InvitationResponse(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Error fetching invitations: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def create_invitation(self, email: str, invited_by: str) -> InvitationCreateResponse:
        """Add an email to the allow-list and try to send the invite. A failed email does not undo the invitation."""
        email = email.strip().lower()
        try:
            existing = self.supabase.table("invitations")\
                .select("id")\
                .eq("email", email)\
                .eq("status", "pending")\
                .execute()
            if existing.data:
                raise HTTPException(status_code=400, detail=f"{email} already has a pending invitation")

            result = self.supabase.table("invitations").insert({
                "email": email,
                "invite_code": generate_invite_code(),
                "invited_by": invited_by,
                "status": "pending"
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Error creating invitation")
            invitation = InvitationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating invitation: {e}")
            raise HTTPException(status_code=500, detail=f"Error creating invitation: {e}")

        email_sent = True
        try:
            send_invitation_email(invitation.email, invitation.invite_code)
        except (EmailNotConfiguredError, EmailSendError) as e:
            logger.warning(f"Invitation {invitation.id} created but email failed: {e}")
            email_sent = False

        return InvitationCreateResponse(
            invitation=invitation,
            email_sent=email_sent,
            invite_link=build_invite_link(invitation.invite_code)
        )

    def get_pending_invitation(self, invite_code: str) -> Optional[InvitationResponse]:
        try:
            result = self.supabase.table("invitations")\
                .select("*")\
                .eq("invite_code", invite_code)\
                .eq("status", "pending")\
                .limit(1)\
                .execute()
            return InvitationResponse(**result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"Error looking up invitation: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def mark_used(self, invitation_id: str) -> None:
        try:
            self.supabase.table("invitations")\
                .update({"status": "used", "used_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", invitation_id)\
                .execute()
        except Exception as e:
            # The account exists already; a stale pending row is only cosmetic
            logger.error(f"Error marking invitation {invitation_id} as used: {e}")

    def delete_invitation(self, invitation_id: str) -> bool:
        try:
            result = self.supabase.table("invitations")\
                .delete()\
                .eq("id", invitation_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Invitation not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting invitation: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def clear_invitations(self) -> int:
        """Delete every invitation; returns how many were removed"""
        try:
            result = self.supabase.table("invitations")\
                .delete()\
                .neq("id", NIL_UUID)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Error clearing invitations: {e}")
            raise HTTPException(status_code=500, detail=str(e))
