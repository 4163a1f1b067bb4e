from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from subleshnn.database.supabase_client import get_supabase
from subleshnn.modules.invitations.email_sender import (
    EmailNotConfiguredError, EmailSendError, send_invitation_email
)
from subleshnn.modules.invitations.schemas import (
    InvitationCreate, InvitationResponse, InvitationCreateResponse,
    SendInvitationRequest, SendInvitationResponse, InvitationValidationResponse
)
from subleshnn.modules.invitations.service import InvitationService
from subleshnn.core.dependencies import require_admin
from starlette.concurrency import run_in_threadpool
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/invitations", tags=["invitations"])
email_router = APIRouter(tags=["invitations"])


def get_invitation_service(supabase: Client = Depends(get_supabase)) -> InvitationService:
    return InvitationService(supabase)


@router.get("", response_model=List[InvitationResponse])
async def list_invitations(
    user_data: Dict = Depends(require_admin),
    service: InvitationService = Depends(get_invitation_service)
):
    """List all invitations, newest first (admin only)"""
    return service.list_invitations()


@router.post("", response_model=InvitationCreateResponse, status_code=201)
async def create_invitation(
    invitation: InvitationCreate,
    user_data: Dict = Depends(require_admin),
    service: InvitationService = Depends(get_invitation_service)
):
    """Invite an email address and send the invitation email (admin only)"""
    return await run_in_threadpool(service.create_invitation, invitation.email, user_data["id"])


@router.get("/validate/{invite_code}", response_model=InvitationValidationResponse)
async def validate_invitation(
    invite_code: str,
    service: InvitationService = Depends(get_invitation_service)
):
    """Check an invite code before showing the sign-up form"""
    invitation = service.get_pending_invitation(invite_code)
    if not invitation:
        return InvitationValidationResponse(valid=False)
    return InvitationValidationResponse(valid=True, email=invitation.email)


@router.delete("/{invitation_id}", status_code=204)
async def delete_invitation(
    invitation_id: str,
    user_data: Dict = Depends(require_admin),
    service: InvitationService = Depends(get_invitation_service)
):
    """Delete one invitation (admin only)"""
    service.delete_invitation(invitation_id)
    return None


@router.delete("")
async def clear_invitations(
    user_data: Dict = Depends(require_admin),
    service: InvitationService = Depends(get_invitation_service)
):
    """Delete all invitations (admin only)"""
    deleted = service.clear_invitations()
    return {"message": "All invitations have been deleted", "deleted": deleted}


@email_router.post("/send-invitation", response_model=SendInvitationResponse)
async def send_invitation(
    body: SendInvitationRequest,
    user_data: Dict = Depends(require_admin),
):
    """(Re)send an invitation email for an existing invite code (admin only)"""
    if not body.email or not body.invite_code:
        return JSONResponse(status_code=400, content={"error": "Email and invite code are required"})
    try:
        email_id = await run_in_threadpool(send_invitation_email, body.email, body.invite_code)
    except EmailNotConfiguredError as e:
        return JSONResponse(status_code=503, content={"error": str(e)})
    except EmailSendError as e:
        return JSONResponse(status_code=502, content={"error": "Failed to send email", "details": e.details})
    return SendInvitationResponse(
        success=True,
        message=f"Invitation email sent to {body.email}",
        email_id=email_id
    )
