"""
Invitation emails through the Resend HTTP API.
"""

import html
import logging
from typing import Optional

import requests

from subleshnn.config import settings

logger = logging.getLogger(__name__)

INVITE_SUBJECT = "You're invited to Subleshnn 🎨"


class EmailNotConfiguredError(RuntimeError):
    pass


class EmailSendError(RuntimeError):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


def build_invite_link(invite_code: str) -> str:
    return f"{settings.base_url.rstrip('/')}/sign-up?invite={invite_code}"


def render_invitation_email(email: str, invite_link: str) -> str:
    email = html.escape(email)
    invite_link = html.escape(invite_link, quote=True)
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <style>
      body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
      .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
      .header {{ background: #f8f9fa; padding: 30px 20px; text-align: center; border-radius: 8px; }}
      .content {{ padding: 30px 20px; }}
      .button {{ display: inline-block; background: #007bff; color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; margin: 20px 0; }}
      .footer {{ text-align: center; padding: 20px; color: #666; font-size: 14px; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="header">
        <h1>You're Invited to Subleshnn!</h1>
      </div>
      <div class="content">
        <p>Hello!</p>
        <p>You've been invited to join <strong>Subleshnn</strong>, where artists share and find short-term sublets: rooms, studios and apartments.</p>
        <p>The community is invite-only, bringing together artists who need space and those who have space to share.</p>
        <p style="text-align: center;">
          <a href="{invite_link}" class="button">Join Subleshnn</a>
        </p>
        <p><small>This invitation is specifically for: <strong>{email}</strong></small></p>
        <p>Welcome to the community!</p>
      </div>
      <div class="footer">
        <p>Subleshnn - Sublets for artists</p>
        <p><small>If you didn't expect this invitation, you can safely ignore this email.</small></p>
      </div>
    </div>
  </body>
</html>
"""


def send_invitation_email(email: str, invite_code: str) -> Optional[str]:
    """Send the invite; returns the provider's email id"""
    if not settings.email_configured:
        logger.warning("RESEND_API_KEY not set - email sending disabled")
        raise EmailNotConfiguredError("Email service not configured")

    payload = {
        "from": settings.from_email,
        "to": [email],
        "subject": INVITE_SUBJECT,
        "html": render_invitation_email(email, build_invite_link(invite_code)),
    }
    headers = {
        "Authorization": f"Bearer {settings.resend_api_key}",
        "Content-Type": "application/json",
    }
    try:
        response = requests.post(
            settings.resend_api_url,
            json=payload,
            headers=headers,
            timeout=settings.http_timeout_sec,
        )
    except requests.RequestException as e:
        logger.error("Email sending error: %s", e)
        raise EmailSendError(str(e))

    if response.status_code >= 400:
        try:
            details = response.json()
        except ValueError:
            details = {"message": response.text}
        logger.error("Email sending error (%s): %s", response.status_code, details)
        raise EmailSendError(details.get("message") or "Failed to send email", details)

    email_id = response.json().get("id")
    logger.info("Invitation email sent to %s (id=%s)", email, email_id)
    return email_id
