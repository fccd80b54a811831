# Overview: Transactional email over an HTTP API (Postmark-compatible payload).

"""
Email delivery for invitations.

When EMAIL_API_TOKEN is not configured the message is logged instead of
sent, so invitations still work in development: the accept link shows up
in the application log.
"""

from __future__ import annotations

import logging
from html import escape

import httpx
from flask import current_app

logger = logging.getLogger(__name__)

EMAIL_TIMEOUT_SECONDS = 30.0


def invitation_link(token: str) -> str:
    base = current_app.config.get("APP_URL", "").rstrip("/")
    return f"{base}/accept-invitation?token={token}"


def invitation_bodies(*, link: str, role: str, invited_by: str | None) -> tuple[str, str]:
    inviter = invited_by or "An administrator"
    plain = (
        f"{inviter} has invited you to join Komersh as {role}.\n\n"
        f"Accept the invitation: {link}\n\n"
        "This link expires in 7 days."
    )
    html = (
        f"<p><strong>{escape(inviter)}</strong> has invited you to join Komersh as "
        f"<strong>{escape(role)}</strong>.</p>"
        f'<p><a href="{escape(link)}">Accept the invitation</a></p>'
        "<p>This link expires in 7 days.</p>"
    )
    return html, plain


def send_email(to_email: str, subject: str, html_content: str, plain_content: str) -> bool:
    """
    Send one message. Returns True when the API accepted it (or when running
    without a token, in which case the message is only logged).
    """
    config = current_app.config
    token = config.get("EMAIL_API_TOKEN")

    if not token:
        logger.info("Email not sent (no EMAIL_API_TOKEN) to=%s subject=%r\n%s", to_email, subject, plain_content)
        return True

    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-Postmark-Server-Token": token,
    }
    payload = {
        "From": config.get("MAIL_FROM"),
        "To": to_email,
        "Subject": subject,
        "HtmlBody": html_content,
        "TextBody": plain_content,
        "MessageStream": "outbound",
    }

    try:
        response = httpx.post(
            config["EMAIL_API_URL"],
            headers=headers,
            json=payload,
            timeout=EMAIL_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as exc:
        logger.error("Failed to send email to %s: %s", to_email, exc)
        return False

    if response.status_code == 200:
        logger.info("Email sent to %s", to_email)
        return True

    logger.error("Email API error for %s: %s - %s", to_email, response.status_code, response.text)
    return False


def send_invitation_email(to_email: str, token: str, role: str, invited_by: str | None = None) -> bool:
    link = invitation_link(token)
    html, plain = invitation_bodies(link=link, role=role, invited_by=invited_by)
    return send_email(to_email, "You're invited to Komersh", html, plain)
