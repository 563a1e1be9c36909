"""Transactional email through Resend.

Senders here are synchronous and run inside Celery workers. Request
handlers never call them directly: they use ``enqueue_email`` so a mail
outage cannot fail a request.
"""

import html
import logging
from datetime import datetime
from typing import Any, Optional

import resend
from kombu.exceptions import KombuError
from resend.exceptions import ResendError

from procapacity.config import settings
from procapacity.core.dates import utcnow
from procapacity.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

BRAND_COLOR = "#10b981"

TASK_SEND_WELCOME = "procapacity.workers.tasks.send_welcome_email"
TASK_SEND_PASSWORD_RESET = "procapacity.workers.tasks.send_password_reset_email"
TASK_SEND_TEAM_INVITE = "procapacity.workers.tasks.send_team_invite_email"


class EmailDeliveryError(Exception):
    """Raised when the email provider rejects or fails a send."""


def _layout(heading: str, body: str, action_url: Optional[str] = None, action_label: str = "") -> str:
    button = ""
    fallback = ""
    if action_url:
        button = (
            f'<p style="text-align:center;margin:24px 0;">'
            f'<a href="{action_url}" style="display:inline-block;padding:14px 32px;'
            f"background-color:{BRAND_COLOR};color:#ffffff;text-decoration:none;"
            f'font-weight:600;border-radius:8px;">{action_label}</a></p>'
        )
        fallback = (
            '<p style="font-size:13px;color:#94a3b8;text-align:center;">'
            "If the button doesn't work, copy and paste this link into your browser:</p>"
            f'<p style="font-size:12px;color:{BRAND_COLOR};text-align:center;word-break:break-all;">'
            f"{action_url}</p>"
        )
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        '<body style="margin:0;padding:40px 20px;background-color:#f8fafc;'
        "font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;\">"
        '<div style="max-width:480px;margin:0 auto;background:#ffffff;border-radius:12px;padding:40px;">'
        '<h1 style="margin:0 0 24px;font-size:24px;color:#0f172a;text-align:center;">'
        f'Pro<span style="color:{BRAND_COLOR};">Capacity</span></h1>'
        f'<h2 style="margin:0 0 16px;font-size:20px;color:#0f172a;">{heading}</h2>'
        f'<div style="font-size:15px;line-height:1.6;color:#475569;">{body}</div>'
        f"{button}{fallback}</div>"
        '<p style="text-align:center;font-size:12px;color:#94a3b8;">'
        f"&copy; {utcnow().year} ProCapacity. All rights reserved.</p>"
        "</body></html>"
    )


def _send(to: str, subject: str, html_body: str) -> Optional[dict[str, Any]]:
    if not settings.RESEND_API_KEY:
        logger.warning(f"RESEND_API_KEY is not set; skipping '{subject}' email to {to}")
        return None

    resend.api_key = settings.RESEND_API_KEY
    try:
        response = resend.Emails.send(
            {
                "from": settings.EMAIL_FROM,
                "to": [to],
                "subject": subject,
                "html": html_body,
            }
        )
    except ResendError as e:
        logger.error(f"Failed to send '{subject}' email to {to}: {e}")
        raise EmailDeliveryError(str(e)) from e

    logger.info(f"Sent '{subject}' email to {to}")
    return response


def send_password_reset_email(to: str, reset_url: str, expires_at: datetime) -> Optional[dict[str, Any]]:
    body = (
        "<p>We received a request to reset your password. "
        "Click the button below to create a new password:</p>"
        f"<p>This link will expire on <strong>{expires_at:%Y-%m-%d %H:%M} UTC</strong> "
        "(1 hour from now).</p>"
        "<p>If you didn't request a password reset, you can safely ignore this email.</p>"
    )
    return _send(
        to,
        "Reset your ProCapacity password",
        _layout("Reset your password", body, reset_url, "Reset Password"),
    )


def send_welcome_email(to: str, first_name: str) -> Optional[dict[str, Any]]:
    body = (
        f"<p>Hi {html.escape(first_name)},</p>"
        "<p>Welcome to <strong>ProCapacity</strong>! Your account is ready.</p>"
        "<p>ProCapacity helps you see who's available, when, and for how much work, "
        "so you can staff projects without spreadsheets or guesswork.</p>"
    )
    return _send(
        to,
        "Welcome to ProCapacity",
        _layout("Your workspace is ready", body, settings.APP_URL, "Open ProCapacity"),
    )


def send_team_invite_email(
    to: str,
    inviter_name: str,
    workspace_name: str,
    action_url: str,
) -> Optional[dict[str, Any]]:
    body = (
        f"<p><strong>{html.escape(inviter_name)}</strong> has invited you to join "
        f"<strong>{html.escape(workspace_name)}</strong> on ProCapacity.</p>"
        "<p>Click the button below to set up your account. "
        "This link is valid for 7 days.</p>"
    )
    return _send(
        to,
        f"You've been invited to {workspace_name} on ProCapacity",
        _layout("You're invited", body, action_url, "Accept Invite"),
    )


def enqueue_email(task_name: str, **kwargs: Any) -> bool:
    """Queue an email task. Failures are logged and reported as False."""
    try:
        celery_app.send_task(task_name, kwargs=kwargs)
    except (KombuError, OSError) as e:
        logger.error(f"Failed to queue {task_name} for {kwargs.get('to')}: {e}")
        return False
    return True
