"""Celery task definitions."""

import logging
from datetime import datetime
from typing import Any, Optional

from celery import Task

from procapacity.services import email
from procapacity.services.email import EmailDeliveryError
from procapacity.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


class BaseTask(Task):
    """Base task with common error handling."""

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Handle task failure."""
        logger.error(f"Task {self.name}[{task_id}] failed for {kwargs.get('to')}: {exc}")

    def on_success(self, retval, task_id, args, kwargs):
        """Handle task success."""
        logger.info(f"Task {self.name}[{task_id}] completed successfully")


EMAIL_TASK_OPTIONS = {
    "bind": True,
    "base": BaseTask,
    "autoretry_for": (EmailDeliveryError,),
    "retry_backoff": True,
    "retry_backoff_max": 600,
    "max_retries": 3,
}


@celery_app.task(**EMAIL_TASK_OPTIONS)
def send_welcome_email(self, to: str, first_name: str) -> Optional[dict[str, Any]]:
    return email.send_welcome_email(to, first_name)


@celery_app.task(**EMAIL_TASK_OPTIONS)
def send_password_reset_email(self, to: str, reset_url: str, expires_at: str) -> Optional[dict[str, Any]]:
    """Send the reset link. ``expires_at`` is an ISO-8601 timestamp."""
    return email.send_password_reset_email(to, reset_url, datetime.fromisoformat(expires_at))


@celery_app.task(**EMAIL_TASK_OPTIONS)
def send_team_invite_email(
    self,
    to: str,
    inviter_name: str,
    workspace_name: str,
    action_url: str,
) -> Optional[dict[str, Any]]:
    return email.send_team_invite_email(to, inviter_name, workspace_name, action_url)
