"""Email / SMS send-intent stubs.

Called by the job processor only after the job transaction has
committed.  A failure here is logged by the caller and never rolls back
persisted state.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

SMS_TEMPLATE = "Project Compass: {filename} is ready for review."


def notify_email(recipient: str, subject: str, body: str) -> None:
    logger.info(
        "[email-stub] Email would be sent: to=%s subject=%r body=%r",
        recipient,
        subject,
        body,
    )


def notify_sms(recipient: str, body: str) -> None:
    logger.info("[sms-stub] SMS would be sent: to=%s body=%r", recipient, body)


class LoggingNotifier:
    """Fan a completed job out to the email and SMS stubs."""

    def job_completed(self, *, recipient: str, filename: str, title: str, body: str) -> None:
        notify_email(recipient, title, body)
        notify_sms(recipient, SMS_TEMPLATE.format(filename=filename))
