"""
Contact submission pipeline - core business logic.

This module handles the end-to-end processing of a contact form submission:
1. Validate the raw fields
2. Append a log entry (best-effort)
3. Render the notification email (HTML + plain text)
4. Deliver it through the configured mail transport
5. Return a SubmissionOutcome (sent, rejected or delivery failed)

All errors are caught and returned as SubmissionOutcome values.
No exceptions propagate out of process().
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from config import Settings
from .models import NotificationMessage, SubmissionInput, SubmissionOutcome
from services import templates as template_service
from services import validation as validation_service
from services.submission_log import PersistenceError, SubmissionLog
from integrations.mail_transport import DeliveryError, MailTransport

logger = logging.getLogger(__name__)

CONFIRMATION_MESSAGE = 'Thank you for your message! I will get back to you soon.'
DELIVERY_FAILED_MESSAGE = 'Sorry, there was an error sending your message. Please try again later.'

MESSAGE_PREVIEW_LENGTH = 50


class SubmissionProcessor:
    """
    Handles the contact submission pipeline.

    Collaborators are injected: the transport may be None when no mail
    service could be configured, in which case accepted submissions are
    only logged.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[MailTransport],
        submission_log: SubmissionLog,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.settings = settings
        self.transport = transport
        self.submission_log = submission_log
        self.clock = clock

    @property
    def email_configured(self) -> bool:
        return self.transport is not None

    def process(self, submission: SubmissionInput) -> SubmissionOutcome:
        """
        Process a single contact form submission.

        Args:
            submission: Raw fields decoded from the request body

        Returns:
            SubmissionOutcome describing the terminal state
        """
        validation = validation_service.validate_submission(submission)
        if not validation.is_valid:
            logger.info(f"Submission rejected: {len(validation.errors)} validation error(s)")
            return SubmissionOutcome.rejected(validation.errors)

        received_at = self.clock()
        self._log_submission(submission, received_at)
        self._persist(submission, received_at)

        try:
            message = template_service.render_notification(
                submission,
                received_at,
                owner_name=self.settings.site_owner_name,
                owner_role=self.settings.site_owner_role,
            )
            receipt = self._deliver(message)
        except Exception as e:
            logger.error(f"Contact form delivery failed: {e}", exc_info=True)
            return SubmissionOutcome.delivery_failed(DELIVERY_FAILED_MESSAGE, str(e))

        return SubmissionOutcome.sent(CONFIRMATION_MESSAGE, receipt=receipt)

    def _persist(self, submission: SubmissionInput, received_at: datetime) -> None:
        """Append the submission to the log. Failures are logged, never raised."""
        try:
            entry = template_service.render_log_entry(submission, received_at)
            self.submission_log.append(entry)
        except (PersistenceError, ValueError) as e:
            logger.error(f"Error saving submission to file: {e}")

    def _deliver(self, message: NotificationMessage) -> Optional[str]:
        """
        Hand the rendered message to the transport.

        Returns:
            Delivery receipt (preview URL for test accounts), if any

        Raises:
            DeliveryError: If the transport fails
        """
        if self.transport is None:
            logger.warning("Email not sent (not configured). Submission logged only.")
            return None

        recipient = self.settings.recipient_address or self.transport.default_recipient
        if not recipient:
            raise DeliveryError("No recipient address configured (set EMAIL_TO)")

        receipt = self.transport.send(
            message,
            sender=self.settings.sender_address,
            recipient=recipient,
            sender_name=self.settings.email_from_name,
        )

        logger.info(f"Email sent successfully via {self.transport.name}")
        if receipt:
            logger.info(f"Preview email at: {receipt}")
        else:
            logger.info(f"Sent to: {recipient}")

        return receipt

    def _log_submission(self, submission: SubmissionInput, received_at: datetime) -> None:
        """Log accepted submission summary."""
        preview = submission.message[:MESSAGE_PREVIEW_LENGTH]
        if len(submission.message) > MESSAGE_PREVIEW_LENGTH:
            preview += '...'

        logger.info("=" * 50)
        logger.info("NEW CONTACT FORM SUBMISSION")
        logger.info(f"Time: {template_service.format_short_date(received_at)}")
        logger.info(f"Name: {submission.name}")
        logger.info(f"Email: {submission.email}")
        logger.info(f"Subject: {submission.subject}")
        logger.info(f"Message: {preview}")
        logger.info("=" * 50)
