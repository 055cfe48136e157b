"""
Tests for the contact submission pipeline.
"""

import pytest
from unittest.mock import patch, MagicMock
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.models import OutcomeStatus
from domain.submission_processor import CONFIRMATION_MESSAGE, DELIVERY_FAILED_MESSAGE
from services.submission_log import PersistenceError
from services.validation import EMAIL_ERROR, MESSAGE_ERROR, NAME_ERROR


def _log_text(settings):
    if not os.path.exists(settings.submissions_file):
        return ''
    with open(settings.submissions_file, encoding='utf-8') as f:
        return f.read()


class TestAcceptedSubmission:
    """Valid submissions are logged, rendered and delivered."""

    def test_sent_outcome(self, make_processor, fake_transport, valid_submission, settings):
        processor = make_processor(fake_transport)

        outcome = processor.process(valid_submission)

        assert outcome.status is OutcomeStatus.SENT
        assert outcome.success is True
        assert outcome.message == CONFIRMATION_MESSAGE
        assert outcome.status_code == 200

    def test_transport_invoked_once_with_rendered_message(
        self, make_processor, fake_transport, valid_submission
    ):
        processor = make_processor(fake_transport)

        processor.process(valid_submission)

        assert len(fake_transport.sent) == 1
        sent = fake_transport.sent[0]
        assert sent['sender'] == 'owner@example.com'
        assert sent['recipient'] == 'inbox@example.com'
        assert sent['sender_name'] == 'Portfolio Contact'
        assert sent['message'].subject == 'Portfolio: Hi!'
        assert sent['message'].reply_to == 'a@b.co'
        assert 'This message is long enough' in sent['message'].text_body

    def test_log_entry_appended(self, make_processor, fake_transport, valid_submission, settings):
        processor = make_processor(fake_transport)

        processor.process(valid_submission)
        processor.process(valid_submission)

        content = _log_text(settings)
        assert content.count('NEW CONTACT SUBMISSION') == 2
        assert 'Date/Time: Monday, 19 October 2026 at 09:30:15 AM' in content
        assert 'This message is long enough to pass the check.' in content

    def test_receipt_is_kept_server_side(self, make_processor, valid_submission):
        from conftest import FakeTransport
        transport = FakeTransport(receipt='https://ethereal.email/message/abc')
        processor = make_processor(transport)

        outcome = processor.process(valid_submission)

        assert outcome.receipt == 'https://ethereal.email/message/abc'
        assert 'receipt' not in outcome.to_response_body()

    def test_recipient_falls_back_to_transport_default(
        self, settings, submission_log, valid_submission
    ):
        from dataclasses import replace
        from conftest import FakeTransport, FIXED_NOW
        from domain.submission_processor import SubmissionProcessor

        transport = FakeTransport(default_recipient='box@ethereal.email')
        processor = SubmissionProcessor(
            settings=replace(settings, email_user=None, email_to=None),
            transport=transport,
            submission_log=submission_log,
            clock=lambda: FIXED_NOW,
        )

        processor.process(valid_submission)

        assert transport.sent[0]['recipient'] == 'box@ethereal.email'
        assert transport.sent[0]['sender'] == 'noreply@portfolio.com'

    @patch('integrations.mail_transport.smtplib.SMTP')
    def test_multiline_subject_is_delivered(self, mock_smtp_class, make_processor):
        from domain.models import SubmissionInput
        from integrations.mail_transport import SmtpTransport

        connection = MagicMock()
        connection.mail.return_value = (250, b'OK')
        connection.rcpt.return_value = (250, b'OK')
        connection.data.return_value = (250, b'Accepted')
        mock_smtp_class.return_value = connection
        processor = make_processor(SmtpTransport('smtp.example.com', 587, 'user', 'secret'))
        submission = SubmissionInput(
            name='Al',
            email='a@b.co',
            subject='Hello\nthere',
            message='This message is long enough to pass the check.',
        )

        outcome = processor.process(submission)

        assert outcome.status is OutcomeStatus.SENT
        raw = connection.data.call_args[0][0]
        assert b'Subject: Portfolio: Hello there\r\n' in raw

    def test_no_transport_still_succeeds(self, make_processor, valid_submission, settings):
        processor = make_processor(None)

        outcome = processor.process(valid_submission)

        assert processor.email_configured is False
        assert outcome.status is OutcomeStatus.SENT
        assert 'NEW CONTACT SUBMISSION' in _log_text(settings)


class TestRejectedSubmission:
    """Invalid submissions have no side effects."""

    def test_rejected_outcome(self, make_processor, fake_transport, invalid_submission, settings):
        processor = make_processor(fake_transport)

        outcome = processor.process(invalid_submission)

        assert outcome.status is OutcomeStatus.REJECTED
        assert outcome.errors == [NAME_ERROR, EMAIL_ERROR, MESSAGE_ERROR]
        assert outcome.status_code == 400
        assert outcome.to_response_body() == {
            'success': False,
            'errors': [NAME_ERROR, EMAIL_ERROR, MESSAGE_ERROR],
        }

    def test_no_log_and_no_send(self, make_processor, fake_transport, invalid_submission, settings):
        processor = make_processor(fake_transport)

        processor.process(invalid_submission)

        assert fake_transport.sent == []
        assert not os.path.exists(settings.submissions_file)


class TestDeliveryFailure:
    """Transport failures become a generic DELIVERY_FAILED outcome."""

    def test_delivery_failed_outcome(self, make_processor, failing_transport, valid_submission):
        processor = make_processor(failing_transport)

        outcome = processor.process(valid_submission)

        assert outcome.status is OutcomeStatus.DELIVERY_FAILED
        assert outcome.status_code == 500
        assert outcome.message == DELIVERY_FAILED_MESSAGE
        assert '535' in outcome.error_detail

    def test_error_detail_not_in_response_body(self, make_processor, failing_transport, valid_submission):
        processor = make_processor(failing_transport)

        body = processor.process(valid_submission).to_response_body()

        assert body == {'success': False, 'message': DELIVERY_FAILED_MESSAGE}
        assert '535' not in str(body)

    def test_log_written_before_delivery_failure(
        self, make_processor, failing_transport, valid_submission, settings
    ):
        processor = make_processor(failing_transport)

        processor.process(valid_submission)

        assert 'NEW CONTACT SUBMISSION' in _log_text(settings)
        assert len(failing_transport.sent) == 1

    def test_missing_recipient_is_delivery_failure(self, settings, submission_log, valid_submission):
        from dataclasses import replace
        from conftest import FakeTransport
        from domain.submission_processor import SubmissionProcessor

        transport = FakeTransport()
        processor = SubmissionProcessor(
            settings=replace(settings, email_user=None, email_to=None),
            transport=transport,
            submission_log=submission_log,
        )

        outcome = processor.process(valid_submission)

        assert outcome.status is OutcomeStatus.DELIVERY_FAILED
        assert transport.sent == []

    @patch('domain.submission_processor.template_service.render_notification')
    def test_render_error_is_delivery_failure(
        self, mock_render, make_processor, fake_transport, valid_submission
    ):
        mock_render.side_effect = ValueError("Template 'notification.html' not found")
        processor = make_processor(fake_transport)

        outcome = processor.process(valid_submission)

        assert outcome.status is OutcomeStatus.DELIVERY_FAILED
        assert fake_transport.sent == []


class TestPersistenceFailure:
    """Log failures are swallowed; delivery still proceeds."""

    def test_log_failure_does_not_abort(self, settings, fake_transport, valid_submission):
        from conftest import FIXED_NOW
        from domain.submission_processor import SubmissionProcessor

        broken_log = MagicMock()
        broken_log.append.side_effect = PersistenceError('disk full')
        processor = SubmissionProcessor(
            settings=settings,
            transport=fake_transport,
            submission_log=broken_log,
            clock=lambda: FIXED_NOW,
        )

        outcome = processor.process(valid_submission)

        assert outcome.status is OutcomeStatus.SENT
        broken_log.append.assert_called_once()
        assert len(fake_transport.sent) == 1
