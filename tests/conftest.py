"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
from datetime import datetime

import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Tests never talk to a real mail server
for _name in ('EMAIL_USER', 'EMAIL_PASS', 'EMAIL_TO', 'EMAIL_HOST', 'EMAIL_PORT',
              'EMAIL_REQUIRE_CREDENTIALS'):
    os.environ.pop(_name, None)
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'INFO')

from config import Settings  # noqa: E402
from domain.models import SubmissionInput  # noqa: E402
from domain.submission_processor import SubmissionProcessor  # noqa: E402
from integrations.mail_transport import DeliveryError, MailTransport  # noqa: E402
from services import templates  # noqa: E402
from services.submission_log import SubmissionLog  # noqa: E402

FIXED_NOW = datetime(2026, 10, 19, 9, 30, 15)


class FakeTransport(MailTransport):
    """In-memory transport that records every send."""

    name = 'fake'

    def __init__(self, error=None, receipt=None, default_recipient=None):
        self.error = error
        self.receipt = receipt
        self._default_recipient = default_recipient
        self.sent = []

    @property
    def default_recipient(self):
        return self._default_recipient

    def verify(self):
        pass

    def send(self, message, sender, recipient, sender_name=None):
        self.sent.append({
            'message': message,
            'sender': sender,
            'recipient': recipient,
            'sender_name': sender_name,
        })
        if self.error is not None:
            raise self.error
        return self.receipt


@pytest.fixture(autouse=True)
def clear_template_cache():
    """Each test loads templates from disk."""
    templates.clear_cache()
    yield
    templates.clear_cache()


@pytest.fixture
def settings(tmp_path):
    """Settings with a configured destination and a temporary log file."""
    return Settings(
        email_user='owner@example.com',
        email_pass='app-password',
        email_to='inbox@example.com',
        submissions_file=str(tmp_path / 'contact_submissions.txt'),
        site_owner_name='Ada Lovelace',
        site_owner_role='Engineer',
    )


@pytest.fixture
def submission_log(settings):
    return SubmissionLog(settings.submissions_file)


@pytest.fixture
def fake_transport():
    return FakeTransport(receipt=None)


@pytest.fixture
def failing_transport():
    return FakeTransport(error=DeliveryError('SMTPAuthenticationError: 535 bad credentials'))


@pytest.fixture
def make_processor(settings, submission_log):
    """Factory for processors wired to a given transport and a fixed clock."""
    def _make(transport):
        return SubmissionProcessor(
            settings=settings,
            transport=transport,
            submission_log=submission_log,
            clock=lambda: FIXED_NOW,
        )
    return _make


@pytest.fixture
def valid_submission():
    return SubmissionInput(
        name='Al',
        email='a@b.co',
        subject='Hi!',
        message='This message is long enough to pass the check.',
    )


@pytest.fixture
def invalid_submission():
    return SubmissionInput(
        name='A',
        email='bad',
        subject='Hi!',
        message='short',
    )
