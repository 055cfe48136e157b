"""
Mail Transport Module

This module delivers rendered notification emails. Two interchangeable
transports exist:

- SmtpTransport: authenticated SMTP (STARTTLS) using configured credentials
- EtherealTransport: a disposable Ethereal account provisioned on the fly,
  whose messages are inspectable through a preview link instead of being
  delivered to a real mailbox

The transport is chosen once by configure_transport() at startup and then
shared by every request. Each send opens its own SMTP connection, so one
transport instance is safe for concurrent sends.

Usage:
    from integrations import mail_transport

    transport = mail_transport.configure_transport(settings)
    receipt = transport.send(message, sender=..., recipient=...)
"""

import logging
import re
import smtplib
import ssl
import time
from email import policy
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import httpx

from config import Settings
from domain.models import NotificationMessage

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class TransportConfigurationError(Exception):
    """Raised when the transport configuration is missing or rejected by the server."""
    pass


class TransportProvisioningError(Exception):
    """Raised when a disposable test account cannot be created."""
    pass


class DeliveryError(Exception):
    """Raised when a message cannot be handed to the mail server."""
    pass


# ============================================================================
# Constants
# ============================================================================

ETHEREAL_API_URL = 'https://api.nodemailer.com/user'
ETHEREAL_WEB_URL = 'https://ethereal.email'
ETHEREAL_SMTP_HOST = 'smtp.ethereal.email'
ETHEREAL_SMTP_PORT = 587
ETHEREAL_REQUESTOR = 'portfolio-backend'
ETHEREAL_REQUESTOR_VERSION = '1.0.0'

# Ethereal replies to DATA with "Accepted [STATUS=new MSGID=...]"
_MSGID_PATTERN = re.compile(r'\[STATUS=new MSGID=([^\]\s]+)\]')


def build_mime_message(
    message: NotificationMessage,
    sender: str,
    recipient: str,
    sender_name: Optional[str] = None
) -> EmailMessage:
    """
    Build a multipart/alternative email with a plain-text and an HTML part.

    Args:
        message: Rendered notification
        sender: Envelope/header sender address
        recipient: Destination address
        sender_name: Optional display name for the From header

    Returns:
        EmailMessage ready for SMTP transmission
    """
    mime = EmailMessage()
    mime['From'] = formataddr((sender_name, sender)) if sender_name else sender
    mime['To'] = recipient
    mime['Reply-To'] = message.reply_to
    mime['Subject'] = message.subject
    mime.set_content(message.text_body)
    mime.add_alternative(message.html_body, subtype='html')
    return mime


# ============================================================================
# Transports
# ============================================================================

class MailTransport:
    """Interface for delivering a rendered notification."""

    name = 'base'

    @property
    def default_recipient(self) -> Optional[str]:
        """Recipient used when no destination address is configured."""
        return None

    def verify(self) -> None:
        """Check connectivity and credentials. Raises TransportConfigurationError."""
        raise NotImplementedError

    def send(
        self,
        message: NotificationMessage,
        sender: str,
        recipient: str,
        sender_name: Optional[str] = None
    ) -> Optional[str]:
        """
        Deliver one message.

        Returns:
            Optional delivery receipt (e.g. a preview URL)

        Raises:
            DeliveryError: If the message could not be delivered
        """
        raise NotImplementedError


class _Deadline:
    """Time budget shared by every step of one SMTP session."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        remaining = self.expires_at - time.monotonic()
        if remaining <= 0:
            raise TimeoutError(f"SMTP session exceeded {self.seconds}s timeout")
        return remaining

    def arm(self, smtp: smtplib.SMTP) -> None:
        """Limit the next socket operation to the time left."""
        if smtp.sock is not None:
            smtp.sock.settimeout(self.remaining())


class SmtpTransport(MailTransport):
    """
    Authenticated SMTP transport using STARTTLS on a plain port.

    The timeout bounds a whole session (connect through QUIT), not each
    socket operation.
    """

    name = 'smtp'

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        timeout: float = 10.0
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    def _connect(self, deadline: _Deadline) -> smtplib.SMTP:
        """Open, secure and authenticate a new SMTP connection."""
        smtp = smtplib.SMTP(self.host, self.port, timeout=deadline.remaining())
        try:
            deadline.arm(smtp)
            smtp.ehlo()
            deadline.arm(smtp)
            smtp.starttls(context=ssl.create_default_context())
            deadline.arm(smtp)
            smtp.ehlo()
            deadline.arm(smtp)
            smtp.login(self.username, self.password)
        except BaseException:
            smtp.close()
            raise
        return smtp

    def _quit(self, smtp: smtplib.SMTP, deadline: _Deadline) -> None:
        """End the session. The transaction outcome is already decided here."""
        try:
            deadline.arm(smtp)
            smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.info(f"SMTP QUIT to {self.host} failed: {e}")
            smtp.close()

    def verify(self) -> None:
        logger.info(f"Verifying SMTP connection: host={self.host}, port={self.port}")
        deadline = _Deadline(self.timeout)
        try:
            smtp = self._connect(deadline)
            try:
                deadline.arm(smtp)
                smtp.noop()
            finally:
                self._quit(smtp, deadline)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportConfigurationError(
                f"SMTP verification failed for {self.host}:{self.port}: {e}"
            ) from e

    def send(
        self,
        message: NotificationMessage,
        sender: str,
        recipient: str,
        sender_name: Optional[str] = None
    ) -> Optional[str]:
        mime = build_mime_message(message, sender, recipient, sender_name)
        deadline = _Deadline(self.timeout)

        try:
            smtp = self._connect(deadline)
            try:
                response = self._transmit(smtp, sender, recipient, mime, deadline)
            finally:
                self._quit(smtp, deadline)
        except (smtplib.SMTPException, OSError) as e:
            # OSError covers refused connections and socket or session timeouts
            raise DeliveryError(f"{e.__class__.__name__}: {e}") from e

        logger.info(f"Message accepted by {self.host}: {response}")
        return self._receipt(response)

    @staticmethod
    def _transmit(
        smtp: smtplib.SMTP,
        sender: str,
        recipient: str,
        mime: EmailMessage,
        deadline: _Deadline
    ) -> str:
        """Run MAIL/RCPT/DATA and return the server's final reply text."""
        deadline.arm(smtp)
        code, reply = smtp.mail(sender)
        if code != 250:
            raise smtplib.SMTPSenderRefused(code, reply, sender)

        deadline.arm(smtp)
        code, reply = smtp.rcpt(recipient)
        if code not in (250, 251):
            raise smtplib.SMTPRecipientsRefused({recipient: (code, reply)})

        # data() raises SMTPDataError on anything but 250
        deadline.arm(smtp)
        _, reply = smtp.data(mime.as_bytes(policy=policy.SMTP))
        return reply.decode('utf-8', errors='replace')

    def _receipt(self, response: str) -> Optional[str]:
        return None


class EtherealTransport(SmtpTransport):
    """
    Disposable test transport backed by an Ethereal account.

    Messages are captured by Ethereal and can be viewed at the preview URL
    returned by send().
    """

    name = 'ethereal'

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        timeout: float = 10.0,
        web_url: str = ETHEREAL_WEB_URL
    ):
        super().__init__(host, port, username, password, timeout)
        self.web_url = web_url.rstrip('/')

    @property
    def default_recipient(self) -> Optional[str]:
        return self.username

    @classmethod
    def provision(cls, timeout: float = 10.0) -> 'EtherealTransport':
        """
        Create a new Ethereal account and return a transport for it.

        Raises:
            TransportProvisioningError: If the account API fails or returns an unexpected body
        """
        logger.info(f"Provisioning disposable test account: {ETHEREAL_API_URL}")

        try:
            response = httpx.post(
                ETHEREAL_API_URL,
                json={
                    'requestor': ETHEREAL_REQUESTOR,
                    'version': ETHEREAL_REQUESTOR_VERSION,
                },
                timeout=timeout,
            )
            response.raise_for_status()
            account = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportProvisioningError(f"Ethereal account request failed: {e}") from e

        if not isinstance(account, dict) or account.get('status') != 'success':
            raise TransportProvisioningError(f"Ethereal account request rejected: {account!r}")

        try:
            user = account['user']
            password = account['pass']
            smtp_info = account.get('smtp') or {}
            host = smtp_info.get('host', ETHEREAL_SMTP_HOST)
            port = int(smtp_info.get('port', ETHEREAL_SMTP_PORT))
            web_url = account.get('web', ETHEREAL_WEB_URL).rstrip('/')
        except KeyError as e:
            raise TransportProvisioningError(f"Ethereal account response missing {e}") from e
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportProvisioningError(f"Ethereal account response malformed: {e}") from e

        return cls(
            host=host,
            port=port,
            username=user,
            password=password,
            timeout=timeout,
            web_url=web_url,
        )

    def _receipt(self, response: str) -> Optional[str]:
        match = _MSGID_PATTERN.search(response)
        if not match:
            return None
        return f"{self.web_url}/message/{match.group(1)}"


# ============================================================================
# Configuration-time selection
# ============================================================================

def _setup_test_transport(settings: Settings) -> Optional[MailTransport]:
    try:
        transport = EtherealTransport.provision(timeout=settings.email_timeout)
    except TransportProvisioningError as e:
        logger.warning(f"Could not set up test email: {e}")
        return None

    logger.info("Using Ethereal test email service")
    logger.info(f"View test emails at: {transport.web_url}")
    logger.info(f"   Login: {transport.username}")
    logger.info(f"   Pass:  {transport.password}")
    return transport


def configure_transport(settings: Settings) -> Optional[MailTransport]:
    """
    Choose the process-wide mail transport.

    - Real credentials configured: authenticated SMTP, verified once. If the
      check fails, fall back to a disposable test account (logged as a warning).
    - No credentials: disposable test account, unless require_credentials is
      set, in which case startup fails.

    Args:
        settings: Process settings

    Returns:
        The active transport, or None if even the test account could not be created

    Raises:
        TransportConfigurationError: When require_credentials is set and no working
            authenticated transport is available
    """
    if settings.has_credentials:
        transport = SmtpTransport(
            host=settings.email_host,
            port=settings.email_port,
            username=settings.email_user,
            password=settings.email_pass,
            timeout=settings.email_timeout,
        )
        try:
            transport.verify()
        except TransportConfigurationError as e:
            if settings.require_credentials:
                raise
            logger.warning(f"Email configuration error: {e}")
            logger.warning("Falling back to test email service...")
            return _setup_test_transport(settings)

        logger.info("Email server is ready to send messages")
        logger.info(f"Emails will be sent to: {settings.recipient_address}")
        return transport

    if settings.require_credentials:
        raise TransportConfigurationError(
            "EMAIL_USER and EMAIL_PASS must be set when EMAIL_REQUIRE_CREDENTIALS is enabled"
        )

    logger.warning("Email credentials not configured, using a disposable test account")
    return _setup_test_transport(settings)
