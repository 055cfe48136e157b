"""
Environment configuration for the portfolio backend.

All settings are read from environment variables once and held in an
immutable Settings object that is passed to the components that need it.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_HOST = 'smtp.gmail.com'
DEFAULT_EMAIL_PORT = 587
DEFAULT_EMAIL_TIMEOUT = 10.0
DEFAULT_SENDER_ADDRESS = 'noreply@portfolio.com'

# Values shipped in the example .env file; treated as "not configured"
PLACEHOLDER_SECRETS = frozenset({
    'YOUR_APP_PASSWORD',
    'PASTE_YOUR_16_CHAR_APP_PASSWORD_HERE',
})

_TRUTHY = {'1', 'true', 'yes', 'on'}


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration.

    Attributes:
        email_host: SMTP host for the authenticated transport
        email_port: SMTP port (STARTTLS, not implicit TLS)
        email_user: SMTP username, also used as the sender address
        email_pass: SMTP password or app password
        email_to: Destination mailbox for contact notifications
        email_from_name: Display name of the sender
        email_timeout: Seconds allowed for a single send
        require_credentials: Refuse to start without real SMTP credentials
        submissions_file: Path of the append-only submissions log
        static_dir: Directory served by the development server
        port: Development server port
        site_owner_name: Name shown in the notification footer
        site_owner_role: Role shown in the notification footer
        environment: Deployment environment label
    """
    email_host: str = DEFAULT_EMAIL_HOST
    email_port: int = DEFAULT_EMAIL_PORT
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_to: Optional[str] = None
    email_from_name: str = 'Portfolio Contact'
    email_timeout: float = DEFAULT_EMAIL_TIMEOUT
    require_credentials: bool = False
    submissions_file: str = 'contact_submissions.txt'
    static_dir: str = 'public'
    port: int = 3001
    site_owner_name: str = 'Ajay Jaiswar'
    site_owner_role: str = 'QA Analyst & Frontend Developer'
    environment: str = 'dev'

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Build settings from a mapping of environment variables (defaults to os.environ)."""
        env = os.environ if env is None else env
        return cls(
            email_host=env.get('EMAIL_HOST') or DEFAULT_EMAIL_HOST,
            email_port=_read_int(env, 'EMAIL_PORT', DEFAULT_EMAIL_PORT),
            email_user=env.get('EMAIL_USER') or None,
            email_pass=env.get('EMAIL_PASS') or None,
            email_to=env.get('EMAIL_TO') or None,
            email_from_name=env.get('EMAIL_FROM_NAME') or 'Portfolio Contact',
            email_timeout=_read_float(env, 'EMAIL_TIMEOUT', DEFAULT_EMAIL_TIMEOUT),
            require_credentials=env.get('EMAIL_REQUIRE_CREDENTIALS', '').lower() in _TRUTHY,
            submissions_file=env.get('SUBMISSIONS_FILE') or 'contact_submissions.txt',
            static_dir=env.get('STATIC_DIR') or 'public',
            port=_read_int(env, 'PORT', 3001),
            site_owner_name=env.get('SITE_OWNER_NAME') or 'Ajay Jaiswar',
            site_owner_role=env.get('SITE_OWNER_ROLE') or 'QA Analyst & Frontend Developer',
            environment=env.get('ENVIRONMENT') or 'dev',
        )

    @property
    def has_credentials(self) -> bool:
        """True when both SMTP username and a real (non-placeholder) secret are set."""
        return bool(
            self.email_user
            and self.email_pass
            and self.email_pass not in PLACEHOLDER_SECRETS
        )

    @property
    def sender_address(self) -> str:
        return self.email_user or DEFAULT_SENDER_ADDRESS

    @property
    def recipient_address(self) -> Optional[str]:
        return self.email_to or self.email_user
