"""
Message template utilities.

Templates live in the templates/ directory next to the source packages and
are plain str.format() documents. They are read once and cached in memory
for the lifetime of the process.

Rendering is a pure function of its inputs: the timestamp is passed in by
the caller so that identical inputs always render identical bodies.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict

from domain.models import NotificationMessage, SubmissionInput

logger = logging.getLogger(__name__)

# src/services/templates.py -> src/templates/
TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

HTML_TEMPLATE = 'notification.html'
TEXT_TEMPLATE = 'notification.txt'
LOG_ENTRY_TEMPLATE = 'log_entry.txt'

SUBJECT_PREFIX = 'Portfolio: '

# Only these five characters are escaped; other markup passes through as text
_HTML_ESCAPES = {
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&#039;',
}

# Module-level cache: {template_name: content}
_template_cache: Dict[str, str] = {}


def escape_html(text: str) -> str:
    """
    Escape the five HTML-significant characters.

    Example:
        >>> escape_html('<b>"Tom" & Jerry</b>')
        '&lt;b&gt;&quot;Tom&quot; &amp; Jerry&lt;/b&gt;'
    """
    return ''.join(_HTML_ESCAPES.get(char, char) for char in text)


def _load_from_filesystem(template_name: str) -> str:
    """
    Load a template from the templates directory.

    Raises:
        FileNotFoundError: If the template file doesn't exist
    """
    template_path = TEMPLATES_DIR / template_name
    logger.debug(f"Loading template from filesystem: {template_path}")

    with open(template_path, 'r', encoding='utf-8') as f:
        return f.read()


def load_template(template_name: str, use_cache: bool = True) -> str:
    """
    Load a template, using the in-memory cache when possible.

    Args:
        template_name: File name inside TEMPLATES_DIR (e.g. "notification.html")
        use_cache: Use cached version if available (default: True)

    Returns:
        str: Template content

    Raises:
        ValueError: If the template is not found
    """
    if use_cache and template_name in _template_cache:
        return _template_cache[template_name]

    try:
        content = _load_from_filesystem(template_name)
    except FileNotFoundError:
        logger.error(
            f"Template not found: {template_name}. "
            f"Expected location: {TEMPLATES_DIR / template_name}"
        )
        raise ValueError(f"Template '{template_name}' not found")

    _template_cache[template_name] = content
    return content


def format_template(template: str, **variables) -> str:
    """
    Substitute variables into a template.

    Raises:
        ValueError: If the template references a variable that was not supplied
    """
    try:
        return template.format(**variables)
    except KeyError as e:
        missing_var = str(e).strip("'")
        logger.error(f"Missing variable in template: {missing_var}")
        raise ValueError(f"Missing required variable in template: {missing_var}")


def clear_cache() -> None:
    """Clear the template cache."""
    _template_cache.clear()
    logger.debug("Template cache cleared")


def format_display_date(moment: datetime) -> str:
    """Long date shown in the HTML banner, e.g. 'Monday, 19 October 2026, 09:30 AM'."""
    return moment.strftime('%A, %d %B %Y, %I:%M %p')


def format_short_date(moment: datetime) -> str:
    """Compact date used in the plain-text body, e.g. '19/10/2026, 09:30:15 AM'."""
    return moment.strftime('%d/%m/%Y, %I:%M:%S %p')


def format_log_timestamp(moment: datetime) -> str:
    """Timestamp written to the submissions log, e.g. 'Monday, 19 October 2026 at 09:30:15 AM'."""
    return moment.strftime('%A, %d %B %Y at %I:%M:%S %p')


def _first_name(name: str) -> str:
    parts = name.split()
    return parts[0] if parts else name


def render_html_body(
    submission: SubmissionInput,
    received_at: datetime,
    owner_name: str,
    owner_role: str
) -> str:
    """Render the HTML notification body with every user field escaped."""
    return format_template(
        load_template(HTML_TEMPLATE),
        received_at=format_display_date(received_at),
        name=escape_html(submission.name),
        email=escape_html(submission.email),
        subject=escape_html(submission.subject),
        message=escape_html(submission.message),
        first_name=escape_html(_first_name(submission.name)),
        owner_name=escape_html(owner_name),
        owner_role=escape_html(owner_role),
    )


def render_text_body(submission: SubmissionInput, received_at: datetime, owner_name: str) -> str:
    """Render the plain-text fallback body; fields are inserted verbatim."""
    return format_template(
        load_template(TEXT_TEMPLATE),
        received_at=format_short_date(received_at),
        name=submission.name,
        email=submission.email,
        subject=submission.subject,
        message=submission.message,
        owner_name=owner_name,
    )


def subject_line(subject: str) -> str:
    """Prefix the subject and collapse whitespace runs (line breaks included) to single spaces."""
    return SUBJECT_PREFIX + ' '.join(subject.split())


def render_notification(
    submission: SubmissionInput,
    received_at: datetime,
    owner_name: str,
    owner_role: str
) -> NotificationMessage:
    """
    Build the notification email for an accepted submission.

    Args:
        submission: Validated submission
        received_at: Time the submission was accepted
        owner_name: Site owner's name for the footer/signature
        owner_role: Site owner's role for the footer

    Returns:
        NotificationMessage ready to hand to a mail transport
    """
    return NotificationMessage(
        subject=subject_line(submission.subject),
        reply_to=submission.email,
        html_body=render_html_body(submission, received_at, owner_name, owner_role),
        text_body=render_text_body(submission, received_at, owner_name),
    )


def render_log_entry(submission: SubmissionInput, received_at: datetime) -> str:
    """Render the delimited block appended to the submissions log."""
    return format_template(
        load_template(LOG_ENTRY_TEMPLATE),
        received_at=format_log_timestamp(received_at),
        name=submission.name,
        email=submission.email,
        subject=submission.subject,
        message=submission.message,
    )
