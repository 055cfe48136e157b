"""
Contact form validation rules.

Every check runs regardless of earlier failures, and errors are returned
in a fixed order: name, email, subject, message. The email check is a
shape check only (no DNS or MX lookup).
"""

import re

from domain.models import SubmissionInput, ValidationResult

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

MIN_NAME_LENGTH = 2
MIN_SUBJECT_LENGTH = 3
MIN_MESSAGE_LENGTH = 20

NAME_ERROR = f'Name is required (min {MIN_NAME_LENGTH} characters)'
EMAIL_ERROR = 'Valid email address is required'
SUBJECT_ERROR = f'Subject is required (min {MIN_SUBJECT_LENGTH} characters)'
MESSAGE_ERROR = f'Message is required (min {MIN_MESSAGE_LENGTH} characters)'


def is_valid_email(email: str) -> bool:
    """
    Check that an address looks like local@domain.tld.

    Example:
        >>> is_valid_email("a@b.co")
        True
        >>> is_valid_email("bad")
        False
    """
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


def validate_submission(submission: SubmissionInput) -> ValidationResult:
    """
    Validate a raw submission.

    Args:
        submission: Fields as received from the client

    Returns:
        ValidationResult with every failing check's message, in check order
    """
    errors = []

    if len(submission.name.strip()) < MIN_NAME_LENGTH:
        errors.append(NAME_ERROR)

    if not is_valid_email(submission.email):
        errors.append(EMAIL_ERROR)

    if len(submission.subject.strip()) < MIN_SUBJECT_LENGTH:
        errors.append(SUBJECT_ERROR)

    if len(submission.message.strip()) < MIN_MESSAGE_LENGTH:
        errors.append(MESSAGE_ERROR)

    return ValidationResult(errors=errors)
