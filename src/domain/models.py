"""
Data models for the contact submission domain.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SubmissionInput:
    """
    Raw contact form submission, exactly as received.

    Attributes:
        name: Submitter's name
        email: Submitter's email address (used as reply-to)
        subject: Subject typed into the form
        message: Message body
    """
    name: str
    email: str
    subject: str
    message: str

    @classmethod
    def from_payload(cls, payload: Any) -> 'SubmissionInput':
        """
        Build an input from a decoded JSON body.

        Missing or non-string fields become empty strings so that
        validation reports them instead of the caller crashing.
        """
        if not isinstance(payload, dict):
            payload = {}

        def _text(key: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else ''

        return cls(
            name=_text('name'),
            email=_text('email'),
            subject=_text('subject'),
            message=_text('message'),
        )


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a submission.

    The error list is non-empty iff the submission is invalid, and keeps
    check order: name, email, subject, message.
    """
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class NotificationMessage:
    """
    Email rendered from an accepted submission.

    Attributes:
        subject: Subject line ("Portfolio: <subject>")
        reply_to: Submitter's address
        html_body: HTML body with user fields escaped
        text_body: Plain-text fallback body (unescaped)
    """
    subject: str
    reply_to: str
    html_body: str
    text_body: str


class OutcomeStatus(str, Enum):
    SENT = 'sent'
    REJECTED = 'rejected'
    DELIVERY_FAILED = 'delivery_failed'


@dataclass
class SubmissionOutcome:
    """
    Result of processing one submission.

    This explicit result type makes success/failure handling clear
    and prevents exceptions from being used for control flow.

    Attributes:
        status: Which terminal state the pipeline reached
        message: User-facing message (confirmation or generic failure)
        errors: Validation errors (REJECTED only)
        error_detail: Transport error for operators (DELIVERY_FAILED only, never sent to clients)
        receipt: Delivery receipt such as a preview URL (SENT only, optional)
    """
    status: OutcomeStatus
    message: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    error_detail: Optional[str] = None
    receipt: Optional[str] = None

    @classmethod
    def sent(cls, message: str, receipt: Optional[str] = None) -> 'SubmissionOutcome':
        return cls(status=OutcomeStatus.SENT, message=message, receipt=receipt)

    @classmethod
    def rejected(cls, errors: List[str]) -> 'SubmissionOutcome':
        return cls(status=OutcomeStatus.REJECTED, errors=list(errors))

    @classmethod
    def delivery_failed(cls, message: str, error_detail: str) -> 'SubmissionOutcome':
        return cls(status=OutcomeStatus.DELIVERY_FAILED, message=message, error_detail=error_detail)

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SENT

    @property
    def status_code(self) -> int:
        """HTTP status code for this outcome."""
        if self.status is OutcomeStatus.SENT:
            return 200
        if self.status is OutcomeStatus.REJECTED:
            return 400
        return 500

    def to_response_body(self) -> Dict[str, Any]:
        """
        JSON body returned to the client.

        Only the user-facing fields are included; error_detail and
        receipt stay server-side.
        """
        if self.status is OutcomeStatus.REJECTED:
            return {'success': False, 'errors': list(self.errors)}
        return {'success': self.success, 'message': self.message}

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.status is OutcomeStatus.REJECTED:
            return f"SubmissionOutcome(status=rejected, errors={len(self.errors)})"
        if self.status is OutcomeStatus.DELIVERY_FAILED:
            return f"SubmissionOutcome(status=delivery_failed, error={self.error_detail})"
        return f"SubmissionOutcome(status=sent, receipt={self.receipt})"
