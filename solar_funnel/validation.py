"""Per-step answer validation."""
from __future__ import annotations

from typing import Optional

from .formatting import validate_email, validate_phone_number
from .models import MAX_ATTACHMENT_BYTES, AnswerSet, Attachment, HomeOwnership, InputKind, StepDefinition

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/heic",
    }
)

REQUIRED_MESSAGE = "This field is required"
HOMEOWNER_MESSAGE = "You must be a homeowner to qualify for solar rebates"
ADDRESS_MESSAGE = "Please enter a valid address"
EMAIL_MESSAGE = "Please enter a valid email address"
PHONE_MESSAGE = "Please enter a valid Australian mobile number"
FILE_SIZE_MESSAGE = "File must be less than 10MB"
FILE_TYPE_MESSAGE = "Please upload a PDF or image file"


def validate_attachment(attachment: Optional[Attachment]) -> Optional[str]:
    if attachment is None:
        return None
    if attachment.size > MAX_ATTACHMENT_BYTES:
        return FILE_SIZE_MESSAGE
    if attachment.content_type not in ALLOWED_CONTENT_TYPES:
        return FILE_TYPE_MESSAGE
    return None


def validate_step(
    step: StepDefinition,
    answers: AnswerSet,
    *,
    address_confirmed: bool = False,
) -> Optional[str]:
    """Return the error message for ``step``'s answer, or ``None`` when it may advance."""

    kind = step.kind
    if kind is InputKind.RANGE:
        return None

    value = getattr(answers, step.field)
    if step.required and not value:
        return REQUIRED_MESSAGE

    if kind is InputKind.SELECT:
        if step.field == "home_ownership" and value != HomeOwnership.OWN:
            return HOMEOWNER_MESSAGE
        if step.choices and step.label_for(value) is None:
            return REQUIRED_MESSAGE
    elif kind is InputKind.ADDRESS:
        if not address_confirmed:
            return ADDRESS_MESSAGE
    elif kind is InputKind.EMAIL:
        if not validate_email(value):
            return EMAIL_MESSAGE
    elif kind is InputKind.TEL:
        if not validate_phone_number(value):
            return PHONE_MESSAGE
    elif kind is InputKind.FILE:
        return validate_attachment(value)
    # TEXT only needs a value.
    return None
