"""The fixed question sequence presented by the funnel."""
from __future__ import annotations

from typing import Tuple

from .models import Choice, HomeOwnership, InputKind, StepDefinition

BILL_MIN = 0
BILL_MAX = 800
BILL_STEP = 50

QUIZ_STEPS: Tuple[StepDefinition, ...] = (
    StepDefinition(
        question="Do you own your home?",
        subtext="To qualify for solar rebates, you need to be the property owner",
        field="home_ownership",
        kind=InputKind.SELECT,
        choices=(
            Choice(HomeOwnership.OWN, "Yes, I own my home"),
            Choice(HomeOwnership.RENT, "No, I rent my home"),
            Choice(HomeOwnership.OTHER, "Other"),
        ),
    ),
    StepDefinition(
        question="What's your average monthly electricity bill?",
        subtext="This helps us calculate your potential savings",
        field="electricity_bill",
        kind=InputKind.RANGE,
    ),
    StepDefinition(
        question="What's your address?",
        subtext="We'll check solar panel compatibility for your roof",
        field="address",
        kind=InputKind.ADDRESS,
        placeholder="Start typing your address...",
    ),
    StepDefinition(
        question="What's your first name?",
        field="first_name",
        kind=InputKind.TEXT,
        placeholder="John",
    ),
    StepDefinition(
        question="What's your last name?",
        field="last_name",
        kind=InputKind.TEXT,
        placeholder="Doe",
    ),
    StepDefinition(
        question="What's your email address?",
        subtext="We'll send your solar savings estimate here",
        field="email",
        kind=InputKind.EMAIL,
        placeholder="john@example.com",
    ),
    StepDefinition(
        question="What's your phone number?",
        subtext="We'll only use this to discuss your solar options",
        field="phone",
        kind=InputKind.TEL,
        placeholder="0400 000 000",
    ),
    StepDefinition(
        question="Upload your latest electricity bill",
        subtext="This helps us provide a more accurate savings estimate (optional)",
        field="attachment",
        kind=InputKind.FILE,
    ),
)


def snap_bill_amount(value: float) -> str:
    """Clamp a slider position to the bill range and round it to the nearest step."""

    clamped = min(max(float(value), BILL_MIN), BILL_MAX)
    return str(int(round(clamped / BILL_STEP) * BILL_STEP))


def progress_text(step_index: int, step_count: int) -> str:
    return f"Step {step_index + 1} of {step_count}"
