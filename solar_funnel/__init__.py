"""Top-level package for the solar rebate qualification funnel."""

from . import models  # noqa: F401
from .controller import FunnelController  # noqa: F401
from .gateway import GatewayError, SubmissionGateway  # noqa: F401
from .models import (
    AnswerSet,
    Attachment,
    Choice,
    FunnelState,
    HomeOwnership,
    InputKind,
    SessionState,
    StepDefinition,
)
from .steps import QUIZ_STEPS  # noqa: F401

__all__ = [
    "AnswerSet",
    "Attachment",
    "Choice",
    "FunnelController",
    "FunnelState",
    "GatewayError",
    "HomeOwnership",
    "InputKind",
    "QUIZ_STEPS",
    "SessionState",
    "StepDefinition",
    "SubmissionGateway",
    "gateway",
]
