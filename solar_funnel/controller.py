"""Step-by-step funnel controller driving validation and submission."""
from __future__ import annotations

import logging
from dataclasses import fields
from typing import Callable, Optional, Protocol, Sequence

from .address import AddressLookup, AddressSuggestion
from .formatting import format_phone_number
from .gateway.errors import GatewayError, UnknownError
from .gateway.service import UNEXPECTED_MESSAGE
from .models import AnswerSet, Attachment, FunnelState, HomeOwnership, SessionState, StepDefinition
from .scheduling import Scheduler, TaskGroup, ThreadingScheduler
from .steps import QUIZ_STEPS, snap_bill_amount
from .validation import validate_attachment, validate_step

LOGGER = logging.getLogger(__name__)

DISQUALIFIED_MESSAGE = "Sorry, you must be a homeowner to qualify for solar rebates"
SUCCESS_MESSAGE = "Thank you! We'll be in touch soon with your solar savings estimate."
DEFAULT_DISQUALIFY_DELAY = 0.5

_ANSWER_FIELDS = frozenset(item.name for item in fields(AnswerSet))


class Gateway(Protocol):
    def submit(self, answers: AnswerSet) -> str:  # pragma: no cover - runtime protocol
        """Persist the answers and return the record id."""


class Notifier(Protocol):
    """Receives transient success and error notices for the user."""

    def success(self, message: str) -> None:  # pragma: no cover - runtime protocol
        ...

    def error(self, message: str) -> None:  # pragma: no cover - runtime protocol
        ...


class LoggingNotifier:
    def success(self, message: str) -> None:
        LOGGER.info("Notification: %s", message)

    def error(self, message: str) -> None:
        LOGGER.warning("Notification: %s", message)


SubmissionTask = Callable[[], str]
SubmissionCallback = Callable[[Optional[str], Optional[GatewayError]], None]
SubmissionRunner = Callable[[SubmissionTask, SubmissionCallback], None]


def run_inline(task: SubmissionTask, on_done: SubmissionCallback) -> None:
    """Run the submission on the calling thread."""

    try:
        record_id = task()
    except GatewayError as exc:
        on_done(None, exc)
        return
    except Exception as exc:
        LOGGER.exception("Submission failed unexpectedly")
        on_done(None, UnknownError(str(exc) or UNEXPECTED_MESSAGE))
        return
    on_done(record_id, None)


class FunnelController:
    """Holds the answers of one session and walks the user through the steps.

    States are ``Active(step_index)``, ``Submitting`` and ``Complete``. A
    failed submission returns to ``Active`` on the last step with the error
    attached, so calling :meth:`advance` again retries the whole submission.
    """

    DISQUALIFY_TASK = "disqualify"

    def __init__(
        self,
        gateway: Gateway,
        *,
        steps: Sequence[StepDefinition] = QUIZ_STEPS,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[Scheduler] = None,
        runner: Optional[SubmissionRunner] = None,
        disqualify_delay: float = DEFAULT_DISQUALIFY_DELAY,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        if not steps:
            raise ValueError("A funnel needs at least one step.")
        self._gateway = gateway
        self.steps = tuple(steps)
        self.answers = AnswerSet()
        self.session = SessionState()
        self.notifier: Notifier = notifier or LoggingNotifier()
        self._tasks = TaskGroup(scheduler or ThreadingScheduler())
        self._runner = runner or run_inline
        self.disqualify_delay = disqualify_delay
        self.on_change = on_change
        self.record_id: Optional[str] = None
        self._submission = 0

    # ------------------------------------------------------------------
    @property
    def state(self) -> FunnelState:
        return self.session.state

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def current_step(self) -> StepDefinition:
        return self.steps[self.session.step_index]

    @property
    def is_last_step(self) -> bool:
        return self.session.step_index == self.step_count - 1

    @property
    def error(self) -> Optional[str]:
        return self.session.error

    # ------------------------------------------------------------------
    def update_field(self, field: str, raw_value: object) -> None:
        """Store a raw answer for ``field``."""

        if field not in _ANSWER_FIELDS:
            raise KeyError(f"Unknown answer field '{field}'")
        if not self._accepting_input():
            return
        if field == "attachment":
            self.set_attachment(raw_value)  # type: ignore[arg-type]
            return
        if field == "address":
            self.set_address("" if raw_value is None else str(raw_value), confirmed=False)
            return

        value = "" if raw_value is None else str(raw_value)
        if field == "phone":
            value = format_phone_number(value)
        elif field == "electricity_bill":
            try:
                value = snap_bill_amount(float(value.strip().lstrip("$")))
            except ValueError:
                LOGGER.debug("Ignoring non-numeric bill amount %r", value)
                return
        setattr(self.answers, field, value)
        self.session.error = None

        if field == "home_ownership":
            if value and value != HomeOwnership.OWN:
                self._tasks.schedule(self.DISQUALIFY_TASK, self.disqualify_delay, self._disqualify)
            else:
                self._tasks.cancel(self.DISQUALIFY_TASK)
        self._changed()

    def set_address(self, formatted_address: str, confirmed: bool) -> None:
        if not self._accepting_input():
            return
        self.answers.address = formatted_address
        self.session.address_confirmed = bool(confirmed)
        self.session.error = None
        self._changed()

    def confirm_address(self, lookup: AddressLookup, suggestion: AddressSuggestion) -> bool:
        """Resolve a lookup suggestion and store it as the confirmed address."""

        formatted = lookup.resolve(suggestion)
        if not formatted:
            LOGGER.info("Address suggestion %r could not be resolved", suggestion.description)
            return False
        self.set_address(formatted, confirmed=True)
        return True

    def set_attachment(self, attachment: Optional[Attachment]) -> bool:
        """Attach a bill document, or remove it when ``attachment`` is ``None``."""

        if not self._accepting_input():
            return False
        error = validate_attachment(attachment)
        if error:
            LOGGER.info("Rejected attachment %s: %s", attachment.filename if attachment else None, error)
            self.session.error = error
            self._changed()
            return False
        self.answers.attachment = attachment
        self.session.error = None
        self._changed()
        return True

    def advance(self) -> FunnelState:
        """Validate the current step and move on, submitting after the last one."""

        if self.state is not FunnelState.ACTIVE:
            LOGGER.debug("Ignoring advance while %s", self.state.value)
            return self.state

        error = validate_step(
            self.current_step,
            self.answers,
            address_confirmed=self.session.address_confirmed,
        )
        if error:
            self.session.error = error
            self._changed()
            return self.state

        self.session.error = None
        if not self.is_last_step:
            self.session.step_index += 1
            self._changed()
            return self.state

        self._submit()
        return self.state

    def reset(self) -> None:
        self._tasks.cancel_all()
        self._submission += 1
        self.answers.reset()
        fresh = SessionState()
        for item in fields(SessionState):
            setattr(self.session, item.name, getattr(fresh, item.name))
        self.record_id = None
        self._changed()

    def close(self) -> None:
        """End the session, cancelling anything still scheduled."""

        self._tasks.cancel_all()
        self._submission += 1

    # ------------------------------------------------------------------
    def _accepting_input(self) -> bool:
        if self.state is FunnelState.ACTIVE:
            return True
        LOGGER.debug("Ignoring input while %s", self.state.value)
        return False

    def _disqualify(self) -> None:
        self.notifier.error(DISQUALIFIED_MESSAGE)
        self.answers.home_ownership = ""
        self._changed()

    def _submit(self) -> None:
        self._submission += 1
        submission = self._submission
        self.session.submitting = True
        self._changed()
        LOGGER.info("Submitting answers for step %s of %s", self.session.step_index + 1, self.step_count)

        def on_done(record_id: Optional[str], error: Optional[GatewayError]) -> None:
            if submission != self._submission:
                LOGGER.debug("Discarding outcome of abandoned submission %s", submission)
                return
            self._finish_submission(record_id, error)

        self._runner(lambda: self._gateway.submit(self.answers), on_done)

    def _finish_submission(self, record_id: Optional[str], error: Optional[GatewayError]) -> None:
        self.session.submitting = False
        if error is not None:
            self.session.error = error.message
            self.notifier.error(error.message)
        else:
            self.record_id = record_id
            self.session.complete = True
            self.notifier.success(SUCCESS_MESSAGE)
        self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
