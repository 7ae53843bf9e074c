from __future__ import annotations

from typing import Optional

import pytest

from solar_funnel.address import AddressSuggestion, StaticAddressLookup
from solar_funnel.controller import DISQUALIFIED_MESSAGE, SUCCESS_MESSAGE, FunnelController
from solar_funnel.gateway.errors import ConnectivityError, GatewayError
from solar_funnel.models import AnswerSet, Attachment, FunnelState, HomeOwnership
from solar_funnel.validation import (
    ADDRESS_MESSAGE,
    FILE_SIZE_MESSAGE,
    HOMEOWNER_MESSAGE,
    MAX_ATTACHMENT_BYTES,
    PHONE_MESSAGE,
)

ADDRESS = "1 Example Street, Sydney NSW 2000, Australia"


class FakeGateway:
    def __init__(self, error: Optional[GatewayError] = None, record_id: str = "rec123") -> None:
        self.error = error
        self.record_id = record_id
        self.calls: list[AnswerSet] = []

    def submit(self, answers: AnswerSet) -> str:
        self.calls.append(answers)
        if self.error is not None:
            raise self.error
        return self.record_id


class RecordingNotifier:
    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class ManualScheduler:
    def __init__(self) -> None:
        self.pending: list = []

    def schedule(self, delay, callback):
        entry = [callback, False]
        self.pending.append(entry)

        class _Task:
            def cancel(self_inner) -> None:
                entry[1] = True

        return _Task()

    def run_due(self) -> None:
        entries, self.pending = self.pending, []
        for callback, cancelled in entries:
            if not cancelled:
                callback()


class DeferredRunner:
    """Holds submissions until the test releases them."""

    def __init__(self) -> None:
        self.jobs: list = []

    def __call__(self, task, on_done) -> None:
        self.jobs.append((task, on_done))

    def release(self) -> None:
        jobs, self.jobs = self.jobs, []
        for task, on_done in jobs:
            try:
                record_id = task()
            except GatewayError as exc:
                on_done(None, exc)
            else:
                on_done(record_id, None)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


def make_controller(gateway, notifier, scheduler, **kwargs) -> FunnelController:
    return FunnelController(gateway, notifier=notifier, scheduler=scheduler, **kwargs)


def fill_until_last_step(controller: FunnelController) -> None:
    lookup = StaticAddressLookup([ADDRESS])
    controller.update_field("home_ownership", HomeOwnership.OWN)
    assert controller.advance() is FunnelState.ACTIVE
    controller.advance()  # bill keeps its default
    controller.update_field("address", "1 Example")
    assert controller.confirm_address(lookup, lookup.suggest("example")[0])
    controller.advance()
    controller.update_field("first_name", "Jane")
    controller.advance()
    controller.update_field("last_name", "Citizen")
    controller.advance()
    controller.update_field("email", "jane@example.com")
    controller.advance()
    controller.update_field("phone", "0412345678")
    controller.advance()
    assert controller.is_last_step
    assert controller.error is None


def test_happy_path_submits_once(notifier, scheduler) -> None:
    gateway = FakeGateway()
    controller = make_controller(gateway, notifier, scheduler)

    fill_until_last_step(controller)
    state = controller.advance()

    assert state is FunnelState.COMPLETE
    assert len(gateway.calls) == 1
    submitted = gateway.calls[0]
    assert submitted.phone == "+61 412 345 678"
    assert submitted.address == ADDRESS
    assert controller.record_id == "rec123"
    assert notifier.successes == [SUCCESS_MESSAGE]


def test_step_index_only_moves_forward_on_valid_answers(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)

    controller.advance()
    assert controller.session.step_index == 0
    assert controller.error == "This field is required"

    controller.update_field("home_ownership", HomeOwnership.OWN)
    assert controller.error is None
    controller.advance()
    assert controller.session.step_index == 1


def test_renter_is_rejected_and_never_submitted(notifier, scheduler) -> None:
    gateway = FakeGateway()
    controller = make_controller(gateway, notifier, scheduler)

    controller.update_field("home_ownership", HomeOwnership.RENT)
    controller.advance()

    assert controller.session.step_index == 0
    assert controller.error == HOMEOWNER_MESSAGE

    scheduler.run_due()

    assert notifier.errors == [DISQUALIFIED_MESSAGE]
    assert controller.answers.home_ownership == ""
    assert controller.session.step_index == 0
    assert gateway.calls == []


def test_other_ownership_is_rejected_like_renting(notifier, scheduler) -> None:
    gateway = FakeGateway()
    controller = make_controller(gateway, notifier, scheduler)

    controller.update_field("home_ownership", HomeOwnership.OTHER)
    controller.advance()

    assert controller.error == HOMEOWNER_MESSAGE
    scheduler.run_due()
    assert notifier.errors == [DISQUALIFIED_MESSAGE]
    assert controller.answers.home_ownership == ""
    assert gateway.calls == []


def test_choosing_owner_cancels_pending_disqualification(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)

    controller.update_field("home_ownership", HomeOwnership.OTHER)
    controller.update_field("home_ownership", HomeOwnership.OWN)
    scheduler.run_due()

    assert notifier.errors == []
    assert controller.answers.home_ownership == HomeOwnership.OWN


def test_reset_cancels_pending_disqualification(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)

    controller.update_field("home_ownership", HomeOwnership.RENT)
    controller.reset()
    controller.update_field("first_name", "Jane")
    scheduler.run_due()

    assert notifier.errors == []
    assert controller.answers.first_name == "Jane"


def test_bill_amount_is_snapped_and_non_numbers_ignored(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)

    controller.update_field("electricity_bill", "$437")
    assert controller.answers.electricity_bill == "450"

    controller.update_field("electricity_bill", "abc")
    controller.update_field("electricity_bill", "")
    assert controller.answers.electricity_bill == "450"

    controller.session.step_index = 1
    assert controller.advance() is FunnelState.ACTIVE
    assert controller.session.step_index == 2


def test_typed_address_must_be_confirmed(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)
    controller.update_field("home_ownership", HomeOwnership.OWN)
    controller.advance()
    controller.advance()

    controller.update_field("address", "somewhere I typed")
    controller.advance()

    assert controller.session.step_index == 2
    assert controller.error == ADDRESS_MESSAGE

    controller.set_address(ADDRESS, confirmed=True)
    controller.update_field("address", ADDRESS + " edited")
    assert controller.session.address_confirmed is False


def test_unresolved_suggestion_leaves_address_unconfirmed(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)
    lookup = StaticAddressLookup([ADDRESS])

    assert not controller.confirm_address(lookup, AddressSuggestion("Nowhere"))
    assert controller.session.address_confirmed is False


def test_invalid_phone_blocks_the_step(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)
    controller.session.step_index = 6

    controller.update_field("phone", "0212345678")
    controller.advance()

    assert controller.error == PHONE_MESSAGE
    assert controller.session.step_index == 6


def test_oversized_attachment_never_reaches_the_gateway(notifier, scheduler) -> None:
    gateway = FakeGateway()
    controller = make_controller(gateway, notifier, scheduler)
    fill_until_last_step(controller)

    accepted = controller.set_attachment(
        Attachment("bill.pdf", "application/pdf", MAX_ATTACHMENT_BYTES + 1)
    )

    assert not accepted
    assert controller.error == FILE_SIZE_MESSAGE
    assert controller.answers.attachment is None

    controller.advance()

    assert len(gateway.calls) == 1
    assert gateway.calls[0].attachment is None


def test_failed_submission_returns_to_last_step(notifier, scheduler) -> None:
    gateway = FakeGateway(error=ConnectivityError("Connection failed"))
    controller = make_controller(gateway, notifier, scheduler)
    fill_until_last_step(controller)

    state = controller.advance()

    assert state is FunnelState.ACTIVE
    assert controller.is_last_step
    assert controller.error == "Connection failed"
    assert notifier.errors == ["Connection failed"]
    assert controller.answers.first_name == "Jane"

    gateway.error = None
    assert controller.advance() is FunnelState.COMPLETE
    assert len(gateway.calls) == 2


def test_unexpected_gateway_failure_does_not_leave_funnel_submitting(notifier, scheduler) -> None:
    class BrokenGateway:
        def submit(self, answers: AnswerSet) -> str:
            raise RuntimeError("socket closed")

    controller = make_controller(BrokenGateway(), notifier, scheduler)
    fill_until_last_step(controller)

    state = controller.advance()

    assert state is FunnelState.ACTIVE
    assert controller.session.submitting is False
    assert controller.error == "socket closed"
    assert notifier.errors == ["socket closed"]


def test_advance_while_submitting_is_ignored(notifier, scheduler) -> None:
    gateway = FakeGateway()
    runner = DeferredRunner()
    controller = make_controller(gateway, notifier, scheduler, runner=runner)
    fill_until_last_step(controller)

    assert controller.advance() is FunnelState.SUBMITTING
    assert controller.advance() is FunnelState.SUBMITTING
    controller.update_field("first_name", "Changed")
    assert controller.answers.first_name == "Jane"

    runner.release()

    assert controller.state is FunnelState.COMPLETE
    assert len(gateway.calls) == 1


def test_reset_discards_in_flight_submission(notifier, scheduler) -> None:
    runner = DeferredRunner()
    controller = make_controller(FakeGateway(), notifier, scheduler, runner=runner)
    fill_until_last_step(controller)
    controller.advance()

    controller.reset()
    runner.release()

    assert controller.state is FunnelState.ACTIVE
    assert controller.session.step_index == 0
    assert controller.record_id is None
    assert notifier.successes == []


def test_reset_restores_initial_session(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)
    fill_until_last_step(controller)
    controller.advance()

    controller.reset()

    assert controller.answers == AnswerSet()
    assert controller.session.step_index == 0
    assert controller.error is None
    assert controller.state is FunnelState.ACTIVE


def test_on_change_is_called(notifier, scheduler) -> None:
    changes: list[int] = []
    controller = make_controller(FakeGateway(), notifier, scheduler, on_change=lambda: changes.append(1))

    controller.update_field("first_name", "Jane")

    assert changes


def test_unknown_field_is_rejected(notifier, scheduler) -> None:
    controller = make_controller(FakeGateway(), notifier, scheduler)
    with pytest.raises(KeyError):
        controller.update_field("favourite_colour", "green")
