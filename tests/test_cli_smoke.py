"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import pytest

from solar_funnel import __main__, cli
from solar_funnel.address import StaticAddressLookup
from solar_funnel.controller import FunnelController
from solar_funnel.models import AnswerSet, FunnelState
from solar_funnel.scheduling import DeferredScheduler

ADDRESS = "1 Example Street, Sydney NSW 2000, Australia"


class FakeGateway:
    def __init__(self) -> None:
        self.calls: list[AnswerSet] = []

    def submit(self, answers: AnswerSet) -> str:
        self.calls.append(answers)
        return "rec1"


def scripted(lines: list[str]):
    remaining = list(lines)

    def fake_input(prompt: str = "") -> str:
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return fake_input


ANSWERS = [
    "1",  # own
    "",  # keep bill
    "1 Example",  # address text
    "1",  # pick suggestion
    "Jane",
    "Citizen",
    "jane@example.com",
    "0412345678",
    "",  # no attachment
]


def make_controller(gateway: FakeGateway, output, scheduler: DeferredScheduler) -> FunnelController:
    return FunnelController(
        gateway,
        notifier=cli.ConsoleNotifier(output),
        scheduler=scheduler,
    )


def test_console_walks_through_every_step() -> None:
    gateway = FakeGateway()
    lines: list[str] = []
    scheduler = DeferredScheduler()
    controller = make_controller(gateway, lines.append, scheduler)

    exit_code = cli.run_console(
        controller,
        StaticAddressLookup([ADDRESS]),
        input_func=scripted(ANSWERS),
        output=lines.append,
        scheduler=scheduler,
    )

    assert exit_code == 0
    assert controller.state is FunnelState.COMPLETE
    assert len(gateway.calls) == 1
    assert gateway.calls[0].phone == "+61 412 345 678"
    assert "Step 1 of 8: Do you own your home?" in lines
    assert lines[-1] == "Congratulations! You've qualified for solar rebates!"


def test_console_reprompts_renters_and_stops_on_eof() -> None:
    gateway = FakeGateway()
    lines: list[str] = []
    scheduler = DeferredScheduler()
    controller = make_controller(gateway, lines.append, scheduler)

    exit_code = cli.run_console(
        controller,
        StaticAddressLookup([ADDRESS]),
        input_func=scripted(["2"]),
        output=lines.append,
        scheduler=scheduler,
    )

    assert exit_code == 1
    assert gateway.calls == []
    homeowner = lines.index("  ! You must be a homeowner to qualify for solar rebates")
    disqualified = lines.index("[error] Sorry, you must be a homeowner to qualify for solar rebates")
    assert homeowner < disqualified
    assert "  ! This field is required" not in lines
    assert controller.answers.home_ownership == ""
    assert controller.session.step_index == 0


def test_main_runs_console_with_configured_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    gateway = FakeGateway()
    monkeypatch.setenv("SOLAR_FUNNEL_API_KEY", "secret-token")
    monkeypatch.setenv("SOLAR_FUNNEL_BASE_ID", "appTest")
    monkeypatch.delenv("SOLAR_FUNNEL_CONFIG", raising=False)
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    monkeypatch.setattr(cli, "build_gateway", lambda settings: gateway)
    monkeypatch.setattr(cli, "build_address_lookup", lambda settings: StaticAddressLookup([ADDRESS]))
    monkeypatch.setattr("builtins.input", scripted(ANSWERS))

    exit_code = cli.main(["--console", "--log-level", "WARNING"])

    assert exit_code == 0
    assert len(gateway.calls) == 1


def test_main_reports_missing_credentials(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    for name in ("SOLAR_FUNNEL_API_KEY", "SOLAR_FUNNEL_BASE_ID", "SOLAR_FUNNEL_CONFIG"):
        monkeypatch.delenv(name, raising=False)

    exit_code = cli.main(["--console"])

    assert exit_code == 1
    assert "Record store configuration is incomplete" in caplog.text


def test_module_entry_point_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        __main__.main(["--help"])

    captured = capsys.readouterr()
    assert excinfo.value.code == 0
    assert "python -m solar_funnel" in captured.out
    assert "--console" in captured.out
