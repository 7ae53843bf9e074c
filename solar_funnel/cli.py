"""Command line entry point launching the funnel in a window or in the terminal."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Optional

from .address import AddressLookup, AddressLookupError
from .config import ConfigurationError, load_settings
from .controller import FunnelController
from .factory import build_address_lookup, build_gateway
from .models import Attachment, FunnelState, InputKind, StepDefinition
from .scheduling import DeferredScheduler
from .steps import BILL_MAX, BILL_MIN, progress_text, snap_bill_amount

InputFunc = Callable[[str], str]
OutputFunc = Callable[[str], None]


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Check whether a household qualifies for solar rebates and record the lead",
    )
    parser.add_argument(
        "--config",
        help="Path to a configuration file (YAML or JSON); defaults to $SOLAR_FUNNEL_CONFIG",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Ask the questions in the terminal instead of opening a window",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None, prog: Optional[str] = None) -> argparse.Namespace:
    return build_parser(prog).parse_args(argv)


class ConsoleNotifier:
    def __init__(self, output: OutputFunc = print) -> None:
        self._output = output

    def success(self, message: str) -> None:
        self._output(f"[ok] {message}")

    def error(self, message: str) -> None:
        self._output(f"[error] {message}")


def _choose(raw: str, count: int) -> Optional[int]:
    text = raw.strip()
    if text.isdigit() and 1 <= int(text) <= count:
        return int(text) - 1
    return None


def _prompt_step(
    controller: FunnelController,
    lookup: AddressLookup,
    step: StepDefinition,
    input_func: InputFunc,
    output: OutputFunc,
) -> bool:
    """Ask for one answer; returns ``False`` when the input was rejected before validation."""

    kind = step.kind
    if kind is InputKind.SELECT:
        for number, choice in enumerate(step.choices, start=1):
            output(f"  {number}. {choice.label}")
        index = _choose(input_func("> "), len(step.choices))
        controller.update_field(step.field, step.choices[index].value if index is not None else "")
    elif kind is InputKind.RANGE:
        current = controller.answers.electricity_bill
        raw = input_func(f"> Amount in dollars (${BILL_MIN}-${BILL_MAX}, blank keeps ${current}): ").strip()
        if raw:
            try:
                amount = float(raw.lstrip("$"))
            except ValueError:
                output("  Please enter a number.")
                return False
            controller.update_field(step.field, snap_bill_amount(amount))
    elif kind is InputKind.ADDRESS:
        text = input_func("> ").strip()
        controller.set_address(text, confirmed=False)
        try:
            suggestions = lookup.suggest(text)
        except AddressLookupError as exc:
            logging.warning("%s", exc)
            suggestions = []
        if not suggestions:
            output("  No matching addresses found.")
            return True
        for number, suggestion in enumerate(suggestions, start=1):
            output(f"  {number}. {suggestion.description}")
        index = _choose(input_func("> Choose an address: "), len(suggestions))
        if index is not None:
            try:
                controller.confirm_address(lookup, suggestions[index])
            except AddressLookupError as exc:
                logging.warning("%s", exc)
    elif kind is InputKind.FILE:
        raw = input_func("> Path to your bill (blank to skip): ").strip()
        if raw:
            try:
                attachment = Attachment.from_path(raw)
            except OSError as exc:
                output(f"  Could not read {raw}: {exc}")
                return False
            return controller.set_attachment(attachment)
    else:
        controller.update_field(step.field, input_func("> "))
    return True


def run_console(
    controller: FunnelController,
    lookup: AddressLookup,
    *,
    input_func: Optional[InputFunc] = None,
    output: Optional[OutputFunc] = None,
    scheduler: Optional[DeferredScheduler] = None,
) -> int:
    """Walk through the funnel in the terminal until the lead is recorded.

    Callbacks held by ``scheduler`` run after each answer has been checked, so
    the step error is reported before any delayed reaction to the answer.
    """

    input_func = input_func or input
    output = output or print
    while controller.state is not FunnelState.COMPLETE:
        step = controller.current_step
        output("")
        output(f"{progress_text(controller.session.step_index, controller.step_count)}: {step.question}")
        if step.subtext:
            output(f"  {step.subtext}")
        try:
            accepted = _prompt_step(controller, lookup, step, input_func, output)
        except EOFError:
            output("Input closed before the questions were finished.")
            return 1
        if accepted:
            controller.advance()
        if controller.error:
            output(f"  ! {controller.error}")
        if scheduler is not None:
            scheduler.run_pending()
    output("Congratulations! You've qualified for solar rebates!")
    return 0


def main(argv: list[str] | None = None, prog: Optional[str] = None) -> int:
    args = parse_args(argv, prog)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        settings = load_settings(args.config)
        gateway = build_gateway(settings)
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 1
    lookup = build_address_lookup(settings)

    if args.console:
        scheduler = DeferredScheduler()
        controller = FunnelController(
            gateway,
            notifier=ConsoleNotifier(),
            scheduler=scheduler,
            disqualify_delay=settings.disqualify_delay_seconds,
        )
        try:
            return run_console(controller, lookup, scheduler=scheduler)
        finally:
            controller.close()

    from .ui.app import main as run_window

    run_window(gateway, lookup, disqualify_delay=settings.disqualify_delay_seconds)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
