"""Tkinter based desktop application for the solar rebate funnel."""
from __future__ import annotations

import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Any, Callable, List, Optional, Tuple

from ..address import AddressLookup, AddressLookupError, AddressSuggestion
from ..controller import FunnelController, Gateway, SubmissionCallback, SubmissionTask
from ..formatting import format_file_size
from ..gateway.errors import GatewayError, UnknownError
from ..gateway.service import UNEXPECTED_MESSAGE
from ..models import Attachment, FunnelState, InputKind, StepDefinition
from ..scheduling import ScheduledTask
from ..steps import BILL_MAX, BILL_MIN, progress_text, snap_bill_amount


LOGGER = logging.getLogger(__name__)

TITLE = "Solar Rebate Checker"
TAGLINE = "Find out if you qualify for solar rebates in your area"
ERROR_COLOUR = "#DC2626"
FILE_TYPES = [
    ("PDF or image", "*.pdf *.jpg *.jpeg *.png *.heic"),
    ("All files", "*.*"),
]


def advance_button_text(is_last_step: bool) -> str:
    return "Check My Eligibility" if is_last_step else "Continue"


def bill_label(amount: str) -> str:
    return f"${amount}"


def describe_attachment(attachment: Optional[Attachment]) -> str:
    if attachment is None:
        return "No file selected"
    return f"{attachment.filename} ({format_file_size(attachment.size)})"


def choice_labels(step: StepDefinition) -> List[str]:
    return [choice.label for choice in step.choices]


def value_for_label(step: StepDefinition, label: str) -> str:
    for choice in step.choices:
        if choice.label == label:
            return choice.value
    return ""


class QueuedSubmissionRunner:
    """Runs submissions on one worker thread and hands outcomes back through a queue.

    :meth:`drain` must be called from the UI thread; it is the only place the
    controller hears about a finished submission.
    """

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._executor = executor or ThreadPoolExecutor(max_workers=1)
        self.events: "queue.Queue[Tuple[SubmissionCallback, Optional[str], Optional[GatewayError]]]" = queue.Queue()

    def __call__(self, task: SubmissionTask, on_done: SubmissionCallback) -> None:
        def worker() -> None:
            try:
                record_id = task()
            except GatewayError as exc:
                self.events.put((on_done, None, exc))
                return
            except Exception as exc:  # pragma: no cover - GUI surface
                LOGGER.exception("Submission worker failed")
                self.events.put((on_done, None, UnknownError(str(exc) or UNEXPECTED_MESSAGE)))
                return
            self.events.put((on_done, record_id, None))

        self._executor.submit(worker)

    def drain(self) -> int:
        delivered = 0
        while True:
            try:
                on_done, record_id, error = self.events.get_nowait()
            except queue.Empty:
                return delivered
            on_done(record_id, error)
            delivered += 1

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


class QueuedAddressLookup:
    """Runs address lookups on a worker thread and hands results back through a queue.

    Only the outcome of the most recent request is delivered by :meth:`drain`;
    results for text the user has since changed are dropped.
    """

    def __init__(self, lookup: AddressLookup, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self.lookup = lookup
        self._executor = executor or ThreadPoolExecutor(max_workers=1)
        self._generation = 0
        self.events: "queue.Queue[Tuple[int, Callable[[Any], None], Any]]" = queue.Queue()

    def suggest(self, text: str, on_done: Callable[[List[AddressSuggestion]], None]) -> None:
        self._submit(lambda: self.lookup.suggest(text), on_done, [])

    def resolve(self, suggestion: AddressSuggestion, on_done: Callable[[Optional[str]], None]) -> None:
        self._submit(lambda: self.lookup.resolve(suggestion), on_done, None)

    def cancel(self) -> None:
        self._generation += 1

    def _submit(self, call: Callable[[], Any], on_done: Callable[[Any], None], fallback: Any) -> None:
        self._generation += 1
        generation = self._generation

        def worker() -> None:
            try:
                result = call()
            except AddressLookupError as exc:
                LOGGER.warning("%s", exc)
                result = fallback
            except Exception:  # pragma: no cover - GUI surface
                LOGGER.exception("Address lookup worker failed")
                result = fallback
            self.events.put((generation, on_done, result))

        self._executor.submit(worker)

    def drain(self) -> int:
        delivered = 0
        while True:
            try:
                generation, on_done, result = self.events.get_nowait()
            except queue.Empty:
                return delivered
            if generation != self._generation:
                LOGGER.debug("Dropping stale address lookup result")
                continue
            on_done(result)
            delivered += 1

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


class _AfterTask:
    def __init__(self, root: tk.Misc, after_id: str) -> None:
        self._root = root
        self._after_id = after_id

    def cancel(self) -> None:
        try:
            self._root.after_cancel(self._after_id)
        except tk.TclError:  # pragma: no cover - window already destroyed
            LOGGER.debug("Scheduled callback %s already gone", self._after_id)


class TkScheduler:
    """Schedules callbacks on the Tk event loop."""

    def __init__(self, root: tk.Misc) -> None:
        self._root = root

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        after_id = self._root.after(int(max(delay, 0.0) * 1000), callback)
        return _AfterTask(self._root, after_id)


class MessageBoxNotifier:  # pragma: no cover - GUI surface
    def success(self, message: str) -> None:
        messagebox.showinfo("Success", message)

    def error(self, message: str) -> None:
        messagebox.showerror("Error", message)


class FunnelApp:
    """Main application window."""

    def __init__(
        self,
        root: tk.Tk,
        gateway: Gateway,
        address_lookup: AddressLookup,
        *,
        disqualify_delay: float = 0.5,
    ) -> None:
        self.root = root
        self.root.title(TITLE)
        self.root.geometry("640x560")
        self.root.minsize(520, 480)

        self.lookups = QueuedAddressLookup(address_lookup)
        self.runner = QueuedSubmissionRunner()
        self.controller = FunnelController(
            gateway,
            notifier=MessageBoxNotifier(),
            scheduler=TkScheduler(root),
            runner=self.runner,
            disqualify_delay=disqualify_delay,
            on_change=self.refresh,
        )

        self.progress_var = tk.DoubleVar(value=0.0)
        self.progress_text_var = tk.StringVar()
        self.question_var = tk.StringVar()
        self.subtext_var = tk.StringVar()
        self.error_var = tk.StringVar()
        self.button_text_var = tk.StringVar()

        self._rendered_step: Optional[int] = None
        self._syncing = False
        self._field_var: Optional[tk.Variable] = None
        self._suggestions: List[AddressSuggestion] = []
        self._suggestion_list: Optional[tk.Listbox] = None
        self._bill_var = tk.StringVar()
        self._attachment_var = tk.StringVar()

        self._build_layout()
        self.root.bind("<Return>", lambda _event: self.advance())
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)
        self.root.after(100, self._poll_queue)
        self.refresh()

    # ------------------------------------------------------------------
    def _build_layout(self) -> None:
        self.container = ttk.Frame(self.root, padding=16)
        self.container.pack(fill="both", expand=True)
        self.container.columnconfigure(0, weight=1)

        ttk.Label(self.container, text=TITLE, font=("TkDefaultFont", 18, "bold")).grid(row=0, column=0)
        ttk.Label(self.container, text=TAGLINE).grid(row=1, column=0, pady=(0, 12))

        self.step_frame = ttk.Frame(self.container)
        self.step_frame.grid(row=2, column=0, sticky="nsew")
        self.step_frame.columnconfigure(0, weight=1)

        ttk.Progressbar(
            self.step_frame,
            maximum=self.controller.step_count,
            variable=self.progress_var,
        ).grid(row=0, column=0, sticky="ew")
        ttk.Label(self.step_frame, textvariable=self.progress_text_var).grid(row=1, column=0, sticky="e", pady=(4, 12))

        ttk.Label(
            self.step_frame,
            textvariable=self.question_var,
            font=("TkDefaultFont", 14, "bold"),
            wraplength=560,
        ).grid(row=2, column=0, sticky="w")
        ttk.Label(self.step_frame, textvariable=self.subtext_var, wraplength=560).grid(row=3, column=0, sticky="w", pady=(4, 8))

        self.input_frame = ttk.Frame(self.step_frame)
        self.input_frame.grid(row=4, column=0, sticky="ew")
        self.input_frame.columnconfigure(0, weight=1)

        ttk.Label(self.step_frame, textvariable=self.error_var, foreground=ERROR_COLOUR).grid(row=5, column=0, sticky="w", pady=(6, 6))

        self.advance_button = ttk.Button(self.step_frame, textvariable=self.button_text_var, command=self.advance)
        self.advance_button.grid(row=6, column=0, sticky="ew")

        self.complete_frame = ttk.Frame(self.container)
        ttk.Label(self.complete_frame, text="Congratulations!", font=("TkDefaultFont", 16, "bold")).pack(pady=(24, 8))
        ttk.Label(self.complete_frame, text="You've qualified for solar rebates!").pack(pady=(0, 8))
        ttk.Label(
            self.complete_frame,
            text=(
                "Our solar experts will analyze your information and contact you within 24 hours "
                "with your personalized savings estimate."
            ),
            wraplength=520,
            justify="center",
        ).pack()

    # ------------------------------------------------------------------
    def _render_input(self, step: StepDefinition) -> None:
        for child in self.input_frame.winfo_children():
            child.destroy()
        self._field_var = None
        self._suggestion_list = None
        self._suggestions = []
        self.lookups.cancel()
        answers = self.controller.answers

        if step.kind is InputKind.SELECT:
            variable = tk.StringVar(value=step.label_for(getattr(answers, step.field)) or "")
            combobox = ttk.Combobox(self.input_frame, textvariable=variable, state="readonly", values=choice_labels(step))
            combobox.grid(row=0, column=0, sticky="ew")
            combobox.bind(
                "<<ComboboxSelected>>",
                lambda _event: self.controller.update_field(step.field, value_for_label(step, variable.get())),
            )
            self._field_var = variable
        elif step.kind is InputKind.RANGE:
            scale_var = tk.DoubleVar(value=float(answers.electricity_bill or BILL_MIN))
            ttk.Scale(
                self.input_frame,
                from_=BILL_MIN,
                to=BILL_MAX,
                variable=scale_var,
                command=lambda value: self.controller.update_field(step.field, snap_bill_amount(float(value))),
            ).grid(row=0, column=0, columnspan=3, sticky="ew")
            ttk.Label(self.input_frame, text=bill_label(str(BILL_MIN))).grid(row=1, column=0, sticky="w")
            ttk.Label(self.input_frame, textvariable=self._bill_var).grid(row=1, column=1)
            ttk.Label(self.input_frame, text=f"{bill_label(str(BILL_MAX))}+").grid(row=1, column=2, sticky="e")
        elif step.kind is InputKind.ADDRESS:
            variable = tk.StringVar(value=answers.address)
            entry = ttk.Entry(self.input_frame, textvariable=variable)
            entry.grid(row=0, column=0, sticky="ew")
            entry.bind("<KeyRelease>", lambda _event: self._on_address_typed(variable.get()))
            entry.focus_set()
            listbox = tk.Listbox(self.input_frame, height=5, activestyle="dotbox")
            listbox.grid(row=1, column=0, sticky="ew", pady=(4, 0))
            listbox.bind("<<ListboxSelect>>", self._on_suggestion_selected)
            self._suggestion_list = listbox
            self._field_var = variable
        elif step.kind is InputKind.FILE:
            ttk.Label(self.input_frame, textvariable=self._attachment_var).grid(row=0, column=0, sticky="w")
            ttk.Button(self.input_frame, text="Upload bill", command=self.browse_attachment).grid(row=0, column=1, padx=4)
            ttk.Button(self.input_frame, text="Remove", command=lambda: self.controller.set_attachment(None)).grid(row=0, column=2)
            ttk.Label(self.input_frame, text="PDF or image up to 10MB").grid(row=1, column=0, sticky="w", pady=(4, 0))
        else:
            variable = tk.StringVar(value=getattr(answers, step.field))
            entry = ttk.Entry(self.input_frame, textvariable=variable)
            entry.grid(row=0, column=0, sticky="ew")
            entry.focus_set()
            variable.trace_add("write", lambda *_: self._on_text_changed(step.field, variable))
            self._field_var = variable
            if step.placeholder:
                ttk.Label(self.input_frame, text=f"e.g. {step.placeholder}").grid(row=1, column=0, sticky="w")

    # ------------------------------------------------------------------
    def refresh(self) -> None:
        controller = self.controller
        if controller.state is FunnelState.COMPLETE:
            self.step_frame.grid_remove()
            self.complete_frame.grid(row=2, column=0, sticky="nsew")
            return

        self.complete_frame.grid_remove()
        self.step_frame.grid()
        step = controller.current_step
        index = controller.session.step_index
        if self._rendered_step != index:
            self.question_var.set(step.question)
            self.subtext_var.set(step.subtext or "")
            self._render_input(step)
            self._rendered_step = index

        self._sync_field(step)
        self._bill_var.set(bill_label(controller.answers.electricity_bill))
        self._attachment_var.set(describe_attachment(controller.answers.attachment))
        self.progress_var.set(index + 1)
        self.progress_text_var.set(progress_text(index, controller.step_count))
        self.error_var.set(controller.error or "")

        submitting = controller.state is FunnelState.SUBMITTING
        self.button_text_var.set("Submitting..." if submitting else advance_button_text(controller.is_last_step))
        self.advance_button.state(["disabled"] if submitting else ["!disabled"])

    def _sync_field(self, step: StepDefinition) -> None:
        if self._field_var is None or step.kind is InputKind.ADDRESS:
            return
        value = getattr(self.controller.answers, step.field)
        if step.kind is InputKind.SELECT:
            value = step.label_for(value) or ""
        if self._field_var.get() != value:
            self._syncing = True
            try:
                self._field_var.set(value)
            finally:
                self._syncing = False

    # ------------------------------------------------------------------
    def advance(self) -> None:
        self.controller.advance()

    def _on_text_changed(self, field: str, variable: tk.StringVar) -> None:
        if self._syncing:
            return
        self.controller.update_field(field, variable.get())

    def _on_address_typed(self, text: str) -> None:
        if text == self.controller.answers.address:
            return
        self.controller.set_address(text, confirmed=False)
        self.lookups.suggest(text, self._show_suggestions)

    def _show_suggestions(self, suggestions: List[AddressSuggestion]) -> None:
        self._suggestions = suggestions
        if self._suggestion_list is not None:
            self._suggestion_list.delete(0, "end")
            for suggestion in self._suggestions:
                self._suggestion_list.insert("end", suggestion.description)

    def _on_suggestion_selected(self, _event: object) -> None:
        if self._suggestion_list is None:
            return
        selection = self._suggestion_list.curselection()
        if not selection or selection[0] >= len(self._suggestions):
            return
        self.lookups.resolve(self._suggestions[selection[0]], self._on_address_resolved)

    def _on_address_resolved(self, formatted: Optional[str]) -> None:
        if not formatted:
            LOGGER.info("Selected address could not be resolved")
            return
        self.controller.set_address(formatted, confirmed=True)
        if self._field_var is not None:
            self._field_var.set(formatted)
        if self._suggestion_list is not None:
            self._suggestion_list.delete(0, "end")
        self._suggestions = []

    def browse_attachment(self) -> None:
        path = filedialog.askopenfilename(filetypes=FILE_TYPES)
        if not path:
            return
        try:
            attachment = Attachment.from_path(Path(path))
        except OSError as exc:  # pragma: no cover - GUI surface
            messagebox.showerror("Upload failed", str(exc))
            return
        self.controller.set_attachment(attachment)

    # ------------------------------------------------------------------
    def _poll_queue(self) -> None:
        try:
            self.runner.drain()
            self.lookups.drain()
        finally:
            self.root.after(100, self._poll_queue)

    def on_close(self) -> None:
        if self.controller.state is FunnelState.SUBMITTING:
            if not messagebox.askyesno("Quit", "Your details are still being submitted. Quit anyway?"):
                return
        self.controller.close()
        self.runner.shutdown()
        self.lookups.shutdown()
        self.root.destroy()


def main(gateway: Gateway, address_lookup: AddressLookup, *, disqualify_delay: float = 0.5) -> None:
    root = tk.Tk()
    FunnelApp(root, gateway, address_lookup, disqualify_delay=disqualify_delay)
    root.mainloop()


if __name__ == "__main__":  # pragma: no cover - manual launch
    from ..config import load_settings
    from ..factory import build_address_lookup, build_gateway

    _settings = load_settings()
    main(build_gateway(_settings), build_address_lookup(_settings), disqualify_delay=_settings.disqualify_delay_seconds)
