"""Data models shared by the funnel controller, the gateway, and the user surfaces."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


# --- Answer Models ---

class HomeOwnership:
    """Values accepted by the home ownership question."""

    OWN = "own"
    RENT = "rent"
    OTHER = "other"


DEFAULT_ELECTRICITY_BILL = "400"
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024

_EXTRA_CONTENT_TYPES = {
    ".heic": "image/heic",
    ".heif": "image/heic",
}


@dataclass(slots=True)
class Attachment:
    """A locally selected file that will be staged before the record is written."""

    filename: str
    content_type: str
    size: int
    data: bytes = field(default=b"", repr=False)

    @classmethod
    def from_path(cls, path: str | Path, *, max_bytes: int = MAX_ATTACHMENT_BYTES) -> "Attachment":
        """Describe a local file, reading its bytes only when it is within ``max_bytes``.

        An oversized file comes back with its real ``size`` and empty ``data`` so
        validation can reject it without the content ever being loaded.
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(file_path)
        size = file_path.stat().st_size
        data = file_path.read_bytes() if size <= max_bytes else b""
        return cls(
            filename=file_path.name,
            content_type=guess_content_type(file_path.name),
            size=size,
            data=data,
        )


def guess_content_type(filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix in _EXTRA_CONTENT_TYPES:
        return _EXTRA_CONTENT_TYPES[suffix]
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


@dataclass(slots=True)
class AnswerSet:
    """The single record being filled in during one funnel session."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    home_ownership: str = ""
    electricity_bill: str = DEFAULT_ELECTRICITY_BILL
    attachment: Optional[Attachment] = None

    def full_name(self) -> str:
        return " ".join(filter(None, [self.first_name.strip(), self.last_name.strip()]))

    def reset(self) -> None:
        """Restore every answer to its default, keeping the same instance."""

        defaults = AnswerSet()
        for item in fields(self):
            setattr(self, item.name, getattr(defaults, item.name))


# --- Step Definitions ---

class InputKind(str, Enum):
    """Kinds of input widget a step can ask for."""

    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    ADDRESS = "address"
    SELECT = "select"
    RANGE = "range"
    FILE = "file"


@dataclass(frozen=True)
class Choice:
    value: str
    label: str


@dataclass(frozen=True)
class StepDefinition:
    """One question of the funnel."""

    question: str
    field: str
    kind: InputKind
    subtext: Optional[str] = None
    placeholder: Optional[str] = None
    choices: Tuple[Choice, ...] = ()

    @property
    def required(self) -> bool:
        return self.kind is not InputKind.FILE

    def label_for(self, value: str) -> Optional[str]:
        for choice in self.choices:
            if choice.value == value:
                return choice.label
        return None


# --- Session State ---

class FunnelState(str, Enum):
    ACTIVE = "active"
    SUBMITTING = "submitting"
    COMPLETE = "complete"


@dataclass
class SessionState:
    """Ephemeral progress of the current funnel session."""

    step_index: int = 0
    error: Optional[str] = None
    submitting: bool = False
    complete: bool = False
    address_confirmed: bool = False

    @property
    def state(self) -> FunnelState:
        if self.complete:
            return FunnelState.COMPLETE
        if self.submitting:
            return FunnelState.SUBMITTING
        return FunnelState.ACTIVE
