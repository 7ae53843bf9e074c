"""Pure helpers for normalising and checking contact details."""
from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")
_AU_MOBILE = re.compile(r"^(?:0|61|(?:\+61)?)4\d{8}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

COUNTRY_CODE = "61"
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def _digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def format_phone_number(value: str) -> str:
    """Return ``value`` as a grouped international Australian number.

    ``"0412345678"`` becomes ``"+61 412 345 678"``. The function is applied on
    every keystroke, so partial input is grouped as far as it goes and the
    result can be fed back in without changing.
    """

    digits = _digits(value)
    if digits.startswith("0"):
        digits = COUNTRY_CODE + digits[1:]

    formatted = digits
    if len(formatted) >= 2:
        formatted = "+" + formatted
    if len(formatted) >= 5:
        formatted = formatted[:3] + " " + formatted[3:]
    if len(formatted) >= 9:
        formatted = formatted[:7] + " " + formatted[7:]
    if len(formatted) >= 13:
        formatted = formatted[:11] + " " + formatted[11:]
    return formatted


def validate_phone_number(value: str) -> bool:
    """Return ``True`` for an Australian mobile number in local or international form."""

    return bool(_AU_MOBILE.match(_digits(value)))


def validate_email(value: str) -> bool:
    return bool(_EMAIL.match(value or ""))


def format_file_size(size: int) -> str:
    """Render a byte count using the largest whole base-1024 unit, e.g. ``"1.5 KB"``."""

    if size < 0:
        raise ValueError("File size cannot be negative")
    if size == 0:
        return "0 Bytes"

    value = float(size)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"
