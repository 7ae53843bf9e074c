from __future__ import annotations

import pytest

from solar_funnel.formatting import (
    format_file_size,
    format_phone_number,
    validate_email,
    validate_phone_number,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("0412345678", "+61 412 345 678"),
        ("61412345678", "+61 412 345 678"),
        ("+61 412 345 678", "+61 412 345 678"),
        ("(04) 1234-5678", "+61 412 345 678"),
        ("", ""),
        ("0", "+61"),
        ("04", "+614"),
        ("0412", "+61 412"),
    ],
)
def test_format_phone_number_groups_digits(raw: str, expected: str) -> None:
    assert format_phone_number(raw) == expected


def test_format_phone_number_is_stable_when_reapplied() -> None:
    once = format_phone_number("0412 345 678")
    assert format_phone_number(once) == once


def test_format_phone_number_keeps_digits_and_a_single_plus() -> None:
    for raw in ["0412345678", "+61412345678", "612", "04123", "999999999999999"]:
        formatted = format_phone_number(raw)
        assert formatted.count("+") <= 1
        assert set(formatted) <= set("+0123456789 ")
        digits = "".join(ch for ch in formatted if ch.isdigit())
        expected = "".join(ch for ch in raw if ch.isdigit())
        if expected.startswith("0"):
            expected = "61" + expected[1:]
        assert digits == expected


@pytest.mark.parametrize(
    "value",
    ["0412345678", "+61412345678", "61412345678", "+61 412 345 678", "412345678"],
)
def test_validate_phone_number_accepts_mobiles(value: str) -> None:
    assert validate_phone_number(value)


@pytest.mark.parametrize(
    "value",
    ["", "123", "0300000000", "0212345678", "041234567", "04123456789", "+1 415 555 0100", "not a number"],
)
def test_validate_phone_number_rejects_other_numbers(value: str) -> None:
    assert not validate_phone_number(value)


def test_validate_email() -> None:
    assert validate_email("jane@example.com")
    assert not validate_email("jane@example")
    assert not validate_email("jane example@example.com")
    assert not validate_email("")


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5 MB"),
        (1234567, "1.18 MB"),
        (3 * 1024 ** 3, "3 GB"),
        (2048 * 1024 ** 3, "2048 GB"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


def test_format_file_size_rejects_negative_sizes() -> None:
    with pytest.raises(ValueError):
        format_file_size(-1)
