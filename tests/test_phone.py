import pytest

from app.core.phone import format_phone_number, mask_phone


@pytest.mark.parametrize("phone", ["9876543210", "9057290632", "0000000000", "1234567890"])
def test_ten_digit_numbers_get_default_country_code(phone):
    assert format_phone_number(phone) == "+91" + phone


@pytest.mark.parametrize("phone", ["+919876543210", "+14155550100", "+", "+abc"])
def test_numbers_with_plus_are_unchanged(phone):
    assert format_phone_number(phone) == phone


def test_twelve_digits_with_country_code_get_plus():
    assert format_phone_number("919876543210") == "+919876543210"


def test_twelve_digits_without_country_code_fall_through():
    assert format_phone_number("449876543210") == "+449876543210"


def test_malformed_input_is_prefixed_not_rejected():
    assert format_phone_number("98-76") == "+98-76"
    assert format_phone_number("91987") == "+91987"


def test_mask_phone_keeps_last_four_digits():
    assert mask_phone("+919876543210") == "*********3210"
    assert mask_phone("123") == "123"
    assert mask_phone("") == ""
