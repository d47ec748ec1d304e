"""
Unit tests for card validation.

Covers the three format checks, their ordering in validate_card_details
and the masking helpers.
"""

import pytest
from datetime import date
from unittest.mock import patch

from allcare.domain.card_validation import (
    CardDetails,
    INVALID_CARD_NUMBER_MESSAGE,
    INVALID_CVV_MESSAGE,
    INVALID_EXPIRY_MESSAGE,
    card_last4,
    mask_card_number,
    validate_card_details,
    validate_card_number,
    validate_cvv,
    validate_expiry_date,
)
from allcare.infrastructure.exceptions import CardValidationError


TODAY = date(2025, 6, 15)


class TestValidateCardNumber:
    """Tests for validate_card_number."""

    def test_spaced_sixteen_digits_is_valid(self):
        assert validate_card_number("4111 1111 1111 1111") is True

    def test_letters_are_rejected(self):
        assert validate_card_number("abc123") is False

    @pytest.mark.parametrize("number", ["4" * 13, "4" * 19])
    def test_length_bounds_are_inclusive(self, number):
        assert validate_card_number(number) is True

    @pytest.mark.parametrize("number", ["4" * 12, "4" * 20, ""])
    def test_out_of_range_lengths_are_rejected(self, number):
        assert validate_card_number(number) is False

    def test_no_checksum_is_applied(self):
        """A number failing Luhn is still accepted."""
        assert validate_card_number("1234567890123") is True

    def test_dashes_are_not_stripped(self):
        assert validate_card_number("4111-1111-1111-1111") is False

    def test_non_ascii_digits_are_rejected(self):
        assert validate_card_number("\u0664" * 16) is False

    def test_trailing_newline_is_stripped_as_whitespace(self):
        assert validate_card_number("4111111111111111\n") is True

    def test_is_idempotent(self):
        results = {validate_card_number("4111 1111 1111 1111") for _ in range(5)}
        assert results == {True}


class TestValidateExpiryDate:
    """Tests for validate_expiry_date."""

    def test_invalid_month(self):
        assert validate_expiry_date("13/25", today=TODAY) is False

    def test_month_zero(self):
        assert validate_expiry_date("00/30", today=TODAY) is False

    @pytest.mark.parametrize("raw", ["1/30", "01/2030", "01-30", "0130", "", "12/99\n", " 12/99"])
    def test_malformed_formats(self, raw):
        assert validate_expiry_date(raw, today=TODAY) is False

    def test_past_year(self):
        assert validate_expiry_date("12/24", today=TODAY) is False

    def test_current_year_earlier_month(self):
        assert validate_expiry_date("05/25", today=TODAY) is False

    def test_current_month_is_still_valid(self):
        assert validate_expiry_date("06/25", today=TODAY) is True

    def test_future_date(self):
        assert validate_expiry_date("01/27", today=TODAY) is True

    def test_year_compared_mod_100(self):
        """Century rollover is not handled: 2100 reads as year 00."""
        assert validate_expiry_date("01/00", today=date(2099, 6, 1)) is False

    def test_defaults_to_utc_today(self):
        with patch("allcare.domain.card_validation.utc_today", return_value=TODAY) as clock:
            assert validate_expiry_date("05/25") is False
            assert validate_expiry_date("06/25") is True
        assert clock.call_count == 2


class TestValidateCVV:
    """Tests for validate_cvv."""

    @pytest.mark.parametrize("cvv", ["123", "1234"])
    def test_three_or_four_digits(self, cvv):
        assert validate_cvv(cvv) is True

    @pytest.mark.parametrize("cvv", ["12", "12345", "12a", "", " 123", "123\n", "\u0661\u0662\u0663"])
    def test_rejects_other_values(self, cvv):
        assert validate_cvv(cvv) is False


class TestValidateCardDetails:
    """validate_card_details stops at the first failing field."""

    def test_valid_details_pass(self):
        validate_card_details("4111111111111111", "12/30", "123", today=TODAY)

    def test_card_number_checked_first(self):
        with pytest.raises(CardValidationError) as exc_info:
            validate_card_details("abc", "13/25", "1", today=TODAY)
        assert exc_info.value.message == INVALID_CARD_NUMBER_MESSAGE
        assert exc_info.value.details == {"field": "card_number"}

    def test_expiry_checked_before_cvv(self):
        with pytest.raises(CardValidationError) as exc_info:
            validate_card_details("4111111111111111", "13/25", "1", today=TODAY)
        assert exc_info.value.message == INVALID_EXPIRY_MESSAGE

    def test_cvv_failure(self):
        with pytest.raises(CardValidationError) as exc_info:
            validate_card_details("4111111111111111", "12/30", "12", today=TODAY)
        assert exc_info.value.message == INVALID_CVV_MESSAGE


class TestMasking:
    """Only the last four digits are ever revealed."""

    def test_card_last4(self):
        assert card_last4("4111 1111 1111 1234") == "1234"

    def test_mask_card_number(self):
        masked = mask_card_number("4111 1111 1111 1234")
        assert masked.endswith("1234")
        assert "4111" not in masked

    def test_mask_empty_number(self):
        assert mask_card_number("") == ""


class TestCardDetails:
    """CardDetails accepts snake_case and camelCase keys."""

    def test_camel_case_keys(self):
        card = CardDetails.model_validate(
            {"cardNumber": "4111111111111111", "expiryDate": "12/30", "cvv": "123"}
        )
        assert card.card_number == "4111111111111111"
        assert card.is_complete is True

    def test_incomplete(self):
        card = CardDetails(card_number="4111111111111111")
        assert card.is_complete is False

    def test_numeric_fields_are_coerced_to_strings(self):
        card = CardDetails.model_validate(
            {"cardNumber": 4111111111111111, "expiryDate": "12/30", "cvv": 123}
        )
        assert card.card_number == "4111111111111111"
        assert card.cvv == "123"
        validate_card_details(card.card_number, card.expiry_date, card.cvv, today=TODAY)
