"""
Card Validation

Pure format checks for card payment details. No Luhn checksum is
applied.
"""

import re
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from allcare.domain.clock import utc_today
from allcare.infrastructure.exceptions import CardValidationError


CARD_NUMBER_MIN_LENGTH = 13
CARD_NUMBER_MAX_LENGTH = 19

_WHITESPACE = re.compile(r"\s+")
# Patterns are applied with fullmatch
_DIGITS = re.compile(r"[0-9]+")
_EXPIRY = re.compile(r"(0[1-9]|1[0-2])/([0-9]{2})")
_CVV = re.compile(r"[0-9]{3,4}")

INVALID_CARD_NUMBER_MESSAGE = "Invalid card number. Please check your card details."
INVALID_EXPIRY_MESSAGE = "Invalid expiry date. Please use MM/YY format."
INVALID_CVV_MESSAGE = "Invalid CVV. Please enter a 3 or 4 digit CVV."


def clean_card_number(raw: str) -> str:
    """Remove every whitespace character from a card number."""
    return _WHITESPACE.sub("", raw or "")


def validate_card_number(raw: str) -> bool:
    """All digits, 13 to 19 of them once whitespace is stripped."""
    cleaned = clean_card_number(raw)
    if not _DIGITS.fullmatch(cleaned):
        return False
    return CARD_NUMBER_MIN_LENGTH <= len(cleaned) <= CARD_NUMBER_MAX_LENGTH


def validate_expiry_date(raw: str, today: Optional[date] = None) -> bool:
    """
    Check an ``MM/YY`` expiry date against the current month.

    Years are compared as two-digit values, so century rollover is
    not handled.

    Args:
        raw: Expiry date as typed by the user
        today: Reference date (defaults to today in UTC)

    Returns:
        True if well formed and not in the past
    """
    match = _EXPIRY.fullmatch(raw or "")
    if not match:
        return False

    today = today or utc_today()
    exp_month = int(match.group(1))
    exp_year = int(match.group(2))
    current_year = today.year % 100

    if exp_year < current_year:
        return False
    if exp_year == current_year and exp_month < today.month:
        return False
    return True


def validate_cvv(raw: str) -> bool:
    """Exactly 3 or 4 digits."""
    return bool(_CVV.fullmatch(raw or ""))


def card_last4(raw: str) -> str:
    """Last four digits of a card number, or an empty string."""
    digits = re.sub(r"\D", "", raw or "")
    return digits[-4:]


def mask_card_number(raw: str) -> str:
    """Display form of a card number that only reveals the last four digits."""
    last4 = card_last4(raw)
    if not last4:
        return ""
    return f"•••• {last4}"


def validate_card_details(
    card_number: str,
    expiry_date: str,
    cvv: str,
    today: Optional[date] = None,
) -> None:
    """
    Run the three card checks in order, stopping at the first failure.

    Raises:
        CardValidationError: with a message specific to the failing field
    """
    if not validate_card_number(card_number):
        raise CardValidationError(INVALID_CARD_NUMBER_MESSAGE, field="card_number")
    if not validate_expiry_date(expiry_date, today=today):
        raise CardValidationError(INVALID_EXPIRY_MESSAGE, field="expiry_date")
    if not validate_cvv(cvv):
        raise CardValidationError(INVALID_CVV_MESSAGE, field="cvv")


class CardDetails(BaseModel):
    """Card fields as submitted with a payment."""

    # Forms may submit the number and CVV as JSON numbers
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    card_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""

    @property
    def is_complete(self) -> bool:
        """Number, expiry and CVV are all present."""
        return bool(self.card_number and self.expiry_date and self.cvv)
