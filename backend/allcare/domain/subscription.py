"""
Subscription Domain Models

Domain models for the subscription and wallet bounded context.
Plan tiers, transaction records, the subscription entity and the
renewal cadence used by every collaborator.
"""

import math
import time
from datetime import date, datetime, timezone
from enum import IntEnum
from typing import Any, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from allcare.domain.card_validation import card_last4
from allcare.domain.clock import utc_timestamp, utc_today
from allcare.infrastructure.exceptions import (
    InsufficientBalanceError,
    ValidationError,
)


SUBSCRIPTIONS_COLLECTION = "paymentsubscriptions"
DEFAULT_WALLET_BALANCE = 100.00
DEFAULT_PAYMENT_DESCRIPTION = "Shopping Cart Purchase"
DEFAULT_PAYMENT_RECIPIENT = "AllCare Shop"

INVALID_AMOUNT_MESSAGE = "Amount must be greater than zero."
AMOUNT_PRECISION_MESSAGE = "Amount cannot have more than two decimal places."


class SubscriptionPlan(IntEnum):
    """Plan tiers as stored in ``subscriptionPlan``."""
    FREE_TRIAL = 0
    MONTHLY = 1
    ANNUAL = 2
    THREE_YEAR = 3


# =============================================================================
# Renewal Cadence (Business Logic)
# =============================================================================

PLAN_CADENCE = {
    SubscriptionPlan.FREE_TRIAL: relativedelta(days=15),
    SubscriptionPlan.MONTHLY: relativedelta(months=1),
    SubscriptionPlan.ANNUAL: relativedelta(years=1),
    SubscriptionPlan.THREE_YEAR: relativedelta(years=3),
}

# Unknown tiers renew on a 30 day cadence rather than failing
DEFAULT_CADENCE = relativedelta(days=30)


def _millis() -> int:
    return int(time.time() * 1000)


def calculate_next_payment_date(plan: Any, today: Optional[date] = None) -> str:
    """
    Compute the next renewal date for a plan tier.

    Args:
        plan: Plan tier (0 trial, 1 monthly, 2 annual, 3 three-year)
        today: Reference date (defaults to today in UTC)

    Returns:
        ISO calendar date string (YYYY-MM-DD)
    """
    today = today or utc_today()
    try:
        cadence = PLAN_CADENCE[SubscriptionPlan(plan)]
    except ValueError:
        cadence = DEFAULT_CADENCE
    return (today + cadence).isoformat()


def normalize_user_key(user_email: str) -> str:
    """Make an email safe as a store path segment (dots become commas)."""
    return user_email.replace(".", ",")


def subscription_path(user_email: str) -> str:
    """Store path of a user's subscription document."""
    return f"{SUBSCRIPTIONS_COLLECTION}/{normalize_user_key(user_email)}"


def validate_amount(amount: float) -> None:
    """
    Check a wallet amount: finite, positive and in whole cents.

    Raises:
        ValidationError: with the message of the failed check
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError(INVALID_AMOUNT_MESSAGE)
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError(INVALID_AMOUNT_MESSAGE)
    if round(amount, 2) != amount:
        raise ValidationError(AMOUNT_PRECISION_MESSAGE, {"amount": amount})


# =============================================================================
# Domain Entities
# =============================================================================

class DocumentModel(BaseModel):
    """Base for models persisted as camelCase store documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored document shape."""
        return self.model_dump(by_alias=True, mode="json")


class TopUpTransaction(DocumentModel):
    """A credit to the wallet."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=lambda: f"topup_{_millis()}")
    amount: float = 0.0
    payment_method: str = ""
    card_last4: str = ""
    previous_balance: float = 0.0
    new_balance: float = 0.0
    timestamp: str = Field(default_factory=utc_timestamp)
    type: str = "topup"


class PaymentTransaction(DocumentModel):
    """A debit from the wallet against a described recipient."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=lambda: f"payment_{_millis()}")
    amount: float = 0.0
    description: str = ""
    recipient: str = ""
    previous_balance: float = 0.0
    new_balance: float = 0.0
    timestamp: str = Field(default_factory=utc_timestamp)
    type: str = "purchase"


class Subscription(DocumentModel):
    """Core subscription domain entity, one per user."""

    id: str = ""
    active: bool = False
    auto_payment: bool = False
    next_payment_date: str = ""
    payment_method: str = ""
    payment_failed: bool = False
    card_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    wallet_balance: float = 0.0
    top_up_history: list[TopUpTransaction] = Field(default_factory=list)
    payment_history: list[PaymentTransaction] = Field(default_factory=list)
    subscription_plan: int = 0
    start_date: str = ""

    @field_validator(
        "id", "next_payment_date", "payment_method", "card_name",
        "card_number", "expiry_date", "cvv", "start_date",
        mode="before",
    )
    @classmethod
    def _none_as_empty_string(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("active", "auto_payment", "payment_failed", mode="before")
    @classmethod
    def _none_as_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("wallet_balance", "subscription_plan", mode="before")
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("top_up_history", "payment_history", mode="before")
    @classmethod
    def _history_as_list(cls, value: Any) -> Any:
        # Entries pushed under generated keys arrive as a mapping
        if value is None:
            return []
        if isinstance(value, dict):
            return list(value.values())
        return value

    # =========================================================================
    # Factory
    # =========================================================================

    @classmethod
    def create(
        cls,
        payment_method: str,
        card_name: str = "",
        card_number: str = "",
        expiry_date: str = "",
        cvv: str = "",
        subscription_plan: Optional[int] = None,
        wallet_balance: float = DEFAULT_WALLET_BALANCE,
        today: Optional[date] = None,
    ) -> "Subscription":
        """
        Build a brand-new active subscription.

        Args:
            payment_method: Payment method label (required)
            card_name: Name on card, empty for non-card methods
            card_number: Card number, empty for non-card methods
            expiry_date: Card expiry (MM/YY)
            cvv: Card security code
            subscription_plan: Plan tier, free trial when absent
            wallet_balance: Starting wallet balance
            today: Reference date for start and renewal dates

        Returns:
            Subscription with empty histories
        """
        if not payment_method:
            raise ValidationError("Payment method is required.")

        today = today or utc_today()
        plan = subscription_plan if subscription_plan is not None else SubscriptionPlan.FREE_TRIAL

        return cls(
            id=f"sub_{_millis()}",
            active=True,
            auto_payment=False,
            next_payment_date=calculate_next_payment_date(plan, today=today),
            subscription_plan=int(plan),
            payment_method=payment_method,
            payment_failed=False,
            card_name=card_name or "",
            card_number=card_number or "",
            expiry_date=expiry_date or "",
            cvv=cvv or "",
            wallet_balance=round(wallet_balance, 2),
            top_up_history=[],
            payment_history=[],
            start_date=today.isoformat(),
        )

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Subscription":
        """Load a stored document, tolerating missing keys."""
        return cls.model_validate(data)

    # =========================================================================
    # Wallet
    # =========================================================================

    @property
    def card_last4(self) -> str:
        return card_last4(self.card_number)

    def add_to_wallet(
        self,
        amount: float,
        payment_method: str,
        card_number: str = "",
    ) -> TopUpTransaction:
        """Credit the wallet and record the top-up."""
        validate_amount(amount)

        previous_balance = self.wallet_balance
        new_balance = round(previous_balance + amount, 2)

        transaction = TopUpTransaction(
            amount=amount,
            payment_method=payment_method,
            card_last4=card_last4(card_number),
            previous_balance=previous_balance,
            new_balance=new_balance,
        )
        self.wallet_balance = new_balance
        self.top_up_history.append(transaction)
        return transaction

    def make_payment(
        self,
        amount: float,
        description: str = DEFAULT_PAYMENT_DESCRIPTION,
        recipient: str = DEFAULT_PAYMENT_RECIPIENT,
    ) -> PaymentTransaction:
        """
        Debit the wallet and record the payment.

        Raises:
            ValidationError: amount is not positive, finite and in whole cents
            InsufficientBalanceError: amount exceeds the balance; nothing changes
        """
        validate_amount(amount)
        if amount > self.wallet_balance:
            raise InsufficientBalanceError(
                balance=self.wallet_balance,
                requested=amount,
            )

        previous_balance = self.wallet_balance
        new_balance = round(previous_balance - amount, 2)

        transaction = PaymentTransaction(
            amount=amount,
            description=description,
            recipient=recipient,
            previous_balance=previous_balance,
            new_balance=new_balance,
        )
        self.wallet_balance = new_balance
        self.payment_history.append(transaction)
        return transaction

    def has_sufficient_balance(self, amount: float) -> bool:
        return self.wallet_balance >= amount

    def get_recent_transactions(self, limit: int = 10) -> list[dict[str, Any]]:
        """
        Merge top-ups and payments, newest first.

        Args:
            limit: Maximum number of transactions to return

        Returns:
            List of transaction documents
        """
        transactions = [
            {**t.to_document(), "type": "topup"} for t in self.top_up_history
        ] + [t.to_document() for t in self.payment_history]

        transactions.sort(key=lambda t: _parse_timestamp(t.get("timestamp")), reverse=True)
        return transactions[:max(limit, 0)]


def _parse_timestamp(value: Optional[str]) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
