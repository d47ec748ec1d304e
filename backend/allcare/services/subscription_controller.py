"""
Subscription Lifecycle Controller

Orchestrates one user's subscription: fetch, create, wallet top-up,
wallet payment and the auto-payment flag. Every successful mutation
ends with a whole-document overwrite of the subscription in the store.

Public operations never raise. Failures resolve to a falsy return value
and a human-readable ``error_message`` which the caller clears with
``clear_error()``.
"""

import logging
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from allcare.config.settings import get_settings
from allcare.domain.card_validation import CardDetails, validate_card_details
from allcare.domain.subscription import (
    DEFAULT_PAYMENT_DESCRIPTION,
    DEFAULT_PAYMENT_RECIPIENT,
    Subscription,
    calculate_next_payment_date,
    normalize_user_key,
    subscription_path,
    validate_amount,
)
from allcare.infrastructure.exceptions import (
    CardValidationError,
    InsufficientBalanceError,
    ValidationError,
)
from allcare.infrastructure.payments import PaymentProcessor, get_top_up_processor
from allcare.infrastructure.store import DocumentStore


logger = logging.getLogger(__name__)


CARD_PAYMENT_METHODS = frozenset({"card", "credit", "debit"})

NO_SUBSCRIPTION_MESSAGE = "No subscription found. Please create a subscription first."
NO_SUBSCRIPTION_SHORT_MESSAGE = "No subscription found."
FETCH_FAILED_MESSAGE = "Failed to fetch subscription."
ADD_FAILED_MESSAGE = "Failed to add subscription."
UPDATE_FAILED_MESSAGE = "Failed to update subscription."
AUTO_PAYMENT_FAILED_MESSAGE = "Failed to update auto-payment status."
TOP_UP_FAILED_MESSAGE = "Failed to top up wallet."
PAYMENT_FAILED_MESSAGE = "Failed to process payment."
CARD_DETAILS_REQUIRED_MESSAGE = "Card details are required for card payments."
PROCESSING_FAILED_MESSAGE = (
    "Payment processing failed. Please try again or use a different card."
)


def is_card_payment(payment_method: Optional[str]) -> bool:
    return (payment_method or "").strip().lower() in CARD_PAYMENT_METHODS


class SubscriptionController:
    """
    Subscription and wallet operations for a single user.

    Args:
        user_email: Identity the controller is bound to
        store: Document store holding ``paymentsubscriptions``
        payment_processor: Charges top-ups (simulated top-up processor by default)
        default_wallet_balance: Starting balance for new subscriptions
    """

    def __init__(
        self,
        user_email: str,
        store: DocumentStore,
        payment_processor: Optional[PaymentProcessor] = None,
        default_wallet_balance: Optional[float] = None,
    ):
        settings = get_settings()
        self.user_email = user_email
        self.user_key = normalize_user_key(user_email)
        self.path = subscription_path(user_email)
        self.subscription: Optional[Subscription] = None
        self.error_message = ""

        self._store = store
        self._payment_processor = payment_processor or get_top_up_processor()
        self._default_wallet_balance = (
            settings.default_wallet_balance
            if default_wallet_balance is None
            else default_wallet_balance
        )
        self._history_limit = settings.transaction_history_limit

    # =========================================================================
    # Persistence
    # =========================================================================

    async def persist(self, subscription: Subscription) -> None:
        """Overwrite the user's whole subscription document."""
        await self._store.set(self.path, subscription.to_document())

    async def _persist_or_rollback(
        self,
        snapshot: Subscription,
        failure_message: str = UPDATE_FAILED_MESSAGE,
    ) -> bool:
        """
        Persist the in-memory subscription.

        On failure the in-memory record is restored to ``snapshot``.
        """
        try:
            await self.persist(self.subscription)
            return True
        except Exception as e:
            logger.error(f"Failed to persist subscription for {self.user_key}: {e}")
            self.subscription = snapshot
            self.error_message = failure_message
            return False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def fetch_subscription(self) -> Optional[Subscription]:
        """
        Load the user's subscription from the store.

        Returns:
            The subscription, or None if absent or unreadable
        """
        try:
            data = await self._store.get(self.path)
        except Exception as e:
            logger.error(f"Failed to fetch subscription for {self.user_key}: {e}")
            self.error_message = FETCH_FAILED_MESSAGE
            return None

        if not data:
            return None

        try:
            self.subscription = Subscription.from_document(data)
        except Exception as e:
            logger.error(f"Stored subscription for {self.user_key} is malformed: {e}")
            self.error_message = FETCH_FAILED_MESSAGE
            return None

        return self.subscription

    async def add_subscription(
        self,
        payment_method: Optional[str] = None,
        card_name: str = "",
        card_number: str = "",
        expiry_date: str = "",
        cvv: str = "",
        subscription_plan: Optional[int] = None,
    ) -> bool:
        """
        Create a new subscription, overwriting any existing one.

        Card fields are stored as given; validating them is the caller's
        job before subscribing.

        Returns:
            True if the subscription was created and persisted
        """
        try:
            subscription = Subscription.create(
                payment_method=payment_method or "",
                card_name=card_name,
                card_number=card_number,
                expiry_date=expiry_date,
                cvv=cvv,
                subscription_plan=subscription_plan,
                wallet_balance=self._default_wallet_balance,
            )
        except ValidationError as e:
            self.error_message = e.message
            return False

        try:
            await self.persist(subscription)
        except Exception as e:
            logger.error(f"Failed to add subscription for {self.user_key}: {e}")
            self.error_message = ADD_FAILED_MESSAGE
            return False

        self.subscription = subscription
        logger.info(
            f"Created subscription {subscription.id} for {self.user_key} "
            f"(plan {subscription.subscription_plan})"
        )
        return True

    # =========================================================================
    # Wallet
    # =========================================================================

    async def top_up_wallet(
        self,
        amount: float,
        payment_method: str,
        card_details: Optional[Union[CardDetails, dict[str, Any]]] = None,
    ) -> bool:
        """
        Credit the wallet after a (simulated) external charge.

        Validation and the charge both happen before the subscription is
        touched, so a failure leaves it unchanged.

        Args:
            amount: Amount to add, must be positive
            payment_method: ``card``/``credit``/``debit`` require card details
            card_details: Card number, expiry date and CVV

        Returns:
            True if the wallet was credited and persisted
        """
        if not self.subscription:
            self.error_message = NO_SUBSCRIPTION_MESSAGE
            return False

        try:
            validate_amount(amount)
        except ValidationError as e:
            self.error_message = e.message
            return False

        try:
            card = CardDetails.model_validate(card_details or {})
        except PydanticValidationError as e:
            logger.info(f"Rejected malformed card details for {self.user_key}: {e.error_count()} errors")
            self.error_message = CARD_DETAILS_REQUIRED_MESSAGE
            return False

        if is_card_payment(payment_method):
            if not card.is_complete:
                self.error_message = CARD_DETAILS_REQUIRED_MESSAGE
                return False
            try:
                validate_card_details(card.card_number, card.expiry_date, card.cvv)
            except CardValidationError as e:
                self.error_message = e.message
                return False

        try:
            charged = await self._payment_processor.process_payment(
                amount, payment_method, card.card_number
            )
        except Exception as e:
            logger.error(f"Payment processor error for {self.user_key}: {e}")
            self.error_message = TOP_UP_FAILED_MESSAGE
            return False

        if not charged:
            self.error_message = PROCESSING_FAILED_MESSAGE
            return False

        snapshot = self.subscription.model_copy(deep=True)
        self.subscription.add_to_wallet(amount, payment_method, card.card_number)
        if not await self._persist_or_rollback(snapshot):
            return False

        logger.info(
            f"Topped up {amount:.2f} for {self.user_key}, "
            f"balance {self.subscription.wallet_balance:.2f}"
        )
        return True

    async def make_payment(
        self,
        amount: float,
        description: str = DEFAULT_PAYMENT_DESCRIPTION,
        recipient: str = DEFAULT_PAYMENT_RECIPIENT,
    ) -> bool:
        """
        Pay from the wallet.

        Returns:
            True if the wallet was debited and persisted; False when there
            is no subscription, the amount is invalid or exceeds the balance
        """
        if not self.subscription:
            self.error_message = NO_SUBSCRIPTION_SHORT_MESSAGE
            return False

        snapshot = self.subscription.model_copy(deep=True)
        try:
            self.subscription.make_payment(amount, description, recipient)
        except (InsufficientBalanceError, ValidationError) as e:
            logger.info(f"Wallet payment refused for {self.user_key}: {e.message}")
            self.error_message = e.message or PAYMENT_FAILED_MESSAGE
            return False

        return await self._persist_or_rollback(snapshot)

    async def toggle_auto_payment(self) -> bool:
        """Flip the auto-payment flag and persist it."""
        if not self.subscription:
            self.error_message = NO_SUBSCRIPTION_SHORT_MESSAGE
            return False

        snapshot = self.subscription.model_copy(deep=True)
        self.subscription.auto_payment = not self.subscription.auto_payment
        return await self._persist_or_rollback(snapshot, AUTO_PAYMENT_FAILED_MESSAGE)

    # =========================================================================
    # Accessors
    # =========================================================================

    @staticmethod
    def calculate_next_payment_date(plan: Any) -> str:
        """Next renewal date (ISO) for a plan tier, counted from today."""
        return calculate_next_payment_date(plan)

    def get_wallet_balance(self) -> float:
        return self.subscription.wallet_balance if self.subscription else 0

    def has_sufficient_balance(self, amount: float) -> bool:
        if not self.subscription:
            return False
        return self.subscription.has_sufficient_balance(amount)

    def get_transaction_history(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Most recent top-ups and payments, newest first."""
        if not self.subscription:
            return []
        return self.subscription.get_recent_transactions(
            self._history_limit if limit is None else limit
        )

    def get_error_message(self) -> str:
        return self.error_message

    def clear_error(self) -> None:
        self.error_message = ""
