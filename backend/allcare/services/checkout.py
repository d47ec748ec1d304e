"""
Plan Checkout

Payment flow taken when an account subscribes to a membership plan:
a free plan starts a trial straight away, a paid plan is charged through
the account-creation processor before the subscription is created.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from allcare.domain.card_validation import CardDetails, validate_card_details
from allcare.domain.plans import PlanDescriptor
from allcare.domain.subscription import Subscription, SubscriptionPlan
from allcare.infrastructure.exceptions import CardValidationError
from allcare.infrastructure.payments import PaymentProcessor, get_account_creation_processor
from allcare.infrastructure.store import DocumentStore
from allcare.services.subscription_controller import SubscriptionController, is_card_payment


logger = logging.getLogger(__name__)


TRIAL_PAYMENT_METHOD = "trial"
MISSING_CARD_DETAILS_MESSAGE = "Please fill in all card details"
TRIAL_FAILED_MESSAGE = "Failed to start free trial"
PAYMENT_FAILED_MESSAGE = "Payment failed"


@dataclass
class CheckoutResult:
    """Outcome of a plan checkout."""
    success: bool
    subscription: Optional[Subscription] = None
    error: str = ""


class PlanCheckoutService:
    """
    Subscribes a user to a plan.

    Args:
        store: Document store for subscriptions
        payment_processor: Charges paid plans (account-creation processor by default)
    """

    def __init__(
        self,
        store: DocumentStore,
        payment_processor: Optional[PaymentProcessor] = None,
    ):
        self._store = store
        self._payment_processor = payment_processor or get_account_creation_processor()

    async def checkout(
        self,
        user_email: str,
        plan: PlanDescriptor,
        payment_method: str = "card",
        card_details: Optional[Union[CardDetails, dict[str, Any]]] = None,
    ) -> CheckoutResult:
        """
        Run the checkout for one plan.

        Returns:
            CheckoutResult with the created subscription or the failure reason
        """
        controller = SubscriptionController(user_email, self._store)

        if plan.is_free:
            created = await controller.add_subscription(
                payment_method=TRIAL_PAYMENT_METHOD,
                subscription_plan=SubscriptionPlan.FREE_TRIAL,
            )
            if not created:
                return CheckoutResult(False, error=controller.error_message or TRIAL_FAILED_MESSAGE)
            logger.info(f"Started free trial for {controller.user_key}")
            return CheckoutResult(True, subscription=controller.subscription)

        try:
            card = CardDetails.model_validate(card_details or {})
        except PydanticValidationError:
            return CheckoutResult(False, error=MISSING_CARD_DETAILS_MESSAGE)

        if is_card_payment(payment_method):
            if not (card.card_name and card.is_complete):
                return CheckoutResult(False, error=MISSING_CARD_DETAILS_MESSAGE)
            try:
                validate_card_details(card.card_number, card.expiry_date, card.cvv)
            except CardValidationError as e:
                return CheckoutResult(False, error=e.message)

        try:
            charged = await self._payment_processor.process_payment(
                plan.price, payment_method, card.card_number
            )
        except Exception as e:
            logger.error(f"Checkout charge failed for {controller.user_key}: {e}")
            charged = False

        if not charged:
            return CheckoutResult(False, error=PAYMENT_FAILED_MESSAGE)

        created = await controller.add_subscription(
            payment_method=payment_method,
            card_name=card.card_name,
            card_number=card.card_number,
            expiry_date=card.expiry_date,
            cvv=card.cvv,
            subscription_plan=plan.tier,
        )
        if not created:
            return CheckoutResult(False, error=controller.error_message or PAYMENT_FAILED_MESSAGE)

        logger.info(f"Subscribed {controller.user_key} to {plan.title}")
        return CheckoutResult(True, subscription=controller.subscription)
