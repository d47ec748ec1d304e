"""
Simulated Payment Processing

No payment gateway is integrated: charges are simulated with an
artificial delay and a fixed success probability. Callers inject
any PaymentProcessor in place of the simulated one.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

from allcare.config.settings import get_settings
from allcare.domain.card_validation import card_last4


logger = logging.getLogger(__name__)


class PaymentProcessor(ABC):
    """Charges an external payment instrument."""

    @abstractmethod
    async def process_payment(
        self,
        amount: float,
        payment_method: str,
        card_number: str = "",
    ) -> bool:
        """
        Attempt a charge.

        Args:
            amount: Amount to charge
            payment_method: Payment method label
            card_number: Card number for card payments (only last 4 logged)

        Returns:
            True if the charge succeeded
        """
        pass


class SimulatedPaymentProcessor(PaymentProcessor):
    """
    Waits ``delay_seconds`` then succeeds with probability ``success_rate``.

    Args:
        success_rate: Probability of success in [0, 1]
        delay_seconds: Artificial processing delay
        rng: Random source, seeded in tests for reproducible outcomes
    """

    def __init__(
        self,
        success_rate: float,
        delay_seconds: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be between 0 and 1, got {success_rate}")
        self.success_rate = success_rate
        self.delay_seconds = delay_seconds
        self._rng = rng or random.Random()

    async def process_payment(
        self,
        amount: float,
        payment_method: str,
        card_number: str = "",
    ) -> bool:
        last4 = card_last4(card_number)
        logger.info(
            f"Processing simulated payment of {amount:.2f} via {payment_method}"
            + (f" (card ending {last4})" if last4 else "")
        )

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        success = self._rng.random() < self.success_rate
        if not success:
            logger.warning(f"Simulated payment of {amount:.2f} via {payment_method} declined")
        return success


# =============================================================================
# Providers
# =============================================================================

@lru_cache
def get_top_up_processor() -> PaymentProcessor:
    """Processor for wallet top-ups."""
    settings = get_settings()
    return SimulatedPaymentProcessor(
        success_rate=settings.top_up_success_rate,
        delay_seconds=settings.payment_processing_delay_seconds,
    )


@lru_cache
def get_account_creation_processor() -> PaymentProcessor:
    """Processor for the plan checkout taken when an account subscribes."""
    settings = get_settings()
    return SimulatedPaymentProcessor(
        success_rate=settings.account_creation_success_rate,
        delay_seconds=settings.payment_processing_delay_seconds,
    )
