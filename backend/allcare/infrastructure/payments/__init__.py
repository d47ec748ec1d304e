"""
Payments Infrastructure Module

Simulated payment processing used by wallet top-ups and plan checkout.
"""

from allcare.infrastructure.payments.processor import (
    PaymentProcessor,
    SimulatedPaymentProcessor,
    get_account_creation_processor,
    get_top_up_processor,
)

__all__ = [
    "PaymentProcessor",
    "SimulatedPaymentProcessor",
    "get_account_creation_processor",
    "get_top_up_processor",
]
