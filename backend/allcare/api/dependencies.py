"""
API Dependencies

FastAPI dependency injection for the caller's identity and the
subscription services.

There is no authentication layer: the UI passes the signed-in user's
email in the ``X-User-Email`` header.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from allcare.infrastructure.payments import (
    PaymentProcessor,
    get_account_creation_processor,
    get_top_up_processor,
)
from allcare.infrastructure.store import DocumentStore, get_document_store
from allcare.services.checkout import PlanCheckoutService
from allcare.services.plan_catalog import PlanCatalog
from allcare.services.subscription_controller import SubscriptionController


logger = logging.getLogger(__name__)


async def get_current_user_email(
    x_user_email: Optional[str] = Header(None),
) -> str:
    """
    Extract the user's email from the ``X-User-Email`` header.

    Raises:
        HTTPException 401: header missing or not an email address
    """
    email = (x_user_email or "").strip()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Email header required",
        )
    if "@" not in email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user email",
        )
    return email


def get_store() -> DocumentStore:
    """Configured document store."""
    return get_document_store()


def get_top_up_payment_processor() -> PaymentProcessor:
    return get_top_up_processor()


def get_checkout_payment_processor() -> PaymentProcessor:
    return get_account_creation_processor()


async def get_subscription_controller(
    user_email: str = Depends(get_current_user_email),
    store: DocumentStore = Depends(get_store),
    processor: PaymentProcessor = Depends(get_top_up_payment_processor),
) -> SubscriptionController:
    """Controller bound to the caller, with their subscription loaded."""
    controller = SubscriptionController(user_email, store, payment_processor=processor)
    await controller.fetch_subscription()
    return controller


def get_plan_catalog(store: DocumentStore = Depends(get_store)) -> PlanCatalog:
    return PlanCatalog(store)


def get_checkout_service(
    store: DocumentStore = Depends(get_store),
    processor: PaymentProcessor = Depends(get_checkout_payment_processor),
) -> PlanCheckoutService:
    return PlanCheckoutService(store, payment_processor=processor)
