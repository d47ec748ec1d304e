"""
Subscription API Routes

REST endpoints the subscription, wallet and checkout screens call.
Each request gets a controller bound to the caller; failed operations
surface the controller's error message as the HTTP error detail.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from allcare.domain.card_validation import CardDetails, mask_card_number
from allcare.domain.subscription import (
    DEFAULT_PAYMENT_DESCRIPTION,
    DEFAULT_PAYMENT_RECIPIENT,
    Subscription,
)
from allcare.infrastructure.exceptions import NotFoundError
from allcare.api.dependencies import (
    get_checkout_service,
    get_current_user_email,
    get_plan_catalog,
    get_subscription_controller,
)
from allcare.services.checkout import PAYMENT_FAILED_MESSAGE, PlanCheckoutService
from allcare.services.plan_catalog import PlanCatalog
from allcare.services.subscription_controller import (
    ADD_FAILED_MESSAGE,
    AUTO_PAYMENT_FAILED_MESSAGE,
    FETCH_FAILED_MESSAGE,
    PROCESSING_FAILED_MESSAGE,
    SubscriptionController,
    TOP_UP_FAILED_MESSAGE,
    UPDATE_FAILED_MESSAGE,
)


logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class CreateSubscriptionRequest(BaseModel):
    """Request to create (or replace) the caller's subscription."""
    payment_method: str = ""
    card_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    subscription_plan: Optional[int] = None


class CheckoutRequest(BaseModel):
    """Request to subscribe to a catalog plan."""
    plan_id: str = Field(..., min_length=1)
    payment_method: str = "card"
    card_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


class TopUpRequest(BaseModel):
    """Request to add funds to the wallet."""
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    payment_method: str = Field(..., min_length=1)
    card_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


class PaymentRequest(BaseModel):
    """Request to pay from the wallet."""
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    description: str = DEFAULT_PAYMENT_DESCRIPTION
    recipient: str = DEFAULT_PAYMENT_RECIPIENT


class SubscriptionResponse(BaseModel):
    """Subscription view; card number masked, CVV never returned."""
    id: str
    active: bool
    auto_payment: bool
    subscription_plan: int
    payment_method: str
    payment_failed: bool
    card_name: str
    card_number_masked: str
    expiry_date: str
    wallet_balance: float
    next_payment_date: str
    start_date: str


class WalletResponse(BaseModel):
    """Wallet balance after an operation."""
    wallet_balance: float
    transactions: list[dict[str, Any]] = Field(default_factory=list)


class AutoPaymentResponse(BaseModel):
    auto_payment: bool


def _subscription_to_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=subscription.id,
        active=subscription.active,
        auto_payment=subscription.auto_payment,
        subscription_plan=subscription.subscription_plan,
        payment_method=subscription.payment_method,
        payment_failed=subscription.payment_failed,
        card_name=subscription.card_name,
        card_number_masked=mask_card_number(subscription.card_number),
        expiry_date=subscription.expiry_date,
        wallet_balance=subscription.wallet_balance,
        next_payment_date=subscription.next_payment_date,
        start_date=subscription.start_date,
    )


_SERVICE_UNAVAILABLE_MESSAGES = {
    FETCH_FAILED_MESSAGE,
    ADD_FAILED_MESSAGE,
    UPDATE_FAILED_MESSAGE,
    AUTO_PAYMENT_FAILED_MESSAGE,
    TOP_UP_FAILED_MESSAGE,
}


def _raise_controller_error(controller: SubscriptionController) -> None:
    """Translate the controller's error message into an HTTP error."""
    message = controller.get_error_message() or "Subscription operation failed"
    controller.clear_error()

    if message.startswith("No subscription found"):
        status_code = status.HTTP_404_NOT_FOUND
    elif message in _SERVICE_UNAVAILABLE_MESSAGES:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif message == PROCESSING_FAILED_MESSAGE:
        status_code = status.HTTP_402_PAYMENT_REQUIRED
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    raise HTTPException(status_code=status_code, detail=message)


# ============================================================================
# Subscription Endpoints
# ============================================================================

@router.get("/subscriptions/me", response_model=SubscriptionResponse)
async def get_my_subscription(
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """Get the caller's subscription."""
    if controller.subscription is None:
        if controller.get_error_message():
            _raise_controller_error(controller)
        raise HTTPException(status_code=404, detail="No subscription found.")
    return _subscription_to_response(controller.subscription)


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    request: CreateSubscriptionRequest,
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """
    Create the caller's subscription, replacing any existing one.

    Card details are stored as given; use /subscriptions/checkout for
    the validated, charged flow.
    """
    created = await controller.add_subscription(
        payment_method=request.payment_method,
        card_name=request.card_name,
        card_number=request.card_number,
        expiry_date=request.expiry_date,
        cvv=request.cvv,
        subscription_plan=request.subscription_plan,
    )
    if not created:
        _raise_controller_error(controller)
    return _subscription_to_response(controller.subscription)


@router.post("/subscriptions/checkout", response_model=SubscriptionResponse, status_code=201)
async def checkout_plan(
    request: CheckoutRequest,
    user_email: str = Depends(get_current_user_email),
    catalog: PlanCatalog = Depends(get_plan_catalog),
    service: PlanCheckoutService = Depends(get_checkout_service),
):
    """Subscribe the caller to a catalog plan (trial or paid)."""
    try:
        plan = await catalog.get_plan(request.plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    result = await service.checkout(
        user_email,
        plan,
        payment_method=request.payment_method,
        card_details=CardDetails(
            card_name=request.card_name,
            card_number=request.card_number,
            expiry_date=request.expiry_date,
            cvv=request.cvv,
        ),
    )
    if not result.success:
        status_code = 402 if result.error == PAYMENT_FAILED_MESSAGE else 400
        raise HTTPException(status_code=status_code, detail=result.error)

    return _subscription_to_response(result.subscription)


@router.post("/subscriptions/auto-payment/toggle", response_model=AutoPaymentResponse)
async def toggle_auto_payment(
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """Flip the caller's auto-payment flag."""
    if not await controller.toggle_auto_payment():
        _raise_controller_error(controller)
    return AutoPaymentResponse(auto_payment=controller.subscription.auto_payment)


# ============================================================================
# Wallet Endpoints
# ============================================================================

@router.get("/subscriptions/wallet", response_model=WalletResponse)
async def get_wallet(
    limit: Optional[int] = Query(None, ge=1, le=100),
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """Wallet balance and recent transactions."""
    if controller.subscription is None and controller.get_error_message():
        _raise_controller_error(controller)
    return WalletResponse(
        wallet_balance=controller.get_wallet_balance(),
        transactions=controller.get_transaction_history(limit),
    )


@router.get("/subscriptions/wallet/transactions", response_model=list[dict[str, Any]])
async def get_transactions(
    limit: int = Query(10, ge=1, le=100),
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """Recent top-ups and payments, newest first."""
    if controller.subscription is None and controller.get_error_message():
        _raise_controller_error(controller)
    return controller.get_transaction_history(limit)


@router.post("/subscriptions/wallet/top-up", response_model=WalletResponse)
async def top_up_wallet(
    request: TopUpRequest,
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """Add funds to the wallet through a (simulated) card or wallet charge."""
    topped_up = await controller.top_up_wallet(
        request.amount,
        request.payment_method,
        CardDetails(
            card_name=request.card_name,
            card_number=request.card_number,
            expiry_date=request.expiry_date,
            cvv=request.cvv,
        ),
    )
    if not topped_up:
        _raise_controller_error(controller)
    return WalletResponse(
        wallet_balance=controller.get_wallet_balance(),
        transactions=controller.get_transaction_history(1),
    )


@router.post("/subscriptions/wallet/payments", response_model=WalletResponse)
async def pay_from_wallet(
    request: PaymentRequest,
    controller: SubscriptionController = Depends(get_subscription_controller),
):
    """Pay for a purchase from the wallet."""
    paid = await controller.make_payment(
        request.amount,
        description=request.description,
        recipient=request.recipient,
    )
    if not paid:
        _raise_controller_error(controller)
    return WalletResponse(
        wallet_balance=controller.get_wallet_balance(),
        transactions=controller.get_transaction_history(1),
    )
