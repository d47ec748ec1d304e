"""
Test configuration and fixtures for AllCare Subscriptions.

Provides the in-memory store, deterministic payment processors and
seeded subscription documents shared by unit and integration tests.
"""

import pytest
from datetime import date
from typing import Optional

from fastapi.testclient import TestClient

from allcare.domain.subscription import Subscription, subscription_path
from allcare.infrastructure.exceptions import StoreError
from allcare.infrastructure.payments import PaymentProcessor
from allcare.infrastructure.store import InMemoryDocumentStore
from allcare.services.subscription_controller import SubscriptionController


USER_EMAIL = "mary.tan@example.com"


# =============================================================================
# Test Doubles
# =============================================================================

class StaticPaymentProcessor(PaymentProcessor):
    """Payment processor with a fixed outcome that records its calls."""

    def __init__(self, outcome: bool = True):
        self.outcome = outcome
        self.calls = []

    async def process_payment(self, amount, payment_method, card_number=""):
        self.calls.append((amount, payment_method, card_number))
        return self.outcome


class FlakyDocumentStore(InMemoryDocumentStore):
    """In-memory store whose reads or writes can be switched to fail."""

    def __init__(self, initial: Optional[dict] = None):
        super().__init__(initial)
        self.fail_get = False
        self.fail_set = False
        self.set_calls = []

    async def get(self, path):
        if self.fail_get:
            raise StoreError("store offline", operation="get", path=path)
        return await super().get(path)

    async def set(self, path, document):
        if self.fail_set:
            raise StoreError("store offline", operation="set", path=path)
        self.set_calls.append((path, document))
        await super().set(path, document)


def seeded_tree(user_email: str = USER_EMAIL, **overrides) -> dict:
    """Store tree holding one subscription document for ``user_email``."""
    subscription = Subscription.create(
        payment_method=overrides.pop("payment_method", "card"),
        card_name="Mary Tan",
        card_number="4111 1111 1111 1111",
        expiry_date="12/99",
        cvv="123",
        subscription_plan=overrides.pop("subscription_plan", 1),
        today=date(2025, 1, 10),
    )
    document = subscription.to_document()
    document.update(overrides)
    collection, key = subscription_path(user_email).split("/")
    return {collection: {key: document}}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store():
    """Empty flaky in-memory store."""
    return FlakyDocumentStore()


@pytest.fixture
def seeded_store():
    """Store with an existing monthly subscription (balance 100.00)."""
    return FlakyDocumentStore(seeded_tree())


@pytest.fixture
def approving_processor():
    return StaticPaymentProcessor(outcome=True)


@pytest.fixture
def declining_processor():
    return StaticPaymentProcessor(outcome=False)


@pytest.fixture
def controller(store, approving_processor):
    """Controller bound to a user with no subscription yet."""
    return SubscriptionController(USER_EMAIL, store, payment_processor=approving_processor)


@pytest.fixture
def seeded_controller(seeded_store, approving_processor):
    """Controller bound to a user with a stored (not yet fetched) subscription."""
    return SubscriptionController(USER_EMAIL, seeded_store, payment_processor=approving_processor)


@pytest.fixture
def valid_card():
    return {
        "card_name": "Mary Tan",
        "card_number": "4111 1111 1111 1111",
        "expiry_date": "12/99",
        "cvv": "123",
    }


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from allcare.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, store, approving_processor):
    """Test client wired to the in-memory store and approving processors."""
    from allcare.api.dependencies import (
        get_checkout_payment_processor,
        get_store,
        get_top_up_payment_processor,
    )

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_top_up_payment_processor] = lambda: approving_processor
    app.dependency_overrides[get_checkout_payment_processor] = lambda: approving_processor
    return TestClient(app)
