"""
Unit tests for simulated payment processing.
"""

import logging
import random

import pytest
from unittest.mock import AsyncMock, patch

from allcare.infrastructure.payments import (
    SimulatedPaymentProcessor,
    get_account_creation_processor,
    get_top_up_processor,
)


class TestSimulatedPaymentProcessor:
    """Tests for SimulatedPaymentProcessor."""

    @pytest.mark.asyncio
    async def test_always_succeeds_at_rate_one(self):
        processor = SimulatedPaymentProcessor(success_rate=1.0)
        results = [await processor.process_payment(10, "card") for _ in range(20)]
        assert all(results)

    @pytest.mark.asyncio
    async def test_always_fails_at_rate_zero(self):
        processor = SimulatedPaymentProcessor(success_rate=0.0)
        results = [await processor.process_payment(10, "card") for _ in range(20)]
        assert not any(results)

    @pytest.mark.asyncio
    async def test_seeded_rng_is_reproducible(self):
        reference = random.Random(42)
        expected = [reference.random() < 0.5 for _ in range(10)]

        processor = SimulatedPaymentProcessor(success_rate=0.5, rng=random.Random(42))
        results = [await processor.process_payment(10, "card") for _ in range(10)]

        assert results == expected

    @pytest.mark.parametrize("rate", [-0.1, 1.1])
    def test_rejects_out_of_range_rate(self, rate):
        with pytest.raises(ValueError):
            SimulatedPaymentProcessor(success_rate=rate)

    @pytest.mark.asyncio
    async def test_waits_for_delay(self):
        processor = SimulatedPaymentProcessor(success_rate=1.0, delay_seconds=1.5)

        with patch(
            "allcare.infrastructure.payments.processor.asyncio.sleep",
            new_callable=AsyncMock,
        ) as mock_sleep:
            await processor.process_payment(10, "card")

        mock_sleep.assert_awaited_once_with(1.5)

    @pytest.mark.asyncio
    async def test_no_sleep_without_delay(self):
        processor = SimulatedPaymentProcessor(success_rate=1.0)

        with patch(
            "allcare.infrastructure.payments.processor.asyncio.sleep",
            new_callable=AsyncMock,
        ) as mock_sleep:
            await processor.process_payment(10, "card")

        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_logs_only_last_four_digits(self, caplog):
        processor = SimulatedPaymentProcessor(success_rate=1.0)

        with caplog.at_level(logging.INFO, logger="allcare.infrastructure.payments.processor"):
            await processor.process_payment(25, "card", "4111 1111 1111 9876")

        assert "9876" in caplog.text
        assert "4111 1111 1111 9876" not in caplog.text


class TestProviders:
    """Cached processor providers read their rates from settings."""

    def test_separate_rates(self):
        get_top_up_processor.cache_clear()
        get_account_creation_processor.cache_clear()

        top_up = get_top_up_processor()
        account_creation = get_account_creation_processor()

        assert top_up.success_rate == 0.9
        assert account_creation.success_rate == 0.8
        assert get_top_up_processor() is top_up

        get_top_up_processor.cache_clear()
        get_account_creation_processor.cache_clear()
