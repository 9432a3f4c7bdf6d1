"""
Concurrent stock adjustments and receipt decisions against PostgreSQL.

Requires a migrated database: set TEST_DATABASE_URL to an asyncpg URL.
"""

import asyncio
import os
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from casehub.errors import InvalidTransitionError
from casehub.models.inventory import InventoryItem
from casehub.models.receipt import Receipt, ReceiptLineItem
from casehub.services.financial_service import LineInput, create_receipt, decide_receipt
from casehub.services.stock_service import apply_stock_change, create_item

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(
    not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"
)


@pytest.fixture
async def pg_factory():
    engine = create_async_engine(TEST_DATABASE_URL)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_concurrent_adds_serialize(pg_factory):
    async with pg_factory() as session:
        item = await create_item(
            session, item_name="Concurrency check", category="test", quantity=10
        )
        await session.commit()

    async def _add_one():
        async with pg_factory() as session:
            await apply_stock_change(session, item.id, 1, "add")
            await session.commit()

    try:
        await asyncio.gather(_add_one(), _add_one())

        async with pg_factory() as session:
            refreshed = await session.get(InventoryItem, item.id)
            assert refreshed.quantity == 12
    finally:
        async with pg_factory() as session:
            await session.execute(delete(InventoryItem).where(InventoryItem.id == item.id))
            await session.commit()


@pytest.mark.asyncio
async def test_concurrent_decisions_only_one_wins(pg_factory):
    async with pg_factory() as session:
        receipt = await create_receipt(
            session,
            vendor="Corner Cafe",
            receipt_date=date(2024, 3, 1),
            category="meals",
            lines=[LineInput("Lunch", 2, 1500)],
            tax_rate=Decimal("0.15"),
        )
        await session.commit()

    async def _decide(new_status):
        async with pg_factory() as session:
            await decide_receipt(session, receipt.id, new_status)
            await session.commit()
        return new_status

    try:
        results = await asyncio.gather(
            _decide("approved"), _decide("rejected"), return_exceptions=True
        )
        winners = [r for r in results if isinstance(r, str)]
        losers = [r for r in results if isinstance(r, BaseException)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], InvalidTransitionError)

        async with pg_factory() as session:
            stored = await session.get(Receipt, receipt.id)
            assert stored.status == winners[0]
    finally:
        async with pg_factory() as session:
            await session.execute(
                delete(ReceiptLineItem).where(ReceiptLineItem.receipt_id == receipt.id)
            )
            await session.execute(delete(Receipt).where(Receipt.id == receipt.id))
            await session.commit()
