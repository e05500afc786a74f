"""
Tests for the sales report: UTC day filters, paging, validation.
"""

from datetime import date, timedelta

import pytest

from queueskip.core.exceptions import InvalidRequestError
from queueskip.services import ledger_service
from queueskip.services.periods import current_period
from queueskip.services.transaction_service import list_transactions

from tests.conftest import CUSTOMER, MELBOURNE, NOW


async def sell(store, venue_id, session_id):
    period = current_period(NOW, MELBOURNE)
    await ledger_service.reserve(
        store,
        venue_id=venue_id,
        session_id=session_id,
        customer=CUSTOMER,
        period_start=period.start,
        period_end=period.end,
        day_of_week=period.day_of_week,
        now=NOW,
    )
    await ledger_service.confirm(store, session_id, now=NOW)


@pytest.mark.asyncio
async def test_end_date_includes_whole_day(store, venue_id):
    await sell(store, venue_id, "cs_report")
    sale_day = NOW.date()  # 2026-10-19 in UTC

    sales, total = await list_transactions(store, start_date=sale_day, end_date=sale_day)
    assert total == 1
    assert sales[0].session_id == "cs_report"

    _, total = await list_transactions(store, end_date=sale_day - timedelta(days=1))
    assert total == 0
    _, total = await list_transactions(store, venue_id="other-venue")
    assert total == 0


@pytest.mark.asyncio
async def test_paging(store, venue_id):
    for i in range(3):
        await sell(store, venue_id, f"cs_page_{i}")

    first, total = await list_transactions(store, page=1, page_size=2)
    second, _ = await list_transactions(store, page=2, page_size=2)
    assert total == 3
    assert len(first) == 2
    assert len(second) == 1


@pytest.mark.asyncio
async def test_invalid_filters_rejected(store):
    with pytest.raises(InvalidRequestError):
        await list_transactions(store, start_date=date(2026, 10, 20), end_date=date(2026, 10, 19))
    with pytest.raises(InvalidRequestError):
        await list_transactions(store, page_size=1000)
    with pytest.raises(InvalidRequestError):
        await list_transactions(store, page=0)
