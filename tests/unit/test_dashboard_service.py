"""
Unit tests for rights_api/services/dashboard_service.py
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from rights_api.services.dashboard_service import get_dashboard_stats, period_bounds


def _scalar(value):
    result = MagicMock()
    result.scalar.return_value = value
    result.rowcount = 0
    return result


def test_period_bounds_month():
    assert period_bounds("month", date(2025, 8, 20)) == (date(2025, 8, 1), "August 2025")


def test_period_bounds_quarter():
    assert period_bounds("quarter", date(2025, 8, 20)) == (date(2025, 7, 1), "Q3 2025")
    assert period_bounds("quarter", date(2025, 1, 2)) == (date(2025, 1, 1), "Q1 2025")


def test_period_bounds_year():
    assert period_bounds("year", date(2025, 8, 20)) == (date(2025, 1, 1), "2025")


def test_unknown_period_falls_back_to_month():
    assert period_bounds("week", date(2025, 2, 3)) == (date(2025, 2, 1), "February 2025")


@pytest.mark.asyncio
async def test_stats_reconcile_then_aggregate():
    session = AsyncMock()
    session.execute = AsyncMock(
        side_effect=[
            _scalar(None),  # reconciliation UPDATE
            _scalar(12),
            _scalar(3),
            _scalar(Decimal("4500.50")),
            _scalar(7),
        ]
    )

    stats = await get_dashboard_stats(session, "quarter", date(2025, 5, 10))

    assert stats.active_contracts == 12
    assert stats.expiring_soon == 3
    assert stats.total_royalties == Decimal("4500.50")
    assert stats.pending_reviews == 7
    assert stats.period_label == "Q2 2025"
    assert session.execute.call_args_list[0].args[0].is_dml


@pytest.mark.asyncio
async def test_stats_with_empty_tables():
    session = AsyncMock()
    session.execute = AsyncMock(
        side_effect=[_scalar(None), _scalar(0), _scalar(0), _scalar(0), _scalar(0)]
    )

    stats = await get_dashboard_stats(session, "year", date(2025, 5, 10))

    assert stats.active_contracts == 0
    assert stats.total_royalties == Decimal("0")
    assert stats.period_label == "2025"
