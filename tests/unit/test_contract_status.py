"""
Unit tests for rights_api/services/contract_status.py

Pure derivation is tested on transient Contract instances; reconciliation
uses an AsyncMock session and inspects the compiled UPDATE.
"""

import uuid
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from rights_api.models.contract import Contract
from rights_api.services.contract_status import (
    days_until_expiry,
    derive_status,
    expiring_within,
    is_live,
    reconcile_expired_statuses,
)

TODAY = date(2025, 6, 15)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _contract(**overrides) -> Contract:
    values = dict(
        id=uuid.uuid4(),
        partner="Acme",
        licensor="Acme Studios",
        licensee="StreamCo",
        territory="US",
        platform="SVOD",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        auto_renew=False,
        exclusivity="Non-Exclusive",
        status="Active",
    )
    values.update(overrides)
    return Contract(**values)


def _mock_session(rowcount: int = 0) -> AsyncMock:
    session = AsyncMock()
    result = MagicMock()
    result.rowcount = rowcount
    session.execute = AsyncMock(return_value=result)
    return session


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


# ---------------------------------------------------------------------------
# derive_status: precedence
# ---------------------------------------------------------------------------


def test_terminated_wins_over_everything():
    c = _contract(status="Terminated", auto_renew=True, end_date=None)
    assert derive_status(c, TODAY) == "Terminated"


def test_terminated_with_past_end_date_stays_terminated():
    c = _contract(status="Terminated", end_date=date(2020, 1, 1))
    assert derive_status(c, TODAY) == "Terminated"


def test_in_perpetuity_never_expires():
    c = _contract(status="In Perpetuity", end_date=date(2020, 1, 1))
    assert derive_status(c, TODAY) == "In Perpetuity"


def test_auto_renew_is_immune_to_end_date():
    c = _contract(auto_renew=True, end_date=date(2020, 1, 1))
    assert derive_status(c, TODAY) == "Active"


def test_auto_renew_with_expired_stored_status_keeps_stored():
    c = _contract(auto_renew=True, status="Expired", end_date=None)
    assert derive_status(c, TODAY) == "Expired"


# ---------------------------------------------------------------------------
# derive_status: expiry rule
# ---------------------------------------------------------------------------


def test_end_date_yesterday_is_expired():
    c = _contract(end_date=TODAY - timedelta(days=1))
    assert derive_status(c, TODAY) == "Expired"


def test_end_date_today_is_still_active():
    c = _contract(end_date=TODAY)
    assert derive_status(c, TODAY) == "Active"


def test_end_date_in_future_is_active():
    c = _contract(end_date=TODAY + timedelta(days=30))
    assert derive_status(c, TODAY) == "Active"


def test_missing_end_date_falls_back_to_stored():
    c = _contract(end_date=None)
    assert derive_status(c, TODAY) == "Active"


def test_missing_stored_status_defaults_to_active():
    c = _contract(status=None, end_date=TODAY + timedelta(days=1))
    assert derive_status(c, TODAY) == "Active"


def test_string_and_datetime_dates_are_accepted():
    assert derive_status(_contract(end_date="2025-06-14"), TODAY) == "Expired"
    assert derive_status(_contract(end_date=datetime(2025, 6, 15, 23, 0)), TODAY) == "Active"


def test_unparseable_end_date_does_not_raise():
    c = _contract(end_date="not-a-date")
    assert derive_status(c, TODAY) == "Active"


def test_derive_status_is_pure():
    c = _contract(end_date=TODAY - timedelta(days=10))
    derive_status(c, TODAY)
    assert c.status == "Active"


# ---------------------------------------------------------------------------
# Helpers built on derive_status
# ---------------------------------------------------------------------------


def test_is_live():
    assert is_live(_contract(), TODAY)
    assert is_live(_contract(status="In Perpetuity", end_date=None), TODAY)
    assert not is_live(_contract(end_date=date(2024, 1, 1)), TODAY)
    assert not is_live(_contract(status="Terminated"), TODAY)


def test_days_until_expiry():
    assert days_until_expiry(_contract(end_date=date(2025, 6, 25)), TODAY) == 10
    assert days_until_expiry(_contract(auto_renew=True, end_date=None), TODAY) is None
    assert days_until_expiry(_contract(end_date=None), TODAY) is None


def test_expiring_within_window_sorted_soonest_first():
    later = _contract(end_date=TODAY + timedelta(days=25))
    sooner = _contract(end_date=TODAY + timedelta(days=3))
    outside = _contract(end_date=TODAY + timedelta(days=45))
    lapsed = _contract(end_date=TODAY - timedelta(days=1))
    renewing = _contract(auto_renew=True, end_date=None)
    terminated = _contract(status="Terminated", end_date=TODAY + timedelta(days=5))

    result = expiring_within([later, sooner, outside, lapsed, renewing, terminated], 30, TODAY)

    assert result == [sooner, later]


def test_expiring_within_includes_today():
    c = _contract(end_date=TODAY)
    assert expiring_within([c], 30, TODAY) == [c]


# ---------------------------------------------------------------------------
# reconcile_expired_statuses
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reconcile_returns_rowcount():
    session = _mock_session(rowcount=3)

    changed = await reconcile_expired_statuses(session, TODAY)

    assert changed == 3
    session.execute.assert_awaited_once()
    session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_reconcile_update_targets_only_lapsed_non_renewing_active_rows():
    session = _mock_session(rowcount=0)

    await reconcile_expired_statuses(session, TODAY)

    stmt = session.execute.call_args.args[0]
    assert stmt.compile(dialect=postgresql.dialect()).params["status"] == "Expired"
    sql = _sql(stmt.whereclause)
    assert "contracts.status = 'Active'" in sql
    assert "contracts.end_date < '2025-06-15'" in sql
    assert "contracts.auto_renew IS false" in sql
    assert "contracts.auto_renew IS NULL" in sql


@pytest.mark.asyncio
async def test_reconcile_is_idempotent():
    session = AsyncMock()
    first, second = MagicMock(), MagicMock()
    first.rowcount = 2
    second.rowcount = 0
    session.execute = AsyncMock(side_effect=[first, second])

    assert await reconcile_expired_statuses(session, TODAY) == 2
    assert await reconcile_expired_statuses(session, TODAY) == 0

    stmts = [call.args[0] for call in session.execute.call_args_list]
    # Same WHERE clause both times; rows already Expired no longer match it
    assert _sql(stmts[0].whereclause) == _sql(stmts[1].whereclause)


@pytest.mark.asyncio
async def test_reconcile_handles_missing_rowcount():
    session = _mock_session(rowcount=None)
    assert await reconcile_expired_statuses(session, TODAY) == 0
