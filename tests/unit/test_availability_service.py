"""
Unit tests for rights_api/services/availability_service.py

The database is replaced by an AsyncMock session whose execute() returns
the rows the SQL pre-filter would have produced. Query construction is
checked on the compiled statements.
"""

import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy.dialects import postgresql

from rights_api.models.contract import Contract
from rights_api.schemas.availability import AvailabilityRequest
from rights_api.services.availability_service import (
    PLATFORMS,
    TERRITORIES,
    build_conflict_query,
    build_exclusive_query,
    check_availability,
    compute_suggestions,
)

TODAY = date(2025, 3, 1)


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


def _request(**overrides) -> AvailabilityRequest:
    values = dict(
        partner="Acme",
        territory="US",
        platform="SVOD",
        start_date="2025-01-01",
        end_date="2025-12-31",
    )
    values.update(overrides)
    return AvailabilityRequest(**values)


def _scalars(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows)
    return result


def _mock_session(*row_sets) -> AsyncMock:
    """Session whose successive execute() calls return the given row sets."""
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=[_scalars(rows) for rows in row_sets])
    return session


def _compiled(stmt):
    return stmt.compile(dialect=postgresql.dialect())


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


def test_request_requires_partner():
    with pytest.raises(ValidationError):
        _request(partner="   ")


def test_request_rejects_malformed_date():
    with pytest.raises(ValidationError):
        _request(start_date="01/01/2025")


def test_request_rejects_impossible_calendar_date():
    with pytest.raises(ValidationError):
        _request(end_date="2025-02-30")


def test_request_rejects_reversed_window():
    with pytest.raises(ValidationError) as exc_info:
        _request(start_date="2025-06-01", end_date="2025-01-01")
    assert exc_info.value.errors()[0]["loc"] == ("end_date",)


def test_request_blank_territory_means_any():
    req = _request(territory="  ", platform="")
    assert req.territory is None
    assert req.platform is None


# ---------------------------------------------------------------------------
# Conflict query construction
# ---------------------------------------------------------------------------


def test_conflict_query_filters_partner_status_and_overlap():
    compiled = _compiled(build_conflict_query(_request()))
    sql = str(compiled)
    params = compiled.params

    assert "contracts.partner = " in sql
    assert "Acme" in params.values()
    assert "contracts.status IN" in sql
    assert any(
        isinstance(v, (list, tuple)) and set(v) == {"Active", "In Perpetuity"}
        for v in params.values()
    )
    # Overlap: start <= request end AND (end >= request start OR end IS NULL)
    assert "contracts.start_date <= " in sql
    assert "contracts.end_date >= " in sql
    assert "contracts.end_date IS NULL" in sql
    assert date(2025, 12, 31) in params.values()
    assert date(2025, 1, 1) in params.values()


def test_conflict_query_uses_case_insensitive_substring_match():
    compiled = _compiled(build_conflict_query(_request(territory="us", platform="svod")))
    sql = str(compiled)

    assert "contracts.territory ILIKE" in sql
    assert "contracts.platform ILIKE" in sql
    assert "%us%" in compiled.params.values()
    assert "%svod%" in compiled.params.values()


def test_conflict_query_escapes_like_wildcards():
    compiled = _compiled(build_conflict_query(_request(territory="50%_off")))
    assert "%50\\%\\_off%" in compiled.params.values()


def test_conflict_query_without_territory_or_platform_skips_those_filters():
    sql = str(_compiled(build_conflict_query(_request(territory=None, platform=None))))
    assert "ILIKE" not in sql


def test_exclusive_query_ignores_territory_and_platform():
    compiled = _compiled(build_exclusive_query("Acme", date(2025, 1, 1), date(2025, 12, 31)))
    sql = str(compiled)

    assert "contracts.exclusivity = " in sql
    assert "Exclusive" in compiled.params.values()
    assert "ILIKE" not in sql
    assert "contracts.end_date IS NULL" in sql


# ---------------------------------------------------------------------------
# compute_suggestions
# ---------------------------------------------------------------------------


def test_suggestions_exclude_exclusively_held_values_in_fixed_order():
    held = _contract(territory="US", platform="SVOD", exclusivity="Exclusive")

    s = compute_suggestions([held])

    assert s.territories == ["Global", "Canada", "UK"]
    assert s.platforms == ["TVOD", "AVOD", "FAST", "Linear"]


def test_suggestions_with_no_exclusive_contracts_return_full_lists():
    s = compute_suggestions([])
    assert s.territories == list(TERRITORIES)
    assert s.platforms == list(PLATFORMS)


def test_suggestions_treat_multi_value_field_as_one_token_by_default():
    held = _contract(territory="US, Canada", platform="SVOD, AVOD", exclusivity="Exclusive")

    s = compute_suggestions([held])

    assert s.territories == list(TERRITORIES)
    assert s.platforms == list(PLATFORMS)


def test_suggestions_split_multi_value_when_enabled():
    held = _contract(territory="US, Canada", platform="SVOD,AVOD", exclusivity="Exclusive")

    s = compute_suggestions([held], split_multi_value=True)

    assert s.territories == ["Global", "UK"]
    assert s.platforms == ["TVOD", "FAST", "Linear"]


# ---------------------------------------------------------------------------
# check_availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_no_contracts_is_available_without_suggestions():
    session = _mock_session([])

    result = await check_availability(session, _request(), TODAY)

    assert result.available is True
    assert result.conflicts == []
    assert result.suggestions is None
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_non_exclusive_conflict_has_no_suggestions():
    conflict = _contract(exclusivity="Non-Exclusive")
    session = _mock_session([conflict])

    result = await check_availability(session, _request(), TODAY)

    assert result.available is False
    assert result.conflicts == [conflict]
    assert result.suggestions is None
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_exclusive_conflict_produces_suggestions():
    conflict = _contract(exclusivity="Exclusive")
    session = _mock_session([conflict], [conflict])

    result = await check_availability(session, _request(), TODAY)

    assert result.available is False
    assert result.suggestions is not None
    assert "US" not in result.suggestions.territories
    assert {"Global", "Canada", "UK"} <= set(result.suggestions.territories)
    assert "SVOD" not in result.suggestions.platforms
    assert {"TVOD", "AVOD", "FAST", "Linear"} <= set(result.suggestions.platforms)
    assert session.execute.await_count == 2


@pytest.mark.asyncio
async def test_limited_exclusive_does_not_trigger_suggestions():
    session = _mock_session([_contract(exclusivity="Limited Exclusive")])

    result = await check_availability(session, _request(), TODAY)

    assert result.available is False
    assert result.suggestions is None


@pytest.mark.asyncio
async def test_stale_active_contract_past_end_date_is_not_a_conflict():
    stale = _contract(start_date=date(2020, 1, 1), end_date=date(2025, 2, 1), status="Active")
    session = _mock_session([stale])

    result = await check_availability(session, _request(), TODAY)

    assert result.available is True
    assert result.conflicts == []


@pytest.mark.asyncio
async def test_auto_renew_and_perpetual_contracts_conflict():
    renewing = _contract(auto_renew=True, end_date=None)
    perpetual = _contract(status="In Perpetuity", end_date=None)
    session = _mock_session([renewing, perpetual])

    result = await check_availability(session, _request(), TODAY)

    assert result.conflicts == [renewing, perpetual]


@pytest.mark.asyncio
async def test_suggestions_skip_stale_exclusive_contracts():
    live = _contract(exclusivity="Exclusive", territory="US", platform="SVOD")
    stale = _contract(
        exclusivity="Exclusive", territory="UK", platform="FAST", end_date=date(2025, 1, 31)
    )
    session = _mock_session([live], [live, stale])

    result = await check_availability(session, _request(), TODAY)

    assert "UK" in result.suggestions.territories
    assert "FAST" in result.suggestions.platforms


@pytest.mark.asyncio
async def test_split_setting_is_honoured():
    held = _contract(exclusivity="Exclusive", territory="US, Canada")
    session = _mock_session([held], [held])

    with patch("rights_api.services.availability_service.settings") as mock_settings:
        mock_settings.SUGGESTIONS_SPLIT_MULTI_VALUE = True
        result = await check_availability(session, _request(), TODAY)

    assert result.suggestions.territories == ["Global", "UK"]


@pytest.mark.asyncio
async def test_query_errors_propagate():
    from sqlalchemy.exc import OperationalError

    session = AsyncMock()
    session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))

    with pytest.raises(OperationalError):
        await check_availability(session, _request(), TODAY)
