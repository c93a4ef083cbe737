"""
Unit tests for rights_api/services/contract_service.py

Uses AsyncMock to isolate from the database.
Tests: validate_contract_fields, to_response, resolve_parent,
       get_amendment_chain, list_contracts, delete_contract.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from rights_api.models.contract import Contract
from rights_api.services.contract_service import (
    ContractValidationError,
    delete_contract,
    get_amendment_chain,
    list_contracts,
    parse_uuid,
    resolve_parent,
    to_response,
    validate_contract_fields,
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
        parent_contract_id=None,
    )
    values.update(overrides)
    return Contract(**values)


def _one(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _scalars(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows)
    return result


def _rowcount(n: int):
    result = MagicMock()
    result.rowcount = n
    return result


def _mock_session(*results) -> AsyncMock:
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=list(results))
    session.add = MagicMock()
    return session


# ---------------------------------------------------------------------------
# validate_contract_fields
# ---------------------------------------------------------------------------


def test_valid_fixed_term_contract_passes():
    validate_contract_fields(
        {"auto_renew": False, "start_date": date(2025, 1, 1), "end_date": date(2025, 12, 31)}
    )


def test_auto_renew_with_end_date_is_rejected():
    with pytest.raises(ContractValidationError) as exc_info:
        validate_contract_fields(
            {"auto_renew": True, "start_date": date(2025, 1, 1), "end_date": date(2025, 12, 31)}
        )
    assert exc_info.value.field == "end_date"


def test_auto_renew_without_end_date_passes():
    validate_contract_fields({"auto_renew": True, "start_date": date(2025, 1, 1), "end_date": None})


def test_non_renewing_contract_requires_end_date():
    with pytest.raises(ContractValidationError) as exc_info:
        validate_contract_fields({"auto_renew": False, "start_date": date(2025, 1, 1)})
    assert "end_date is required" in exc_info.value.message


@pytest.mark.parametrize("status", ["In Perpetuity", "Terminated"])
def test_terminal_status_may_omit_end_date(status):
    validate_contract_fields(
        {"auto_renew": False, "status": status, "start_date": date(2025, 1, 1), "end_date": None}
    )


def test_end_before_start_is_rejected():
    with pytest.raises(ContractValidationError):
        validate_contract_fields(
            {"start_date": date(2025, 6, 1), "end_date": date(2025, 1, 1)}
        )


def test_flat_fee_requires_amount():
    with pytest.raises(ContractValidationError) as exc_info:
        validate_contract_fields(
            {
                "start_date": date(2025, 1, 1),
                "end_date": date(2025, 12, 31),
                "royalty_type": "Flat Fee",
            }
        )
    assert exc_info.value.field == "flat_fee_amount"


# ---------------------------------------------------------------------------
# to_response / parse_uuid
# ---------------------------------------------------------------------------


def test_response_carries_derived_and_stored_status():
    c = _contract(end_date=date(2025, 6, 1), status="Active", royalty_rate=Decimal("12.50"))
    c.created_at = datetime(2025, 1, 1, 9, 30)

    resp = to_response(c, TODAY)

    assert resp.status == "Expired"
    assert resp.stored_status == "Active"
    assert resp.end_date == "2025-06-01"
    assert resp.royalty_rate == "12.50"
    assert resp.created_at == "2025-01-01T09:30:00"


def test_parse_uuid():
    uid = uuid.uuid4()
    assert parse_uuid(str(uid)) == uid
    assert parse_uuid("not-a-uuid") is None
    assert parse_uuid(None) is None


# ---------------------------------------------------------------------------
# Amendment chains
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_amendment_chain_is_root_first():
    root = _contract()
    middle = _contract(parent_contract_id=root.id)
    leaf = _contract(parent_contract_id=middle.id)
    session = _mock_session(_one(middle), _one(root))

    chain = await get_amendment_chain(session, leaf)

    assert chain == [root, middle, leaf]


@pytest.mark.asyncio
async def test_amendment_chain_stops_on_cycle():
    a = _contract()
    b = _contract(parent_contract_id=a.id)
    a.parent_contract_id = b.id
    session = _mock_session(_one(a))

    chain = await get_amendment_chain(session, b)

    assert chain == [a, b]


@pytest.mark.asyncio
async def test_resolve_parent_none_is_noop():
    session = _mock_session()
    assert await resolve_parent(session, None) is None
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_parent_missing_parent():
    session = _mock_session(_one(None))
    with pytest.raises(ContractValidationError) as exc_info:
        await resolve_parent(session, str(uuid.uuid4()))
    assert exc_info.value.field == "parent_contract_id"


@pytest.mark.asyncio
async def test_resolve_parent_rejects_self_reference():
    c = _contract()
    session = _mock_session(_one(c))
    with pytest.raises(ContractValidationError, match="cannot amend itself"):
        await resolve_parent(session, str(c.id), c.id)


@pytest.mark.asyncio
async def test_resolve_parent_rejects_cycle():
    child = _contract()
    # Proposed parent is already an amendment of child
    grandchild = _contract(parent_contract_id=child.id)
    session = _mock_session(_one(grandchild), _one(child))

    with pytest.raises(ContractValidationError, match="cycle"):
        await resolve_parent(session, str(grandchild.id), child.id)


@pytest.mark.asyncio
async def test_resolve_parent_returns_parent_id():
    parent = _contract()
    session = _mock_session(_one(parent))
    assert await resolve_parent(session, str(parent.id)) == parent.id


# ---------------------------------------------------------------------------
# list_contracts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_reconciles_first_then_filters_on_derived_status():
    active = _contract()
    lapsed = _contract(end_date=date(2025, 5, 1))
    session = _mock_session(_rowcount(0), _scalars([active, lapsed]))

    result = await list_contracts(session, status="Expired", today=TODAY)

    assert result == [lapsed]
    first_stmt = session.execute.call_args_list[0].args[0]
    assert first_stmt.is_dml


@pytest.mark.asyncio
async def test_list_expiring_window():
    soon = _contract(end_date=date(2025, 7, 1))
    later = _contract(end_date=date(2025, 12, 31))
    session = _mock_session(_rowcount(0), _scalars([later, soon]))

    result = await list_contracts(session, expiring=30, today=TODAY)

    assert result == [soon]


@pytest.mark.asyncio
async def test_list_ignores_unsupported_expiring_window():
    rows = [_contract(), _contract(end_date=date(2025, 7, 1))]
    session = _mock_session(_rowcount(0), _scalars(rows))

    assert await list_contracts(session, expiring=45, today=TODAY) == rows


@pytest.mark.asyncio
async def test_list_escapes_like_wildcards_in_territory_and_search():
    session = _mock_session(_rowcount(0), _scalars([]))

    await list_contracts(session, territory="100%", search="a_b", today=TODAY)

    compiled = session.execute.call_args_list[1].args[0].compile(
        dialect=postgresql.dialect()
    )
    params = list(compiled.params.values())
    assert "%100\\%%" in params
    assert params.count("%a\\_b%") == 3
    assert "ESCAPE" in str(compiled)


# ---------------------------------------------------------------------------
# delete_contract
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete_removes_dependents_then_contract():
    c = _contract()
    session = _mock_session(MagicMock(), MagicMock())

    await delete_contract(session, c)

    assert session.execute.await_count == 2
    tables = [call.args[0].table.name for call in session.execute.call_args_list]
    assert tables == ["royalties", "contract_content"]
    session.delete.assert_awaited_once_with(c)
    session.flush.assert_awaited_once()
