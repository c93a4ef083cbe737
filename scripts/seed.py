"""
Seed script: creates users, a small content catalog and sample contracts
covering each status / exclusivity combination.
Run from the project root: python -m scripts.seed
"""
import asyncio
import sys
import os
import uuid
from datetime import date, timedelta
from decimal import Decimal

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from rights_api.database import AsyncSessionLocal, engine
from rights_api.models.content_item import ContentItem
from rights_api.models.contract import Contract, ContractContent
from rights_api.models.user import User
from rights_api.services.auth_service import hash_password

# ---------- Fixed UUIDs ----------

USER_ADMIN_ID = uuid.UUID("a0000000-0000-0000-0000-000000000001")
USER_LEGAL_ID = uuid.UUID("a0000000-0000-0000-0000-000000000002")
USER_FINANCE_ID = uuid.UUID("a0000000-0000-0000-0000-000000000003")
USER_SALES_MGR_ID = uuid.UUID("a0000000-0000-0000-0000-000000000004")
USER_SALES_ID = uuid.UUID("a0000000-0000-0000-0000-000000000005")

CONTENT_FILM_ID = uuid.UUID("c0000000-0000-0000-0000-000000000001")
CONTENT_SERIES_ID = uuid.UUID("c0000000-0000-0000-0000-000000000002")
CONTENT_FAST_ID = uuid.UUID("c0000000-0000-0000-0000-000000000003")

DEFAULT_PASSWORD = "RightsTest123!"


def _contract(created_by: uuid.UUID, **overrides) -> Contract:
    values = dict(
        licensor="Northlight Pictures",
        licensee="StreamCo",
        territory="US",
        platform="SVOD",
        start_date=date.today() - timedelta(days=180),
        end_date=date.today() + timedelta(days=185),
        auto_renew=False,
        royalty_type="Revenue Share",
        royalty_rate=Decimal("15.00"),
        payment_terms="Net 30",
        reporting_frequency="Quarterly",
        exclusivity="Non-Exclusive",
        status="Active",
        created_by=created_by,
    )
    values.update(overrides)
    return Contract(**values)


async def seed():
    async with AsyncSessionLocal() as db:
        # Check if already seeded
        result = await db.execute(select(User).where(User.id == USER_ADMIN_ID))
        if result.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        hashed_pw = hash_password(DEFAULT_PASSWORD)

        # --- Users ---
        users = [
            User(id=USER_ADMIN_ID, email="admin@rights.local", password_hash=hashed_pw,
                 first_name="System", last_name="Admin", role="Admin", invite_status="accepted"),
            User(id=USER_LEGAL_ID, email="legal@rights.local", password_hash=hashed_pw,
                 first_name="Lena", last_name="Ortiz", role="Legal", invite_status="accepted"),
            User(id=USER_FINANCE_ID, email="finance@rights.local", password_hash=hashed_pw,
                 first_name="Farid", last_name="Haddad", role="Finance", invite_status="accepted"),
            User(id=USER_SALES_MGR_ID, email="sales.manager@rights.local", password_hash=hashed_pw,
                 first_name="Maya", last_name="Chen", role="Sales Manager", invite_status="accepted"),
            User(id=USER_SALES_ID, email="sales@rights.local", password_hash=hashed_pw,
                 first_name="Sam", last_name="Reed", role="Sales", invite_status="accepted"),
        ]
        db.add_all(users)
        await db.flush()

        # --- Content catalog ---
        catalog = [
            ContentItem(id=CONTENT_FILM_ID, title="The Long Harbor", type="Film",
                        release_year=2021, genre="Drama", duration=118, created_by=USER_LEGAL_ID),
            ContentItem(id=CONTENT_SERIES_ID, title="Signal Lost", type="TV Series", season=1,
                        episode_count=10, release_year=2023, genre="Thriller", created_by=USER_LEGAL_ID),
            ContentItem(id=CONTENT_FAST_ID, title="Classic Westerns Channel", type="WoF FAST",
                        genre="Western", created_by=USER_SALES_MGR_ID),
        ]
        db.add_all(catalog)
        await db.flush()

        # --- Contracts ---
        exclusive = _contract(USER_LEGAL_ID, partner="StreamCo", exclusivity="Exclusive")
        contracts = [
            exclusive,
            _contract(USER_LEGAL_ID, partner="StreamCo", territory="Canada", platform="AVOD"),
            _contract(USER_SALES_MGR_ID, partner="StreamCo", territory="US, Canada",
                      platform="FAST", auto_renew=True, end_date=None),
            _contract(USER_SALES_MGR_ID, partner="Channel Nine", territory="UK", platform="Linear",
                      royalty_type="Flat Fee", royalty_rate=None, flat_fee_amount=Decimal("25000"),
                      reporting_frequency="None"),
            _contract(USER_LEGAL_ID, partner="Channel Nine", territory="Global", platform="TVOD",
                      status="In Perpetuity", end_date=None, minimum_payment=Decimal("1000")),
            # Lapsed but still stored Active until reconciliation runs
            _contract(USER_LEGAL_ID, partner="Orbit Media", start_date=date.today() - timedelta(days=400),
                      end_date=date.today() - timedelta(days=10), reporting_frequency="Monthly"),
            _contract(USER_LEGAL_ID, partner="Orbit Media", territory="UK", status="Terminated"),
            # Ends within the expiring-soon window
            _contract(USER_SALES_MGR_ID, partner="Orbit Media", territory="Canada",
                      end_date=date.today() + timedelta(days=20)),
        ]
        db.add_all(contracts)
        await db.flush()

        amendment = _contract(USER_LEGAL_ID, partner="StreamCo", exclusivity="Exclusive",
                              royalty_rate=Decimal("17.50"), parent_contract_id=exclusive.id)
        db.add(amendment)
        await db.flush()

        db.add_all([
            ContractContent(contract_id=exclusive.id, content_id=CONTENT_FILM_ID),
            ContractContent(contract_id=exclusive.id, content_id=CONTENT_SERIES_ID,
                            notes="Season 1 only"),
            ContractContent(contract_id=contracts[2].id, content_id=CONTENT_FAST_ID),
        ])

        await db.commit()
        print(f"Seeded {len(users)} users, {len(catalog)} content items, "
              f"{len(contracts) + 1} contracts. Password: {DEFAULT_PASSWORD}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
