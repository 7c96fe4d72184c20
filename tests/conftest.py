"""
Shared fixtures.

Every test runs against in-memory storage and a clock pinned to
2024-03-15. The sample card closes on the 10th, so the bill open on
that day is 04/2024.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from finledger.audit import AuditLogger
from finledger.engine import FixedClock
from finledger.models import Account, Card, Entry, EntryKind
from finledger.orchestrator import LedgerContext, LedgerService
from finledger.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


TODAY = date(2024, 3, 15)
USER_ID = "user-1"


@pytest.fixture
def clock():
    return FixedClock(TODAY)


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(storage, audit_storage, clock):
    context = LedgerContext(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        clock=clock,
        user_id=USER_ID,
    )
    return LedgerService(context)


@pytest.fixture
def sample_card():
    """A detached card for pure engine tests."""
    return Card(
        user_id=USER_ID,
        name="Visa",
        closing_day=10,
        due_day=20,
        credit_limit=Decimal("5000.00"),
        payment_account_id=uuid4(),
    )


@pytest.fixture
def make_entry():
    """Factory for entries with sensible defaults."""
    def _make(**overrides) -> Entry:
        data = {
            "user_id": USER_ID,
            "kind": EntryKind.EXPENSE,
            "amount": Decimal("100.00"),
            "description": "Groceries",
            "occurs_on": TODAY,
        }
        if "card_id" not in overrides and "account_id" not in overrides:
            data["account_id"] = uuid4()
        data.update(overrides)
        return Entry(**data)
    return _make


@pytest_asyncio.fixture
async def account(service) -> Account:
    return await service.create_account("Checking", Decimal("1000.00"))


@pytest_asyncio.fixture
async def card(service, account) -> Card:
    return await service.create_card(
        name="Visa",
        closing_day=10,
        due_day=20,
        credit_limit=Decimal("5000.00"),
        payment_account_id=account.id,
    )
