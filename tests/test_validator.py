"""Tests for the two-stage entry validator."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finledger.config import LedgerSettings
from finledger.errors import ValidationError
from finledger.models import SplitMode
from finledger.validation import EntryValidator

TODAY = date(2024, 3, 15)


@pytest.fixture
def validator():
    return EntryValidator(settings=LedgerSettings())


def _draft(**overrides):
    data = {
        "user_id": "u",
        "kind": "expense",
        "amount": "25.00",
        "description": "Books",
        "occurs_on": "2024-03-10",
        "account_id": str(uuid4()),
    }
    data.update(overrides)
    return data


class TestSchemaStage:
    """Stage 1 turns raw drafts into entries or issues."""

    @pytest.mark.asyncio
    async def test_valid_dict_draft(self, validator):
        result, entry = await validator.validate(_draft(), TODAY)
        assert result.is_valid
        assert entry.amount == Decimal("25.00")
        assert entry.occurs_on == date(2024, 3, 10)

    @pytest.mark.asyncio
    async def test_missing_field_is_reported(self, validator):
        draft = _draft()
        del draft["description"]
        result, entry = await validator.validate(draft, TODAY)
        assert entry is None
        assert not result.schema_valid
        assert any(i.field == "description" and i.issue_type == "missing" for i in result.issues)

    @pytest.mark.asyncio
    async def test_check_raises_with_issues(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            await validator.check(_draft(amount="-5"), TODAY)
        assert exc_info.value.issues


class TestSemanticStage:
    """Stage 2 checks limits, dates and references."""

    @pytest.mark.asyncio
    async def test_large_amount_is_only_a_warning(self, validator):
        result, _ = await validator.validate(_draft(amount="5000000.00"), TODAY)
        assert result.is_valid
        assert result.warnings

    @pytest.mark.asyncio
    async def test_far_future_single_entry_warns(self, validator):
        result, _ = await validator.validate(_draft(occurs_on="2026-01-01"), TODAY)
        assert result.is_valid
        assert any("future" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_series_count_limit(self, validator):
        result, _ = await validator.validate(
            _draft(), TODAY, series_count=500, split_mode=SplitMode.FIXED
        )
        assert not result.is_valid

    @pytest.mark.asyncio
    async def test_unsplittable_installments(self, validator):
        result, _ = await validator.validate(
            _draft(amount="0.05"), TODAY, series_count=6, split_mode=SplitMode.INSTALLMENT
        )
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    @pytest.mark.asyncio
    async def test_transfer_cannot_be_split(self, validator):
        draft = _draft(kind="transfer", destination_account_id=str(uuid4()))
        result, _ = await validator.validate(
            draft, TODAY, series_count=3, split_mode=SplitMode.INSTALLMENT
        )
        assert not result.is_valid


class TestReferenceStage:
    """Reference checks need storage."""

    @pytest.mark.asyncio
    async def test_unknown_account(self, storage):
        validator = EntryValidator(storage, LedgerSettings())
        result, _ = await validator.validate(_draft(), TODAY)
        assert not result.is_valid
        assert result.issues[0].issue_type == "unknown_reference"

    @pytest.mark.asyncio
    async def test_known_account(self, service, storage, account):
        validator = EntryValidator(storage, LedgerSettings())
        result, _ = await validator.validate(_draft(account_id=str(account.id)), TODAY)
        assert result.is_valid

    @pytest.mark.asyncio
    async def test_archived_card(self, service, storage, card):
        archived = card.model_copy(update={"is_archived": True})
        await storage.update_card(archived)
        validator = EntryValidator(storage, LedgerSettings())
        draft = _draft(card_id=str(card.id))
        del draft["account_id"]
        result, _ = await validator.validate(draft, TODAY)
        assert not result.is_valid
        assert result.issues[0].issue_type == "archived"

    @pytest.mark.asyncio
    async def test_summarize_lists_errors(self, validator):
        result, _ = await validator.validate(_draft(amount="-5"), TODAY)
        assert validator.summarize(result).startswith("Entry rejected: amount")
