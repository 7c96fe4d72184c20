"""
Main Orchestrator for the Ledger

This module ties the engine, storage, validation and audit together and
defines the caller-facing flows:
1. Entries (record, update, delete, move between bills)
2. Series (expand, anticipate, shift, truncate, bulk edit, retry)
3. Billing (bills, payment, card usage)
4. Goals (monthly budgets and savings goals)
5. Balances (recompute and manual adjustment)
6. Accounts and cards (archive, total, entry purge)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written before validation and precondition checks pass
- Every multi-entry operation is a sequential bulk write whose partial
  outcome is reported, never hidden
- Every write updates derived totals through one transition function
- Every step is audited

Derived totals (balances, goal progress) are caches. When one cannot be
updated, the failure is audited and the cache is rebuilt by the
recompute operations; the ledger write itself stands.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from finledger.audit import AuditLogger, create_correlation_id
from finledger.config import get_settings
from finledger.engine import (
    AnticipationPlan,
    BulkWriteResult,
    Clock,
    SystemClock,
    TransitionDelta,
    aggregate_bill,
    aggregate_bills,
    billing_period_for,
    can_transition,
    card_usage,
    monthly_progress,
    needs_alert,
    plan_adjustment,
    plan_anticipation,
    plan_card_adjustment,
    plan_entry_move,
    plan_series,
    plan_series_shift,
    recompute_balance,
    run_sequential,
    select_tail,
    status_for,
    transition,
    validate_day,
)
from finledger.engine.bulk import ProgressCallback
from finledger.errors import (
    NotFoundError,
    PartialFailureError,
    PreconditionError,
    ValidationError,
)
from finledger.models.audit import AuditEventType
from finledger.models.ledger import (
    ZERO,
    Account,
    Bill,
    BillPeriod,
    BillReference,
    Card,
    CardUsage,
    Entry,
    EntryKind,
    EntryStatus,
    GoalType,
    MonthlyGoal,
    RecurrenceInterval,
    SavingsGoal,
    SplitMode,
    utcnow,
)
from finledger.queries import ReportExecutor
from finledger.services.storage import (
    AuditStorageInterface,
    EntryFilter,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)
from finledger.validation import EntryValidator


logger = structlog.get_logger()

EntryDraft = Union[Entry, dict[str, Any]]

# Fields that identify an entry or its place in a series
IMMUTABLE_FIELDS = frozenset({
    "id",
    "user_id",
    "series_id",
    "installment_index",
    "installment_count",
    "bill_reference",
    "anticipated_from_period",
    "created_at",
    "updated_at",
})

SERIES_EDITABLE_FIELDS = frozenset({"description", "category_id", "notes", "status"})


def _parse_status(value: Union[EntryStatus, str]) -> EntryStatus:
    try:
        return EntryStatus(value)
    except ValueError as e:
        raise ValidationError(f"Unknown status: {value}") from e


def _revise(entry: Entry, **changes) -> Entry:
    """Entry.revised, with model errors surfaced as ledger ValidationErrors."""
    try:
        return entry.revised(**changes)
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(f"Invalid change to entry {entry.id}: {messages}") from e


class LedgerContext:
    """Collaborators shared by every flow."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        user_id: Optional[str] = None,
        validator: Optional[EntryValidator] = None,
    ):
        settings = get_settings().ledger
        self.storage = storage
        self.audit_logger = audit_logger
        self.clock = clock or SystemClock()
        self.user_id = user_id or settings.default_user_id
        self.settings = settings
        self.validator = validator or EntryValidator(storage, settings)

    def today(self) -> date:
        return self.clock.today()

    def with_user(self, draft: EntryDraft) -> EntryDraft:
        if isinstance(draft, dict) and not draft.get("user_id"):
            return {**draft, "user_id": self.user_id}
        return draft

    async def require_entry(self, entry_id: UUID) -> Entry:
        entry = await self.storage.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("entry", entry_id)
        return entry

    async def require_card(self, card_id: UUID) -> Card:
        card = await self.storage.get_card(card_id)
        if card is None:
            raise NotFoundError("card", card_id)
        return card

    async def require_account(self, account_id: UUID) -> Account:
        account = await self.storage.get_account(account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        return account

    async def user_entries(self) -> list[Entry]:
        return await self.storage.find_entries(EntryFilter(user_id=self.user_id))

    async def series_members(self, series_id: UUID) -> list[Entry]:
        return await self.storage.find_entries(
            EntryFilter(user_id=self.user_id, series_id=series_id)
        )

    async def dependents_of(self, entry_id: UUID) -> list[Entry]:
        """Entries created on behalf of `entry_id`, such as anticipation discounts."""
        return [e for e in await self.user_entries() if e.related_entry_id == entry_id]

    async def reject(
        self,
        error: Union[ValidationError, PreconditionError],
        correlation_id: UUID,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Audit a rejected operation. The caller re-raises."""
        if not self.audit_logger:
            return
        if isinstance(error, PreconditionError):
            event_type, reason = AuditEventType.PRECONDITION_FAILED, error.reason
        else:
            event_type, reason = AuditEventType.VALIDATION_FAILED, "invalid_input"
        await self.audit_logger.log_rejected(
            event_type=event_type,
            reason=reason,
            message=str(error),
            correlation_id=correlation_id,
            entity_type=entity_type,
            entity_id=entity_id,
        )

    async def finish_bulk(self, result: BulkWriteResult, correlation_id: UUID) -> BulkWriteResult:
        """Audit and raise for an incomplete bulk write; pass a complete one through."""
        if result.is_complete:
            return result
        if self.audit_logger:
            await self.audit_logger.log_partial_failure(
                operation=result.operation,
                achieved=result.achieved,
                total=result.total,
                errors=[f.message for f in result.failures] or ["interrupted"],
                correlation_id=correlation_id,
            )
        raise PartialFailureError(result)


class DerivedTotals:
    """
    Applies TransitionDeltas to the cached totals: account balances,
    savings goal contributions and monthly goal progress.
    """

    def __init__(self, context: LedgerContext):
        self._ctx = context

    async def apply(self, delta: TransitionDelta, correlation_id: UUID) -> None:
        if delta.is_empty:
            return
        storage = self._ctx.storage
        try:
            for account_id, amount in delta.balances.items():
                account = await storage.get_account(account_id)
                if account is None:
                    logger.warning("balance_target_missing", account_id=str(account_id))
                    continue
                account.balance += amount
                account.updated_at = utcnow()
                await storage.update_account(account)

            for goal_id, amount in delta.savings_goals.items():
                goal = await storage.get_savings_goal(goal_id)
                if goal is None:
                    logger.warning("savings_goal_missing", goal_id=str(goal_id))
                    continue
                goal.current_amount = max(ZERO, goal.current_amount + amount)
                if goal.completed_at is None and goal.current_amount >= goal.target_amount:
                    goal.completed_at = utcnow()
                goal.updated_at = utcnow()
                await storage.update_savings_goal(goal)

            for key, amount in delta.monthly_progress.items():
                goals = await storage.find_monthly_goals(
                    self._ctx.user_id,
                    category_id=key.category_id,
                    goal_type=key.goal_type,
                    month=key.period.month,
                    year=key.period.year,
                )
                for goal in goals:
                    if not goal.is_active:
                        continue
                    goal.current_amount += amount
                    goal.updated_at = utcnow()
                    await storage.update_monthly_goal(goal)
        except (StorageError, NotFoundError) as e:
            # The entry write already happened; recompute repairs the caches
            logger.error("derived_totals_stale", error=str(e), correlation_id=str(correlation_id))
            if self._ctx.audit_logger:
                await self._ctx.audit_logger.log_storage_error(
                    operation="apply_derived_totals",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )


class _Flow:
    def __init__(self, context: LedgerContext, totals: Optional[DerivedTotals] = None):
        self._ctx = context
        self._storage = context.storage
        self._audit_logger = context.audit_logger
        self._totals = totals or DerivedTotals(context)

    async def _remove(self, entry: Entry, correlation_id: UUID) -> None:
        """Delete an entry and the discount entries that point at it."""
        for dependent in await self._ctx.dependents_of(entry.id):
            if await self._storage.delete_entry(dependent.id):
                await self._totals.apply(transition(dependent, None), correlation_id)
        if not await self._storage.delete_entry(entry.id):
            raise NotFoundError("entry", entry.id)
        await self._totals.apply(transition(entry, None), correlation_id)


class EntryFlow(_Flow):
    """
    Single-entry lifecycle.

    Flow for every write:
    1. Validate → two-stage validator, plus state-machine checks
    2. Persist → one document write
    3. Apply → transition(old, new) deltas to derived totals
    4. Audit
    """

    async def _assign_bill_period(self, entry: Entry) -> Entry:
        if not entry.is_card_funded or entry.bill_period is not None:
            return entry
        card = await self._ctx.require_card(entry.card_id)
        return _revise(entry, bill_period=billing_period_for(entry.occurs_on, card.closing_day))

    async def record_entry(
        self,
        draft: EntryDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Entry:
        """
        Validate and persist one entry.

        A dict draft without a status starts pending when dated after
        today and completed otherwise. Card entries without a bill period
        get one from the card's closing day.
        """
        correlation_id = correlation_id or create_correlation_id()
        today = self._ctx.today()
        draft = self._ctx.with_user(draft)
        if isinstance(draft, dict) and "status" not in draft and draft.get("occurs_on"):
            occurs_on = draft["occurs_on"]
            if isinstance(occurs_on, str):
                occurs_on = date.fromisoformat(occurs_on)
            draft = {**draft, "status": status_for(occurs_on, today)}

        try:
            entry, result = await self._ctx.validator.check(draft, today)
        except ValidationError as e:
            await self._ctx.reject(e, correlation_id, "entry")
            raise

        entry = await self._assign_bill_period(entry)
        await self._storage.save_entry(entry)
        await self._totals.apply(transition(None, entry), correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_created(
                entry_id=entry.id,
                kind=entry.kind.value,
                amount=str(entry.amount),
                correlation_id=correlation_id,
            )
            for warning in result.warnings:
                logger.warning("entry_warning", entry_id=str(entry.id), warning=warning)

        return entry

    async def update_entry(
        self,
        entry_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Entry:
        """
        Apply field changes to one entry.

        Moving a card entry to another date or card recomputes its bill
        unless `bill_period` is part of the change.
        """
        correlation_id = correlation_id or create_correlation_id()
        old = await self._ctx.require_entry(entry_id)

        try:
            forbidden = IMMUTABLE_FIELDS & set(changes)
            if forbidden:
                raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(forbidden))}")
            if "status" in changes:
                status = _parse_status(changes["status"])
                if not can_transition(old.status, status):
                    raise PreconditionError(
                        "invalid_transition",
                        f"Cannot change status from {old.status.value} to {status.value}",
                    )

            relocated = "occurs_on" in changes or "card_id" in changes
            if old.anticipated_from_period is not None and (relocated or "bill_period" in changes):
                raise PreconditionError(
                    "anticipated",
                    "An anticipated installment keeps its date, card and bill; use move_entry",
                )
            if relocated and "bill_period" not in changes:
                changes = {**changes, "bill_period": None}
            new = _revise(old, **changes)
            new = await self._assign_bill_period(new)
            new, _ = await self._ctx.validator.check(new, self._ctx.today(), previous=old)
        except (ValidationError, PreconditionError) as e:
            await self._ctx.reject(e, correlation_id, "entry", entry_id)
            raise

        await self._storage.update_entry(new)
        await self._totals.apply(transition(old, new), correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.ENTRY_UPDATED,
                entry_id=new.id,
                description=f"Entry updated: {', '.join(sorted(changes))}",
                correlation_id=correlation_id,
                details={"fields": sorted(changes)},
            )
        return new

    async def delete_entry(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Entry:
        """
        Hard delete, reversing every contribution the entry made.

        An anticipated installment takes its discount entry with it.
        """
        correlation_id = correlation_id or create_correlation_id()
        entry = await self._ctx.require_entry(entry_id)
        await self._remove(entry, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.ENTRY_DELETED,
                entry_id=entry_id,
                description=f"Entry deleted: {entry.kind.value} {entry.amount}",
                correlation_id=correlation_id,
            )
        return entry

    async def move_entry(
        self,
        entry_id: UUID,
        delta_periods: int,
        correlation_id: Optional[UUID] = None,
    ) -> Entry:
        """Shift one card entry to the bill `delta_periods` months away."""
        correlation_id = correlation_id or create_correlation_id()
        old = await self._ctx.require_entry(entry_id)

        try:
            if not old.is_card_funded:
                raise PreconditionError("not_card_funded", "Only card entries belong to a bill")
            card = await self._ctx.require_card(old.card_id)
            new = plan_entry_move(old, delta_periods, self._ctx.today(), card)
        except (ValidationError, PreconditionError) as e:
            await self._ctx.reject(e, correlation_id, "entry", entry_id)
            raise

        await self._storage.update_entry(new)
        await self._totals.apply(transition(old, new), correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.ENTRY_MOVED,
                entry_id=entry_id,
                description=f"Entry moved from bill {old.bill_period} to {new.bill_period}",
                correlation_id=correlation_id,
                details={"from": str(old.bill_period), "to": str(new.bill_period)},
            )
        return new


class SeriesFlow(_Flow):
    """
    Multi-entry operations.

    Each one is planned and checked in full before the first write, then
    executed as a sequential bulk write. An incomplete run raises
    PartialFailureError carrying the BulkWriteResult; nothing is rolled back.
    """

    async def _create(self, entry: Entry, correlation_id: UUID) -> None:
        await self._storage.save_entry(entry)
        await self._totals.apply(transition(None, entry), correlation_id)

    async def _replace(self, old: Entry, new: Entry, correlation_id: UUID) -> None:
        await self._storage.update_entry(new)
        await self._totals.apply(transition(old, new), correlation_id)

    async def _replace_all(
        self,
        operation: str,
        old_entries: list[Entry],
        new_entries: list[Entry],
        correlation_id: UUID,
        on_progress: Optional[ProgressCallback],
        stop: Optional[asyncio.Event],
    ) -> BulkWriteResult:
        previous = {e.id: e for e in old_entries}

        async def write(entry: Entry) -> None:
            await self._replace(previous[entry.id], entry, correlation_id)

        return await run_sequential(operation, new_entries, write, on_progress, stop)

    async def expand_series(
        self,
        template: EntryDraft,
        interval: Union[RecurrenceInterval, str],
        count: int,
        split_mode: Union[SplitMode, str] = SplitMode.INSTALLMENT,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkWriteResult:
        """
        Persist `count` occurrences of `template`.

        `template.amount` is the total to split (INSTALLMENT) or the
        amount of every occurrence (FIXED).
        """
        correlation_id = correlation_id or create_correlation_id()
        today = self._ctx.today()

        try:
            split_mode = SplitMode(split_mode)
            interval = RecurrenceInterval(interval)
            template, _ = await self._ctx.validator.check(
                self._ctx.with_user(template),
                today,
                series_count=count,
                split_mode=split_mode,
            )
            closing_day = None
            if template.is_card_funded:
                closing_day = (await self._ctx.require_card(template.card_id)).closing_day
            planned = plan_series(template, interval, count, split_mode, today, closing_day)
        except ValidationError as e:
            await self._ctx.reject(e, correlation_id, "series")
            raise
        except ValueError as e:
            error = ValidationError(str(e))
            await self._ctx.reject(error, correlation_id, "series")
            raise error from e

        async def write(entry: Entry) -> None:
            await self._create(entry, correlation_id)

        result = await run_sequential("expand_series", planned, write, on_progress, stop)

        if self._audit_logger:
            await self._audit_logger.log_series_expanded(
                series_id=planned[0].series_id,
                achieved=result.achieved,
                total=result.total,
                correlation_id=correlation_id,
            )
        return await self._ctx.finish_bulk(result, correlation_id)

    async def retry_expansion(
        self,
        result: BulkWriteResult,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkWriteResult:
        """Write the entries an earlier expansion left unwritten."""
        correlation_id = correlation_id or create_correlation_id()

        async def write(entry: Entry) -> None:
            await self._create(entry, correlation_id)

        retried = await run_sequential(
            "retry_expansion", result.remaining, write, on_progress, stop
        )
        if self._audit_logger and result.remaining:
            await self._audit_logger.log_series_expanded(
                series_id=result.remaining[0].series_id,
                achieved=retried.achieved,
                total=retried.total,
                correlation_id=correlation_id,
            )
        return await self._ctx.finish_bulk(retried, correlation_id)

    async def anticipate(
        self,
        entry_id: UUID,
        discount: Optional[Decimal] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AnticipationPlan:
        """Pull a future installment into the bill open today."""
        correlation_id = correlation_id or create_correlation_id()
        entry = await self._ctx.require_entry(entry_id)

        try:
            if not entry.is_card_funded:
                raise PreconditionError("not_card_funded", "Only card installments can be anticipated")
            card = await self._ctx.require_card(entry.card_id)
            plan = plan_anticipation(entry, card, self._ctx.today(), discount)
        except (ValidationError, PreconditionError) as e:
            await self._ctx.reject(e, correlation_id, "entry", entry_id)
            raise

        writes = [plan.entry] + ([plan.discount_entry] if plan.discount_entry else [])

        async def write(item: Entry) -> None:
            if item.id == entry.id:
                await self._replace(entry, item, correlation_id)
            else:
                await self._create(item, correlation_id)

        result = await run_sequential("anticipate", writes, write)
        await self._ctx.finish_bulk(result, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.INSTALLMENT_ANTICIPATED,
                entry_id=entry_id,
                description=f"Installment anticipated from {entry.bill_period} to {plan.target_period}",
                correlation_id=correlation_id,
                details={
                    "from": str(entry.bill_period),
                    "to": str(plan.target_period),
                    "discount": str(discount) if discount else None,
                },
            )
        return plan

    async def move_series(
        self,
        series_id: UUID,
        delta_periods: int,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkWriteResult:
        """Shift every member of a series by `delta_periods` months."""
        correlation_id = correlation_id or create_correlation_id()
        members = await self._ctx.series_members(series_id)
        if not members:
            raise NotFoundError("series", series_id)

        try:
            card = None
            if members[0].is_card_funded:
                card = await self._ctx.require_card(members[0].card_id)
            shifted = plan_series_shift(members, delta_periods, self._ctx.today(), card)
        except (ValidationError, PreconditionError) as e:
            await self._ctx.reject(e, correlation_id, "series", series_id)
            raise

        result = await self._replace_all(
            "move_series", members, shifted, correlation_id, on_progress, stop
        )
        if self._audit_logger:
            await self._audit_logger.log_series_changed(
                event_type=AuditEventType.SERIES_MOVED,
                series_id=series_id,
                description=f"Series moved by {delta_periods} period(s): {result.achieved} of {result.total}",
                correlation_id=correlation_id,
                details={"delta_periods": delta_periods, "achieved": result.achieved},
            )
        return await self._ctx.finish_bulk(result, correlation_id)

    async def delete_from_installment(
        self,
        series_id: UUID,
        from_index: int,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkWriteResult:
        """
        Delete every member with installment_index >= from_index.

        The result's `achieved` is the number removed; zero is a valid outcome.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            tail = select_tail(await self._ctx.series_members(series_id), from_index)
        except ValidationError as e:
            await self._ctx.reject(e, correlation_id, "series", series_id)
            raise

        async def write(entry: Entry) -> None:
            await self._remove(entry, correlation_id)

        result = await run_sequential("delete_from_installment", tail, write, on_progress, stop)
        if self._audit_logger:
            await self._audit_logger.log_series_changed(
                event_type=AuditEventType.SERIES_TRUNCATED,
                series_id=series_id,
                description=f"Series truncated from installment {from_index}: {result.achieved} removed",
                correlation_id=correlation_id,
                details={"from_index": from_index, "removed": result.achieved},
            )
        return await self._ctx.finish_bulk(result, correlation_id)

    async def update_series(
        self,
        series_id: UUID,
        changes: dict[str, Any],
        from_index: int = 1,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkWriteResult:
        """Propagate description, category, notes or status to members from `from_index` on."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            unsupported = set(changes) - SERIES_EDITABLE_FIELDS
            if not changes or unsupported:
                raise ValidationError(
                    f"Series edits support {', '.join(sorted(SERIES_EDITABLE_FIELDS))}; "
                    f"got {', '.join(sorted(changes)) or 'nothing'}"
                )
            members = select_tail(await self._ctx.series_members(series_id), from_index)
            if "status" in changes:
                status = _parse_status(changes["status"])
                for member in members:
                    if not can_transition(member.status, status):
                        raise PreconditionError(
                            "invalid_transition",
                            f"Installment {member.installment_index} cannot go from "
                            f"{member.status.value} to {status.value}",
                        )
            revised = [_revise(member, **changes) for member in members]
        except (ValidationError, PreconditionError) as e:
            await self._ctx.reject(e, correlation_id, "series", series_id)
            raise

        result = await self._replace_all(
            "update_series", members, revised, correlation_id, on_progress, stop
        )
        if self._audit_logger:
            await self._audit_logger.log_series_changed(
                event_type=AuditEventType.SERIES_UPDATED,
                series_id=series_id,
                description=f"Series updated from installment {from_index}: {result.achieved} of {result.total}",
                correlation_id=correlation_id,
                details={"fields": sorted(changes), "from_index": from_index},
            )
        return await self._ctx.finish_bulk(result, correlation_id)


class BillingFlow(_Flow):
    """Card bills: views, payment and credit usage."""

    def __init__(self, context: LedgerContext, entry_flow: EntryFlow):
        super().__init__(context, entry_flow._totals)
        self._entry_flow = entry_flow

    async def bill_for(self, card_id: UUID, month: int, year: int) -> Bill:
        card = await self._ctx.require_card(card_id)
        period = BillPeriod(month=month, year=year)
        return aggregate_bill(card, period, await self._ctx.user_entries())

    async def bills_for(self, month: int, year: int) -> list[Bill]:
        """One bill per active card."""
        cards = await self._storage.list_cards(self._ctx.user_id)
        period = BillPeriod(month=month, year=year)
        return aggregate_bills(cards, period, await self._ctx.user_entries())

    async def pay_bill(
        self,
        card_id: UUID,
        month: int,
        year: int,
        account_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Entry:
        """
        Record the settlement of a bill.

        Debits the card's payment account unless `account_id` is given.
        """
        correlation_id = correlation_id or create_correlation_id()
        card = await self._ctx.require_card(card_id)
        bill = await self.bill_for(card_id, month, year)

        try:
            if bill.is_paid:
                raise PreconditionError("already_paid", f"Bill {bill.period} is already paid")
            if bill.total_amount <= 0:
                raise PreconditionError("empty_bill", f"Bill {bill.period} has nothing to pay")
        except PreconditionError as e:
            await self._ctx.reject(e, correlation_id, "card", card_id)
            raise

        settlement = Entry(
            user_id=self._ctx.user_id,
            kind=EntryKind.EXPENSE,
            amount=bill.total_amount,
            description=f"{card.name} bill {bill.period}"[:200],
            occurs_on=self._ctx.today(),
            status=EntryStatus.COMPLETED,
            account_id=account_id or card.payment_account_id,
            bill_reference=BillReference(card_id=card.id, period=bill.period),
        )
        settlement = await self._entry_flow.record_entry(settlement, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_bill_paid(
                card_id=card.id,
                period=str(bill.period),
                amount=str(bill.total_amount),
                settlement_entry_id=settlement.id,
                correlation_id=correlation_id,
            )
        return settlement

    async def card_usage(self, card_id: UUID) -> CardUsage:
        card = await self._ctx.require_card(card_id)
        return card_usage(card, await self._ctx.user_entries())

    async def adjust_card_usage(
        self,
        card_id: UUID,
        new_usage: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Entry]:
        """Record an adjustment in the open bill so usage becomes `new_usage`."""
        correlation_id = correlation_id or create_correlation_id()
        card = await self._ctx.require_card(card_id)
        usage = card_usage(card, await self._ctx.user_entries())
        entry = plan_card_adjustment(card, usage.used, new_usage, self._ctx.today())
        if entry is None:
            return None

        entry = await self._entry_flow.record_entry(entry, correlation_id)
        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.CARD_USAGE_ADJUSTED,
                entry_id=entry.id,
                description=f"Card usage adjusted from {usage.used} to {new_usage}",
                correlation_id=correlation_id,
                details={"card_id": str(card.id)},
            )
        return entry


class GoalFlow(_Flow):
    """Monthly category goals and long-term savings goals."""

    async def goal_progress(
        self,
        category_id: str,
        goal_type: Union[GoalType, str],
        month: int,
        year: int,
    ) -> Decimal:
        """Realized amount for a category and period, recomputed from the ledger."""
        entries = await self._storage.find_entries(EntryFilter(
            user_id=self._ctx.user_id,
            category_id=category_id,
            month=month,
            year=year,
        ))
        return monthly_progress(entries, category_id, goal_type, BillPeriod(month=month, year=year))

    async def create_monthly_goal(
        self,
        category_id: str,
        goal_type: Union[GoalType, str],
        target_amount: Decimal,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyGoal:
        correlation_id = correlation_id or create_correlation_id()
        goal_type = GoalType(goal_type)

        existing = await self._storage.find_monthly_goals(
            self._ctx.user_id, category_id=category_id, goal_type=goal_type, month=month, year=year
        )
        if any(g.is_active for g in existing):
            error = PreconditionError(
                "goal_exists",
                f"An active {goal_type.value} goal for {category_id} in {month:02d}/{year} exists",
            )
            await self._ctx.reject(error, correlation_id, "goal")
            raise error

        try:
            goal = MonthlyGoal(
                user_id=self._ctx.user_id,
                category_id=category_id,
                goal_type=goal_type,
                period=BillPeriod(month=month, year=year),
                target_amount=target_amount,
                current_amount=await self.goal_progress(category_id, goal_type, month, year),
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid monthly goal: {e}") from e

        await self._storage.save_monthly_goal(goal)
        if self._audit_logger:
            await self._audit_logger.log_goal(
                event_type=AuditEventType.GOAL_CREATED,
                goal_id=goal.id,
                description=f"Monthly goal created: {category_id} {goal.period} target {target_amount}",
                correlation_id=correlation_id,
            )
        return goal

    async def refresh_monthly_goals(
        self,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> list[MonthlyGoal]:
        """Recompute every active goal of a period from the ledger."""
        correlation_id = correlation_id or create_correlation_id()
        goals = await self._storage.find_monthly_goals(self._ctx.user_id, month=month, year=year)

        refreshed = []
        for goal in goals:
            if not goal.is_active:
                continue
            current = await self.goal_progress(goal.category_id, goal.goal_type, month, year)
            if current != goal.current_amount:
                if self._audit_logger:
                    await self._audit_logger.log_goal(
                        event_type=AuditEventType.GOAL_PROGRESS_REFRESHED,
                        goal_id=goal.id,
                        description=f"Goal progress {goal.current_amount} -> {current}",
                        correlation_id=correlation_id,
                    )
                goal.current_amount = current
                goal.updated_at = utcnow()
                await self._storage.update_monthly_goal(goal)
            refreshed.append(goal)
        return refreshed

    async def monthly_goal_alerts(self, month: int, year: int) -> list[MonthlyGoal]:
        """Expense goals at or above the alert threshold, not yet acknowledged."""
        goals = await self._storage.find_monthly_goals(self._ctx.user_id, month=month, year=year)
        threshold = self._ctx.settings.goal_alert_threshold
        return [g for g in goals if needs_alert(g, threshold)]

    async def acknowledge_alert(self, goal_id: UUID) -> MonthlyGoal:
        goal = await self._storage.get_monthly_goal(goal_id)
        if goal is None:
            raise NotFoundError("monthly goal", goal_id)
        goal.alert_acknowledged = True
        goal.updated_at = utcnow()
        await self._storage.update_monthly_goal(goal)
        return goal

    async def create_savings_goal(
        self,
        name: str,
        target_amount: Decimal,
        deadline: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        correlation_id = correlation_id or create_correlation_id()
        try:
            goal = SavingsGoal(
                user_id=self._ctx.user_id,
                name=name,
                target_amount=target_amount,
                deadline=deadline,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid savings goal: {e}") from e

        await self._storage.save_savings_goal(goal)
        if self._audit_logger:
            await self._audit_logger.log_goal(
                event_type=AuditEventType.GOAL_CREATED,
                goal_id=goal.id,
                description=f"Savings goal created: {name} target {target_amount}",
                correlation_id=correlation_id,
            )
        return goal

    async def recompute_savings_goal(self, goal_id: UUID) -> SavingsGoal:
        """Rebuild a savings goal's total from its completed contributions."""
        goal = await self._storage.get_savings_goal(goal_id)
        if goal is None:
            raise NotFoundError("savings goal", goal_id)

        total = ZERO
        for entry in await self._ctx.user_entries():
            if entry.goal_id == goal_id and entry.status == EntryStatus.COMPLETED:
                total += entry.amount
        goal.current_amount = max(ZERO, total)
        if goal.completed_at is None and goal.current_amount >= goal.target_amount:
            goal.completed_at = utcnow()
        goal.updated_at = utcnow()
        await self._storage.update_savings_goal(goal)
        return goal

    async def deactivate_monthly_goal(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyGoal:
        """Stop tracking a goal. Its progress is frozen and a new goal may take its place."""
        correlation_id = correlation_id or create_correlation_id()
        goal = await self._storage.get_monthly_goal(goal_id)
        if goal is None:
            raise NotFoundError("monthly goal", goal_id)
        if goal.is_active:
            goal.is_active = False
            goal.updated_at = utcnow()
            await self._storage.update_monthly_goal(goal)
            if self._audit_logger:
                await self._audit_logger.log_goal(
                    event_type=AuditEventType.GOAL_DEACTIVATED,
                    goal_id=goal_id,
                    description=f"Monthly goal deactivated: {goal.category_id} {goal.period}",
                    correlation_id=correlation_id,
                )
        return goal

    async def delete_monthly_goal(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        if not await self._storage.delete_monthly_goal(goal_id):
            raise NotFoundError("monthly goal", goal_id)
        if self._audit_logger:
            await self._audit_logger.log_goal(
                event_type=AuditEventType.GOAL_DELETED,
                goal_id=goal_id,
                description="Monthly goal deleted",
                correlation_id=correlation_id,
            )

    async def deactivate_savings_goal(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        """Close a savings goal. Existing contributions keep counting toward it."""
        correlation_id = correlation_id or create_correlation_id()
        goal = await self._storage.get_savings_goal(goal_id)
        if goal is None:
            raise NotFoundError("savings goal", goal_id)
        if goal.is_active:
            goal.is_active = False
            goal.updated_at = utcnow()
            await self._storage.update_savings_goal(goal)
            if self._audit_logger:
                await self._audit_logger.log_goal(
                    event_type=AuditEventType.GOAL_DEACTIVATED,
                    goal_id=goal_id,
                    description=f"Savings goal deactivated: {goal.name}",
                    correlation_id=correlation_id,
                )
        return goal

    async def delete_savings_goal(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a savings goal.

        Entries that contributed keep their goal_id; later changes to them
        no longer touch any goal.
        """
        correlation_id = correlation_id or create_correlation_id()
        if not await self._storage.delete_savings_goal(goal_id):
            raise NotFoundError("savings goal", goal_id)
        if self._audit_logger:
            await self._audit_logger.log_goal(
                event_type=AuditEventType.GOAL_DELETED,
                goal_id=goal_id,
                description="Savings goal deleted",
                correlation_id=correlation_id,
            )


class BalanceFlow(_Flow):
    """Account balances: cached value, full recompute and manual adjustment."""

    async def account_balance(self, account_id: UUID) -> Decimal:
        """The cached balance."""
        return (await self._ctx.require_account(account_id)).balance

    async def recompute_balance(
        self,
        account_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """Rebuild the balance from the initial balance and completed entries."""
        correlation_id = correlation_id or create_correlation_id()
        account = await self._ctx.require_account(account_id)
        entries = await self._storage.find_entries(
            EntryFilter(user_id=self._ctx.user_id, account_id=account_id)
        )
        balance = recompute_balance(account, entries)

        if balance != account.balance:
            if self._audit_logger:
                await self._audit_logger.log_balance(
                    event_type=AuditEventType.BALANCE_RECOMPUTED,
                    account_id=account_id,
                    old_balance=str(account.balance),
                    new_balance=str(balance),
                    correlation_id=correlation_id,
                )
            account.balance = balance
            account.updated_at = utcnow()
            await self._storage.update_account(account)
        return balance

    async def adjust_balance(
        self,
        account_id: UUID,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Entry]:
        """
        Reconcile the cached balance to `new_balance`.

        Records one completed adjustment entry for the difference and sets
        the cached balance directly. Returns None when nothing changes.
        """
        correlation_id = correlation_id or create_correlation_id()
        account = await self._ctx.require_account(account_id)
        old_balance = account.balance

        entry = plan_adjustment(account, new_balance, self._ctx.today())
        if entry is None:
            return None

        await self._storage.save_entry(entry)
        account.balance = new_balance
        account.updated_at = utcnow()
        await self._storage.update_account(account)

        if self._audit_logger:
            await self._audit_logger.log_balance(
                event_type=AuditEventType.BALANCE_ADJUSTED,
                account_id=account_id,
                old_balance=str(old_balance),
                new_balance=str(new_balance),
                correlation_id=correlation_id,
            )
        return entry


class AccountFlow(_Flow):
    """
    Accounts and cards: setup, archiving and removal of their entries.

    Archiving only stops new entries from using an account or card. Its
    existing entries keep counting toward balances, bills and goals.
    """

    async def create_account(
        self,
        name: str,
        initial_balance: Decimal = ZERO,
        include_in_total: bool = True,
    ) -> Account:
        try:
            account = Account(
                user_id=self._ctx.user_id,
                name=name,
                initial_balance=initial_balance,
                include_in_total=include_in_total,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid account: {e}") from e
        await self._storage.save_account(account)
        return account

    async def create_card(
        self,
        name: str,
        closing_day: int,
        due_day: int,
        credit_limit: Decimal,
        payment_account_id: UUID,
    ) -> Card:
        validate_day(closing_day, "closing_day")
        validate_day(due_day, "due_day")
        await self._ctx.require_account(payment_account_id)
        try:
            card = Card(
                user_id=self._ctx.user_id,
                name=name,
                closing_day=closing_day,
                due_day=due_day,
                credit_limit=credit_limit,
                payment_account_id=payment_account_id,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid card: {e}") from e
        await self._storage.save_card(card)
        return card

    async def set_account_archived(
        self,
        account_id: UUID,
        archived: bool,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        correlation_id = correlation_id or create_correlation_id()
        account = await self._ctx.require_account(account_id)
        if account.is_archived == archived:
            return account
        account.is_archived = archived
        account.updated_at = utcnow()
        await self._storage.update_account(account)

        if self._audit_logger:
            await self._audit_logger.log_funding_source(
                event_type=(
                    AuditEventType.ACCOUNT_ARCHIVED if archived
                    else AuditEventType.ACCOUNT_UNARCHIVED
                ),
                entity_type="account",
                entity_id=account_id,
                description=f"Account {'archived' if archived else 'unarchived'}: {account.name}",
                correlation_id=correlation_id,
            )
        return account

    async def set_card_archived(
        self,
        card_id: UUID,
        archived: bool,
        correlation_id: Optional[UUID] = None,
    ) -> Card:
        correlation_id = correlation_id or create_correlation_id()
        card = await self._ctx.require_card(card_id)
        if card.is_archived == archived:
            return card
        card.is_archived = archived
        card.updated_at = utcnow()
        await self._storage.update_card(card)

        if self._audit_logger:
            await self._audit_logger.log_funding_source(
                event_type=(
                    AuditEventType.CARD_ARCHIVED if archived
                    else AuditEventType.CARD_UNARCHIVED
                ),
                entity_type="card",
                entity_id=card_id,
                description=f"Card {'archived' if archived else 'unarchived'}: {card.name}",
                correlation_id=correlation_id,
            )
        return card

    async def total_balance(self) -> Decimal:
        """Sum of the cached balances of accounts included in the total."""
        accounts = await self._storage.list_accounts(self._ctx.user_id)
        return sum((a.balance for a in accounts if a.include_in_total), ZERO)

    async def _funded_entries(
        self,
        account_id: Optional[UUID],
        card_id: Optional[UUID],
    ) -> list[Entry]:
        if (account_id is None) == (card_id is None):
            raise ValidationError("Give exactly one of account_id or card_id")
        if account_id is not None:
            await self._ctx.require_account(account_id)
        else:
            await self._ctx.require_card(card_id)
        return await self._storage.find_entries(EntryFilter(
            user_id=self._ctx.user_id,
            account_id=account_id,
            card_id=card_id,
        ))

    async def count_entries(
        self,
        account_id: Optional[UUID] = None,
        card_id: Optional[UUID] = None,
    ) -> int:
        """Entries funded by the account (transfers into it included) or the card."""
        return len(await self._funded_entries(account_id, card_id))

    async def delete_entries(
        self,
        account_id: Optional[UUID] = None,
        card_id: Optional[UUID] = None,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BulkWriteResult:
        """
        Delete every entry of an account or card, one write at a time.

        Each deletion reverses its contributions to derived totals. Discount
        entries are removed together with the installment they belong to.
        """
        correlation_id = correlation_id or create_correlation_id()
        entries = await self._funded_entries(account_id, card_id)
        ids = {e.id for e in entries}
        principals = [e for e in entries if e.related_entry_id not in ids]

        async def write(entry: Entry) -> None:
            await self._remove(entry, correlation_id)

        result = await run_sequential("delete_entries", principals, write, on_progress, stop)

        if self._audit_logger:
            entity_type = "account" if account_id is not None else "card"
            await self._audit_logger.log_funding_source(
                event_type=AuditEventType.ENTRIES_PURGED,
                entity_type=entity_type,
                entity_id=account_id or card_id,
                description=f"Entries deleted from {entity_type}: {result.achieved} of {result.total}",
                correlation_id=correlation_id,
                details={"achieved": result.achieved, "total": result.total},
            )
        return await self._ctx.finish_bulk(result, correlation_id)


class LedgerService:
    """
    Caller-facing surface of the ledger.

    Every method returns a value or raises one of the errors in
    finledger.errors.
    """

    def __init__(self, context: LedgerContext):
        self.context = context
        totals = DerivedTotals(context)
        self.entries = EntryFlow(context, totals)
        self.series = SeriesFlow(context, totals)
        self.billing = BillingFlow(context, self.entries)
        self.goals = GoalFlow(context, totals)
        self.balances = BalanceFlow(context, totals)
        self.accounts = AccountFlow(context, totals)
        self.reports = ReportExecutor(context.storage, context.user_id)

    # Accounts and cards

    async def create_account(
        self,
        name: str,
        initial_balance: Decimal = ZERO,
        include_in_total: bool = True,
    ) -> Account:
        return await self.accounts.create_account(name, initial_balance, include_in_total)

    async def create_card(
        self,
        name: str,
        closing_day: int,
        due_day: int,
        credit_limit: Decimal,
        payment_account_id: UUID,
    ) -> Card:
        return await self.accounts.create_card(
            name, closing_day, due_day, credit_limit, payment_account_id
        )

    async def archive_account(self, account_id: UUID) -> Account:
        return await self.accounts.set_account_archived(account_id, True)

    async def unarchive_account(self, account_id: UUID) -> Account:
        return await self.accounts.set_account_archived(account_id, False)

    async def archive_card(self, card_id: UUID) -> Card:
        return await self.accounts.set_card_archived(card_id, True)

    async def unarchive_card(self, card_id: UUID) -> Card:
        return await self.accounts.set_card_archived(card_id, False)

    async def total_balance(self) -> Decimal:
        return await self.accounts.total_balance()

    async def count_account_entries(self, account_id: UUID) -> int:
        return await self.accounts.count_entries(account_id=account_id)

    async def count_card_entries(self, card_id: UUID) -> int:
        return await self.accounts.count_entries(card_id=card_id)

    async def delete_account_entries(
        self,
        account_id: UUID,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> BulkWriteResult:
        return await self.accounts.delete_entries(
            account_id=account_id, on_progress=on_progress, stop=stop
        )

    async def delete_card_entries(
        self,
        card_id: UUID,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> BulkWriteResult:
        return await self.accounts.delete_entries(
            card_id=card_id, on_progress=on_progress, stop=stop
        )

    # Entries

    async def record_entry(self, draft: EntryDraft) -> Entry:
        return await self.entries.record_entry(draft)

    async def update_entry(self, entry_id: UUID, changes: dict[str, Any]) -> Entry:
        return await self.entries.update_entry(entry_id, changes)

    async def delete_entry(self, entry_id: UUID) -> Entry:
        return await self.entries.delete_entry(entry_id)

    async def move_entry(self, entry_id: UUID, delta_periods: int) -> Entry:
        return await self.entries.move_entry(entry_id, delta_periods)

    # Series

    async def expand_series(
        self,
        template: EntryDraft,
        interval: Union[RecurrenceInterval, str],
        count: int,
        split_mode: Union[SplitMode, str] = SplitMode.INSTALLMENT,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> BulkWriteResult:
        return await self.series.expand_series(
            template, interval, count, split_mode, on_progress, stop
        )

    async def retry_expansion(
        self,
        result: BulkWriteResult,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> BulkWriteResult:
        return await self.series.retry_expansion(result, on_progress, stop)

    async def anticipate(
        self,
        entry_id: UUID,
        discount: Optional[Decimal] = None,
    ) -> AnticipationPlan:
        return await self.series.anticipate(entry_id, discount)

    async def move_series(
        self,
        series_id: UUID,
        delta_periods: int,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> BulkWriteResult:
        return await self.series.move_series(series_id, delta_periods, on_progress, stop)

    async def delete_from_installment(
        self,
        series_id: UUID,
        from_index: int,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> int:
        """Number of entries removed."""
        result = await self.series.delete_from_installment(
            series_id, from_index, on_progress, stop
        )
        return result.achieved

    async def update_series(
        self,
        series_id: UUID,
        changes: dict[str, Any],
        from_index: int = 1,
        on_progress: Optional[ProgressCallback] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> BulkWriteResult:
        return await self.series.update_series(
            series_id, changes, from_index, on_progress, stop
        )

    # Billing

    async def bill_for(self, card_id: UUID, month: int, year: int) -> Bill:
        return await self.billing.bill_for(card_id, month, year)

    async def bills_for(self, month: int, year: int) -> list[Bill]:
        return await self.billing.bills_for(month, year)

    async def pay_bill(
        self,
        card_id: UUID,
        month: int,
        year: int,
        account_id: Optional[UUID] = None,
    ) -> Entry:
        return await self.billing.pay_bill(card_id, month, year, account_id)

    async def card_usage(self, card_id: UUID) -> CardUsage:
        return await self.billing.card_usage(card_id)

    async def adjust_card_usage(self, card_id: UUID, new_usage: Decimal) -> Optional[Entry]:
        return await self.billing.adjust_card_usage(card_id, new_usage)

    # Goals

    async def goal_progress(
        self,
        category_id: str,
        goal_type: Union[GoalType, str],
        month: int,
        year: int,
    ) -> Decimal:
        return await self.goals.goal_progress(category_id, goal_type, month, year)

    async def create_monthly_goal(
        self,
        category_id: str,
        goal_type: Union[GoalType, str],
        target_amount: Decimal,
        month: int,
        year: int,
    ) -> MonthlyGoal:
        return await self.goals.create_monthly_goal(
            category_id, goal_type, target_amount, month, year
        )

    async def refresh_monthly_goals(self, month: int, year: int) -> list[MonthlyGoal]:
        return await self.goals.refresh_monthly_goals(month, year)

    async def monthly_goal_alerts(self, month: int, year: int) -> list[MonthlyGoal]:
        return await self.goals.monthly_goal_alerts(month, year)

    async def acknowledge_alert(self, goal_id: UUID) -> MonthlyGoal:
        return await self.goals.acknowledge_alert(goal_id)

    async def deactivate_monthly_goal(self, goal_id: UUID) -> MonthlyGoal:
        return await self.goals.deactivate_monthly_goal(goal_id)

    async def delete_monthly_goal(self, goal_id: UUID) -> None:
        await self.goals.delete_monthly_goal(goal_id)

    async def create_savings_goal(
        self,
        name: str,
        target_amount: Decimal,
        deadline: Optional[date] = None,
    ) -> SavingsGoal:
        return await self.goals.create_savings_goal(name, target_amount, deadline)

    async def deactivate_savings_goal(self, goal_id: UUID) -> SavingsGoal:
        return await self.goals.deactivate_savings_goal(goal_id)

    async def delete_savings_goal(self, goal_id: UUID) -> None:
        await self.goals.delete_savings_goal(goal_id)

    # Balances

    async def account_balance(self, account_id: UUID) -> Decimal:
        return await self.balances.account_balance(account_id)

    async def recompute_balance(self, account_id: UUID) -> Decimal:
        return await self.balances.recompute_balance(account_id)

    async def adjust_balance(self, account_id: UUID, new_balance: Decimal) -> Optional[Entry]:
        return await self.balances.adjust_balance(account_id, new_balance)


def create_app_components(
    storage_backend: Optional[str] = None,
    clock: Optional[Clock] = None,
    user_id: Optional[str] = None,
) -> LedgerService:
    """
    Factory function to create the ledger service.

    Args:
        storage_backend: "memory" or "google_sheets"; defaults to the
                         configured AppSettings.storage_backend.
        clock: Source of "today"; defaults to the system clock.
        user_id: Owner of the ledger; defaults to LedgerSettings.default_user_id.

    Returns:
        A LedgerService wired to the chosen backend
    """
    backend = storage_backend or get_settings().app.storage_backend

    storage: LedgerStorageInterface
    audit_storage: Optional[AuditStorageInterface]
    if backend == "google_sheets":
        from finledger.services.storage.google_sheets import (
            GoogleSheetsAuditStorage,
            GoogleSheetsClient,
            GoogleSheetsLedgerStorage,
        )
        sheets_client = GoogleSheetsClient()
        storage = GoogleSheetsLedgerStorage(sheets_client)
        audit_storage = GoogleSheetsAuditStorage(sheets_client)
    elif backend == "memory":
        storage = InMemoryLedgerStorage()
        audit_storage = InMemoryAuditStorage()
    else:
        raise ValidationError(f"Unknown storage backend: {backend}")

    context = LedgerContext(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        clock=clock,
        user_id=user_id,
    )
    return LedgerService(context)
