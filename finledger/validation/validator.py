"""
Two-Stage Validation Pipeline

DESIGN DECISION: Every entry passes two distinct stages before any write:

STAGE 1 - SCHEMA VALIDATION:
- Type checking and required fields (pydantic construction)
- Funding-source shape (exactly one of account or card, transfer rules)
- Positive amount

STAGE 2 - SEMANTIC VALIDATION:
- Referenced account, card and goal exist and are usable
- Suspiciously large amounts and far-future dates
- Series limits (occurrence count, at least one cent per installment)

Stage 2 only runs if stage 1 passes, because it needs a well-formed entry
and storage access.

IMPORTANT: Validation NEVER silently fixes issues. Errors abort the
operation; warnings are reported back to the caller.
"""

from datetime import date, timedelta
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from finledger.config import get_settings
from finledger.config.settings import LedgerSettings
from finledger.engine.series import to_cents
from finledger.errors import ValidationError
from finledger.models.ledger import (
    Entry,
    EntryKind,
    SplitMode,
    ValidationIssue,
    ValidationResult,
)
from finledger.services.storage import LedgerStorageInterface


class EntryValidator:
    """
    Validates entry drafts through a two-stage pipeline.

    Stage 1: Schema validation (runs without storage)
    Stage 2: Semantic validation (needs storage for reference checks)
    """

    def __init__(
        self,
        storage: Optional[LedgerStorageInterface] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            storage: Storage interface for reference checks.
                     If None, reference checks are skipped.
            settings: Thresholds; defaults to the configured ledger settings.
        """
        self._storage = storage
        self._settings = settings or get_settings().ledger

    def _validate_schema(
        self,
        draft: Union[Entry, dict[str, Any]],
    ) -> tuple[Optional[Entry], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (entry or None, list_of_issues)
        """
        if isinstance(draft, Entry):
            return draft, []

        try:
            return Entry.model_validate(draft), []
        except PydanticValidationError as e:
            issues = []
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "entry"
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing" if error["type"] == "missing" else "invalid_value",
                    message=error["msg"],
                    severity="error",
                ))
            return None, issues

    async def _validate_references(
        self,
        entry: Entry,
        previous: Optional[Entry] = None,
    ) -> list[ValidationIssue]:
        """
        Referenced account, card, destination and goal must exist.

        When `previous` is given only references the change introduces
        are checked, so entries on an archived account or card can still
        change status.
        """
        issues = []
        if self._storage is None:
            return issues

        def introduced(field: str) -> bool:
            value = getattr(entry, field)
            return value is not None and (previous is None or getattr(previous, field) != value)

        if introduced("account_id"):
            account = await self._storage.get_account(entry.account_id)
            if account is None:
                issues.append(ValidationIssue(
                    field="account_id",
                    issue_type="unknown_reference",
                    message=f"Account {entry.account_id} does not exist",
                    severity="error",
                ))
            elif account.is_archived:
                issues.append(ValidationIssue(
                    field="account_id",
                    issue_type="archived",
                    message=f"Account {account.name} is archived",
                    severity="error",
                    suggested_fix="Unarchive the account or pick another one",
                ))

        if introduced("destination_account_id"):
            destination = await self._storage.get_account(entry.destination_account_id)
            if destination is None:
                issues.append(ValidationIssue(
                    field="destination_account_id",
                    issue_type="unknown_reference",
                    message=f"Account {entry.destination_account_id} does not exist",
                    severity="error",
                ))

        if introduced("card_id"):
            card = await self._storage.get_card(entry.card_id)
            if card is None:
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="unknown_reference",
                    message=f"Card {entry.card_id} does not exist",
                    severity="error",
                ))
            elif card.is_archived:
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="archived",
                    message=f"Card {card.name} is archived",
                    severity="error",
                ))

        if introduced("goal_id"):
            goal = await self._storage.get_savings_goal(entry.goal_id)
            if goal is None:
                issues.append(ValidationIssue(
                    field="goal_id",
                    issue_type="unknown_reference",
                    message=f"Savings goal {entry.goal_id} does not exist",
                    severity="error",
                ))

        return issues

    def _validate_semantic(
        self,
        entry: Entry,
        today: date,
        series_count: Optional[int],
        split_mode: Optional[SplitMode],
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation that needs no storage.

        Checks:
        - Absurd amounts
        - Far-future dates (single entries only; series are meant to run ahead)
        - Series limits
        """
        issues = []

        if entry.amount > self._settings.max_entry_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({entry.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if series_count is None:
            horizon = today + timedelta(days=self._settings.future_date_tolerance_days)
            if entry.occurs_on > horizon:
                issues.append(ValidationIssue(
                    field="occurs_on",
                    issue_type="future_date",
                    message=f"Date ({entry.occurs_on}) is far in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))
            return issues

        if series_count < 1 or series_count > self._settings.max_series_count:
            issues.append(ValidationIssue(
                field="count",
                issue_type="invalid_value",
                message=(
                    f"A series needs between 1 and {self._settings.max_series_count} "
                    f"occurrences, got {series_count}"
                ),
                severity="error",
            ))
        elif split_mode == SplitMode.INSTALLMENT and to_cents(entry.amount) < series_count:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"{entry.amount} cannot be split into {series_count} installments",
                severity="error",
                suggested_fix="Use fewer installments or a larger total",
            ))

        if entry.kind == EntryKind.TRANSFER and split_mode == SplitMode.INSTALLMENT:
            issues.append(ValidationIssue(
                field="split_mode",
                issue_type="invalid_value",
                message="Transfers repeat a fixed amount; they cannot be split",
                severity="error",
            ))

        return issues

    async def validate(
        self,
        draft: Union[Entry, dict[str, Any]],
        today: date,
        series_count: Optional[int] = None,
        split_mode: Optional[SplitMode] = None,
        previous: Optional[Entry] = None,
    ) -> tuple[ValidationResult, Optional[Entry]]:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: An Entry or the raw fields of one
            today: Reference date for future-date checks
            series_count: Number of occurrences when the draft is a series template
            split_mode: How the series amount is spread
            previous: The stored version when the draft edits an existing entry

        Returns:
            (ValidationResult with all issues found, parsed entry or None)
        """
        entry, all_issues = self._validate_schema(draft)
        schema_valid = entry is not None

        semantic_valid = False
        if schema_valid:
            all_issues.extend(await self._validate_references(entry, previous))
            all_issues.extend(self._validate_semantic(entry, today, series_count, split_mode))
            semantic_valid = not any(issue.severity == "error" for issue in all_issues)

        result = ValidationResult(
            entity_id=entry.id if entry is not None else uuid4(),
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )
        return result, entry

    async def check(
        self,
        draft: Union[Entry, dict[str, Any]],
        today: date,
        series_count: Optional[int] = None,
        split_mode: Optional[SplitMode] = None,
        previous: Optional[Entry] = None,
    ) -> tuple[Entry, ValidationResult]:
        """Like `validate`, but raise ValidationError unless the draft is valid."""
        result, entry = await self.validate(draft, today, series_count, split_mode, previous)
        if not result.is_valid:
            raise ValidationError(self.summarize(result), issues=result.issues)
        return entry, result

    def summarize(self, result: ValidationResult) -> str:
        """One line per error, for exception messages and logs."""
        if result.is_valid:
            return "All checks passed"
        errors = [f"{i.field}: {i.message}" for i in result.issues if i.severity == "error"]
        return "Entry rejected: " + "; ".join(errors)
