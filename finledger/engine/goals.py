"""
Monthly goal progress.

A card purchase counts in its bill period, any other entry in the month
it occurs. Settlement entries never count: the purchases they pay for
already did.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Union

from finledger.engine.transitions import ProgressKey, progress_effects
from finledger.models.ledger import (
    ZERO,
    BillPeriod,
    Entry,
    GoalType,
    MonthlyGoal,
)


def monthly_progress(
    entries: Iterable[Entry],
    category_id: str,
    goal_type: Union[GoalType, str],
    period: BillPeriod,
) -> Decimal:
    """Realized amount for one category, goal type and period."""
    key = ProgressKey(category_id=category_id, goal_type=GoalType(goal_type), period=period)
    total = ZERO
    for entry in entries:
        total += progress_effects(entry).get(key, ZERO)
    return total


def progress_by_key(entries: Iterable[Entry]) -> dict[ProgressKey, Decimal]:
    """Every bucket the entries touch, with its total."""
    totals: dict[ProgressKey, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        for key, amount in progress_effects(entry).items():
            totals[key] += amount
    return dict(totals)


def goal_key(goal: MonthlyGoal) -> ProgressKey:
    return ProgressKey(
        category_id=goal.category_id,
        goal_type=goal.goal_type,
        period=goal.period,
    )


def needs_alert(goal: MonthlyGoal, threshold: Decimal) -> bool:
    """Expense goals at or above `threshold` of the target that nobody has acknowledged."""
    if goal.goal_type != GoalType.EXPENSE or not goal.is_active or goal.alert_acknowledged:
        return False
    return goal.current_amount >= goal.target_amount * threshold
