"""
Ledger Consistency Engine

Pure planning functions: billing cycles, series expansion, anticipation,
series mutation, bill aggregation, goal and balance reconciliation. The
only async piece is the sequential bulk writer.
"""

from finledger.engine.anticipation import (
    AnticipationPlan,
    check_anticipation,
    plan_anticipation,
)
from finledger.engine.balances import (
    plan_adjustment,
    plan_card_adjustment,
    recompute_balance,
)
from finledger.engine.bills import aggregate_bill, aggregate_bills, card_usage
from finledger.engine.bulk import BulkFailure, BulkWriteResult, run_sequential
from finledger.engine.clock import Clock, FixedClock, SystemClock
from finledger.engine.cycles import (
    add_months,
    billing_period_for,
    due_date_for,
    is_period_closed,
    next_assignable_period,
    step_occurrence,
    validate_day,
)
from finledger.engine.goals import monthly_progress, needs_alert, progress_by_key
from finledger.engine.mutator import plan_entry_move, plan_series_shift, select_tail
from finledger.engine.series import plan_series, split_amount, status_for
from finledger.engine.transitions import (
    ProgressKey,
    TransitionDelta,
    can_transition,
    transition,
)

__all__ = [
    "AnticipationPlan",
    "check_anticipation",
    "plan_anticipation",
    "plan_adjustment",
    "plan_card_adjustment",
    "recompute_balance",
    "aggregate_bill",
    "aggregate_bills",
    "card_usage",
    "BulkFailure",
    "BulkWriteResult",
    "run_sequential",
    "Clock",
    "FixedClock",
    "SystemClock",
    "add_months",
    "billing_period_for",
    "due_date_for",
    "is_period_closed",
    "next_assignable_period",
    "step_occurrence",
    "validate_day",
    "monthly_progress",
    "needs_alert",
    "progress_by_key",
    "plan_entry_move",
    "plan_series_shift",
    "select_tail",
    "plan_series",
    "split_amount",
    "status_for",
    "ProgressKey",
    "TransitionDelta",
    "can_transition",
    "transition",
]
