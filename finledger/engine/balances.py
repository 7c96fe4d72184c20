"""
Account balance reconciliation.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from finledger.engine.cycles import billing_period_for
from finledger.engine.transitions import balance_effects
from finledger.models.ledger import (
    ZERO,
    Account,
    Card,
    Entry,
    EntryKind,
    EntryStatus,
)


def recompute_balance(account: Account, entries: Iterable[Entry]) -> Decimal:
    """Initial balance plus every completed entry touching the account."""
    total = account.initial_balance
    for entry in entries:
        total += balance_effects(entry).get(account.id, ZERO)
    return total


def plan_adjustment(
    account: Account,
    new_balance: Decimal,
    today: date,
) -> Optional[Entry]:
    """
    The synthetic entry that explains a jump from the cached balance to
    `new_balance`, or None when they already match.
    """
    delta = new_balance - account.balance
    if delta == 0:
        return None
    return Entry(
        user_id=account.user_id,
        kind=EntryKind.INCOME if delta > 0 else EntryKind.EXPENSE,
        amount=abs(delta),
        description=f"Balance adjustment: {account.name}"[:200],
        occurs_on=today,
        status=EntryStatus.COMPLETED,
        account_id=account.id,
        is_adjustment=True,
    )


def plan_card_adjustment(
    card: Card,
    current_usage: Decimal,
    new_usage: Decimal,
    today: date,
) -> Optional[Entry]:
    """
    A card entry in the open bill moving usage to `new_usage`: a charge
    when usage grows, a credit when it shrinks.
    """
    delta = new_usage - current_usage
    if delta == 0:
        return None
    return Entry(
        user_id=card.user_id,
        kind=EntryKind.EXPENSE if delta > 0 else EntryKind.INCOME,
        amount=abs(delta),
        description=f"Usage adjustment: {card.name}"[:200],
        occurs_on=today,
        status=EntryStatus.COMPLETED,
        card_id=card.id,
        bill_period=billing_period_for(today, card.closing_day),
        is_adjustment=True,
    )
