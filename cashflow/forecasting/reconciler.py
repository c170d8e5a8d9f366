"""
Transaction Reconciler

Overlays a month's actual transactions onto its forecast events.

Matching, per forecast event carrying a rule link:
1. Exact: an unconsumed transaction linked to the same rule on the same
   calendar date
2. Fuzzy: the unconsumed transaction linked to the same rule nearest to
   the scheduled date, accepted within the match window (7 days default)

Pay dates and bill dates drift (weekends, processing delays), so exact
matching alone would leave most real transactions unreconciled.

A matched event is replaced by a new actualized event; inputs are never
mutated. Every transaction satisfies at most one event. Linked
transactions left over become their own events, as do one-offs.

Running the reconciler on its own output with the same transactions
returns the same events: transactions already carried by an event count
as consumed.
"""

from typing import Optional, Sequence

from cashflow.dates import day_distance, is_same_day
from cashflow.models.forecast import CashEvent, EventType
from cashflow.models.ledger import Transaction

DEFAULT_MATCH_WINDOW_DAYS = 7


def _group_by_rule(
    transactions: Sequence[Transaction],
) -> tuple[dict[int, list[Transaction]], dict[int, list[Transaction]], list[Transaction]]:
    by_income_rule: dict[int, list[Transaction]] = {}
    by_expense: dict[int, list[Transaction]] = {}
    one_offs: list[Transaction] = []

    for txn in transactions:
        if txn.income_rule_id is not None:
            by_income_rule.setdefault(txn.income_rule_id, []).append(txn)
        elif txn.recurring_expense_id is not None:
            by_expense.setdefault(txn.recurring_expense_id, []).append(txn)
        else:
            one_offs.append(txn)

    return by_income_rule, by_expense, one_offs


def find_match(
    event: CashEvent,
    candidates: Sequence[Transaction],
    consumed: set[int],
    window_days: int = DEFAULT_MATCH_WINDOW_DAYS,
) -> Optional[Transaction]:
    """Pick the transaction that actualizes `event`, if any."""
    available = [t for t in candidates if t.id not in consumed]

    for txn in available:
        if is_same_day(txn.date, event.event_date):
            return txn

    if not available:
        return None

    # min() keeps the first of equally distant candidates
    nearest = min(available, key=lambda t: day_distance(t.date, event.event_date))
    if day_distance(nearest.date, event.event_date) <= window_days:
        return nearest
    return None


def reconcile(
    events: Sequence[CashEvent],
    transactions: Sequence[Transaction],
    window_days: int = DEFAULT_MATCH_WINDOW_DAYS,
) -> list[CashEvent]:
    """
    Merge forecast events with actual transactions.

    Args:
        events: Forecast events in generation order
        transactions: The same month's actual transactions
        window_days: Max day distance for a fuzzy match

    Returns:
        New list of events sorted by date (stable)
    """
    by_income_rule, by_expense, one_offs = _group_by_rule(transactions)

    consumed: set[int] = {
        e.transaction_id for e in events if e.transaction_id is not None
    }

    result: list[CashEvent] = []
    for event in events:
        if event.actualized or event.rule_key is None:
            result.append(event)
            continue

        kind, rule_id = event.rule_key
        pool = by_income_rule if kind == "income" else by_expense
        match = find_match(event, pool.get(rule_id, []), consumed, window_days)

        if match is None:
            result.append(event)
        else:
            consumed.add(match.id)
            result.append(event.actualize(match))

    for pool, event_type in (
        (by_income_rule, EventType.INCOME),
        (by_expense, EventType.FIXED_EXPENSE),
    ):
        for txns in pool.values():
            for txn in txns:
                if txn.id not in consumed:
                    consumed.add(txn.id)
                    result.append(CashEvent.from_transaction(txn, event_type))

    for txn in one_offs:
        if txn.id not in consumed:
            consumed.add(txn.id)
            event_type = EventType.INCOME if txn.amount > 0 else EventType.FIXED_EXPENSE
            result.append(CashEvent.from_transaction(txn, event_type))

    return sorted(result, key=lambda e: e.event_date)
