"""
Credit allocation engine.

Spreads a settlement amount over a customer's outstanding credit, oldest
debt first. Everything here is pure and synchronous.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence, Tuple

from arbi_pos.app.core.exceptions import AmountExceedsCreditError, NothingToAllocateError
from arbi_pos.app.domain.money import ALLOCATION_EPSILON, ZERO, round_money


@dataclass(frozen=True)
class CreditLedgerEntry:
    """Credit-bearing portion of one completed order."""
    order_id: str
    credit_due: Decimal
    timestamp: int


@dataclass(frozen=True)
class AllocationPart:
    order_id: str
    amount_applied: Decimal


@dataclass(frozen=True)
class SettlementAllocation:
    parts: Tuple[AllocationPart, ...]

    @property
    def total(self) -> Decimal:
        return sum((part.amount_applied for part in self.parts), ZERO)

    @property
    def order_ids(self) -> Tuple[str, ...]:
        return tuple(part.order_id for part in self.parts)

    def __iter__(self):
        return iter(self.parts)

    def __len__(self):
        return len(self.parts)


def ledger_order(entries: Iterable[CreditLedgerEntry]) -> list:
    """Oldest debt first; equal timestamps fall back to order id."""
    return sorted(entries, key=lambda entry: (entry.timestamp, entry.order_id))


def total_due(entries: Iterable[CreditLedgerEntry]) -> Decimal:
    return sum((entry.credit_due for entry in entries), ZERO)


def validate_settlement_amount(requested: Decimal, credit_amount: Decimal) -> Decimal:
    """
    Check a requested settlement against the customer's credit.

    Returns the amount rounded to 2 dp.

    Raises:
        NothingToAllocateError: amount rounds to zero or below
        AmountExceedsCreditError: amount is above the outstanding credit
    """
    amount = round_money(requested)
    if amount <= 0:
        raise NothingToAllocateError("Enter a valid settlement amount")
    if amount > round_money(credit_amount):
        raise AmountExceedsCreditError(amount, round_money(credit_amount))
    return amount


def allocate(ledger: Sequence[CreditLedgerEntry], requested_amount: Decimal) -> SettlementAllocation:
    """
    Allocate a settlement amount across ledger entries.

    Walks the ledger oldest-first, applying min(remaining, credit_due) to
    each entry until the remaining amount is within ALLOCATION_EPSILON of
    zero. Each applied amount is rounded to 2 dp.

    Args:
        ledger: outstanding entries, any order
        requested_amount: amount the customer is paying

    Returns:
        SettlementAllocation with parts in allocation order

    Raises:
        NothingToAllocateError: empty ledger or non-positive amount
        AmountExceedsCreditError: amount is larger than the ledger total
    """
    entries = [entry for entry in ledger if entry.credit_due > 0]
    if not entries:
        raise NothingToAllocateError("No outstanding credit to settle")

    requested = round_money(requested_amount)
    if requested <= 0:
        raise NothingToAllocateError()

    available = total_due(entries)
    if requested - available > ALLOCATION_EPSILON:
        raise AmountExceedsCreditError(requested, available)

    remaining = requested
    parts = []
    for entry in ledger_order(entries):
        if remaining <= ALLOCATION_EPSILON:
            break
        applied = round_money(min(remaining, entry.credit_due))
        if applied > entry.credit_due:
            applied = entry.credit_due
        if applied <= 0:
            continue
        parts.append(AllocationPart(order_id=entry.order_id, amount_applied=applied))
        remaining -= applied

    return SettlementAllocation(parts=tuple(parts))
