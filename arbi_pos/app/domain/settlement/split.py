"""
Split-payment validation.

A settlement can be tendered across several methods. The rows carry the
amount exactly as the cashier typed it; validation re-parses it every time.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Sequence

from arbi_pos.app.core.exceptions import SplitMismatchError
from arbi_pos.app.domain.enums import SettlementMethod
from arbi_pos.app.domain.money import SPLIT_TOLERANCE, ZERO, format_amount, parse_amount, round_money


@dataclass(frozen=True)
class SplitPaymentRow:
    method: SettlementMethod
    amount_text: str = "0"

    @property
    def amount(self) -> Decimal:
        return parse_amount(self.amount_text)


def split_total(rows: Iterable[SplitPaymentRow]) -> Decimal:
    return sum((row.amount for row in rows), ZERO)


def validate_split(rows: Sequence[SplitPaymentRow], target: Decimal) -> bool:
    """True iff there is at least one row and the rows sum to target within 0.01."""
    if not rows:
        return False
    return abs(split_total(rows) - target) < SPLIT_TOLERANCE


def require_valid_split(rows: Sequence[SplitPaymentRow], target: Decimal):
    if not rows:
        raise SplitMismatchError(ZERO, target, "Add at least one split payment or turn off split")
    if not validate_split(rows, target):
        raise SplitMismatchError(split_total(rows), target)


def even_split(target: Decimal, methods: Sequence[SettlementMethod] = (SettlementMethod.CASH, SettlementMethod.CARD)) -> List[SplitPaymentRow]:
    """
    Seed rows that share the target evenly.

    The rounding remainder goes on the first row so the rows always sum
    exactly to the target.
    """
    if not methods:
        return []
    target = round_money(target)
    share = round_money(target / len(methods))
    first = target - share * (len(methods) - 1)
    amounts = [first] + [share] * (len(methods) - 1)
    return [SplitPaymentRow(method=method, amount_text=format_amount(amount)) for method, amount in zip(methods, amounts)]
