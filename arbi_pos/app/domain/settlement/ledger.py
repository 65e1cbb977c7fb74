"""
Credit ledger construction.

Derives a customer's outstanding CreditLedgerEntry list from their orders.
"""

import logging
from decimal import Decimal
from typing import Iterable, List

from arbi_pos.app.domain.money import ALLOCATION_EPSILON, round_money
from arbi_pos.app.domain.records import Customer, Order
from arbi_pos.app.domain.settlement.allocation import CreditLedgerEntry, ledger_order, total_due

logger = logging.getLogger("arbi_pos.settlement")


def belongs_to_customer(order: Order, customer: Customer) -> bool:
    """
    Match an order to a customer.

    Phone numbers win when both sides have one. A customer without a phone
    matches on name, case-insensitively.
    """
    payment = order.payment
    order_name = ((payment.customer_name if payment else "") or order.customer_name or "").strip()
    order_phone = ((payment.customer_phone if payment else "") or order.customer_phone or "").strip()
    name = (customer.name or "").strip()
    phone = (customer.phone or "").strip()

    if phone:
        return bool(order_phone) and phone == order_phone
    return bool(order_name) and bool(name) and order_name.lower() == name.lower()


def build_credit_ledger(customer: Customer, orders: Iterable[Order]) -> List[CreditLedgerEntry]:
    """Ledger entries for every order of this customer with credit still due."""
    entries = [
        CreditLedgerEntry(order_id=order.id, credit_due=order.credit_due, timestamp=order.paid_at)
        for order in orders
        if belongs_to_customer(order, customer) and order.credit_due > 0
    ]
    return ledger_order(entries)


def outstanding_ledger(entries: Iterable[CreditLedgerEntry], credit_amount: Decimal) -> List[CreditLedgerEntry]:
    """
    Clip a ledger to the customer's aggregate credit, oldest first.

    The aggregate is authoritative: an entry beyond it is dropped and the
    entry straddling it is shortened.
    """
    ordered = ledger_order(entries)
    drift = total_due(ordered) - credit_amount
    if abs(drift) > ALLOCATION_EPSILON:
        logger.warning(
            "Credit ledger does not match customer credit",
            extra={"ledger_total": str(total_due(ordered)), "credit_amount": str(credit_amount)},
        )

    remaining = credit_amount
    clipped = []
    for entry in ordered:
        if remaining <= 0:
            break
        due = min(remaining, entry.credit_due)
        if due > 0:
            clipped.append(CreditLedgerEntry(entry.order_id, round_money(due), entry.timestamp))
            remaining -= due
    return clipped
