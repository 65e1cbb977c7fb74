"""
Credit allocation tests.

Oldest-first greedy allocation, ledger construction and amount checks.
"""

import random
from decimal import Decimal

import pytest

from arbi_pos.app.core.exceptions import AmountExceedsCreditError, NothingToAllocateError
from arbi_pos.app.domain.money import ALLOCATION_EPSILON
from arbi_pos.app.domain.records import Customer
from arbi_pos.app.domain.settlement.allocation import CreditLedgerEntry, allocate, validate_settlement_amount
from arbi_pos.app.domain.settlement.ledger import build_credit_ledger, outstanding_ledger
from conftest import make_credit_order

LEDGER = [
    CreditLedgerEntry(order_id="A", credit_due=Decimal("50.00"), timestamp=1),
    CreditLedgerEntry(order_id="B", credit_due=Decimal("30.00"), timestamp=2),
]


def test_full_settlement_consumes_every_entry():
    allocation = allocate(LEDGER, Decimal("80.00"))

    assert [(p.order_id, p.amount_applied) for p in allocation] == [("A", Decimal("50.00")), ("B", Decimal("30.00"))]
    assert Decimal("80.00") - allocation.total == 0


def test_partial_settlement_leaves_newer_orders_untouched():
    allocation = allocate(LEDGER, Decimal("40.00"))

    assert [(p.order_id, p.amount_applied) for p in allocation] == [("A", Decimal("40.00"))]
    assert "B" not in allocation.order_ids
    assert Decimal("80.00") - allocation.total == Decimal("40.00")


def test_partial_amount_spills_into_next_order():
    allocation = allocate(LEDGER, Decimal("65.50"))

    assert [(p.order_id, p.amount_applied) for p in allocation] == [("A", Decimal("50.00")), ("B", Decimal("15.50"))]


def test_oldest_first_regardless_of_input_order():
    shuffled = list(reversed(LEDGER))
    allocation = allocate(shuffled, Decimal("10"))

    assert allocation.order_ids == ("A",)


def test_equal_timestamps_break_ties_by_order_id():
    ledger = [
        CreditLedgerEntry("ORD-9", Decimal("10"), 5),
        CreditLedgerEntry("ORD-1", Decimal("10"), 5),
        CreditLedgerEntry("ORD-5", Decimal("10"), 5),
    ]
    allocation = allocate(ledger, Decimal("25"))

    assert allocation.order_ids == ("ORD-1", "ORD-5", "ORD-9")
    assert [p.amount_applied for p in allocation] == [Decimal("10.00"), Decimal("10.00"), Decimal("5.00")]


def test_random_ledgers_allocate_exactly_and_never_overallocate():
    rng = random.Random(20240611)
    for _ in range(200):
        ledger = [
            CreditLedgerEntry(f"O{i}", Decimal(rng.randint(1, 50000)) / 100, rng.randint(0, 10))
            for i in range(rng.randint(1, 8))
        ]
        available = sum(entry.credit_due for entry in ledger)
        requested = Decimal(rng.randint(1, int(available * 100))) / 100

        allocation = allocate(ledger, requested)

        assert abs(allocation.total - requested) <= ALLOCATION_EPSILON
        dues = {entry.order_id: entry.credit_due for entry in ledger}
        for part in allocation:
            assert part.amount_applied <= dues[part.order_id]


def test_amount_above_ledger_is_rejected_not_truncated():
    with pytest.raises(AmountExceedsCreditError) as exc:
        allocate(LEDGER, Decimal("80.01"))

    assert exc.value.error_code == "ERR_SETTLE_001"


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("0.004")])
def test_non_positive_amount_has_nothing_to_allocate(amount):
    with pytest.raises(NothingToAllocateError):
        allocate(LEDGER, amount)


def test_empty_ledger_has_nothing_to_allocate():
    with pytest.raises(NothingToAllocateError):
        allocate([], Decimal("10"))


def test_fully_settled_entries_are_skipped():
    ledger = [CreditLedgerEntry("A", Decimal("0"), 1), CreditLedgerEntry("B", Decimal("30"), 2)]

    assert allocate(ledger, Decimal("30")).order_ids == ("B",)


def test_validate_settlement_amount_rounds_and_checks_credit():
    assert validate_settlement_amount(Decimal("40.005"), Decimal("80")) == Decimal("40.01")

    with pytest.raises(AmountExceedsCreditError):
        validate_settlement_amount(Decimal("80.01"), Decimal("80"))
    with pytest.raises(NothingToAllocateError):
        validate_settlement_amount(Decimal("0"), Decimal("80"))


def test_build_credit_ledger_matches_by_phone_and_skips_settled():
    customer = Customer(id="C1", name="Ram Thapa", phone="9800000001", credit_amount=Decimal("80"))
    mine = make_credit_order("A", "50.00", 1)
    settled = make_credit_order("S", "20.00", 0)
    settled.credit_settled = Decimal("20.00")
    someone_else = make_credit_order("X", "99.00", 3, phone="9811111111")

    ledger = build_credit_ledger(customer, [someone_else, settled, mine])

    assert [(e.order_id, e.credit_due, e.timestamp) for e in ledger] == [("A", Decimal("50.00"), 1)]


def test_build_credit_ledger_matches_by_name_without_phone():
    customer = Customer(id="C2", name="Sita", credit_amount=Decimal("10"))
    order = make_credit_order("N1", "10.00", 4, phone="", name="  SITA ")

    assert [e.order_id for e in build_credit_ledger(customer, [order])] == ["N1"]


def test_outstanding_ledger_clips_to_customer_credit():
    clipped = outstanding_ledger(LEDGER, Decimal("60.00"))

    assert [(e.order_id, e.credit_due) for e in clipped] == [("A", Decimal("50.00")), ("B", Decimal("10.00"))]


def test_outstanding_ledger_logs_drift(caplog):
    with caplog.at_level("WARNING", logger="arbi_pos.settlement"):
        outstanding_ledger(LEDGER, Decimal("60.00"))

    assert "does not match" in caplog.text
