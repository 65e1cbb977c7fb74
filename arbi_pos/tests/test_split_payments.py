"""
Split payment validation tests.
"""

import itertools
from decimal import Decimal

import pytest

from arbi_pos.app.core.exceptions import SplitMismatchError
from arbi_pos.app.domain.enums import SettlementMethod
from arbi_pos.app.domain.settlement.split import (
    SplitPaymentRow,
    even_split,
    require_valid_split,
    split_total,
    validate_split,
)

ROWS = [
    SplitPaymentRow(SettlementMethod.CASH, "20.00"),
    SplitPaymentRow(SettlementMethod.CARD, "15"),
    SplitPaymentRow(SettlementMethod.FONEPAY, "5.00"),
]


def test_rows_matching_target_are_valid():
    assert validate_split(ROWS, Decimal("40.00"))


def test_mismatch_by_fifty_paisa_is_invalid():
    rows = [SplitPaymentRow(SettlementMethod.CASH, "20.00"), SplitPaymentRow(SettlementMethod.CARD, "19.50")]

    assert validate_split(rows, Decimal("40.00")) is False


def test_tolerance_is_strictly_below_one_paisa():
    assert validate_split([SplitPaymentRow(SettlementMethod.CASH, "39.995")], Decimal("40.00"))
    assert not validate_split([SplitPaymentRow(SettlementMethod.CASH, "39.99")], Decimal("40.00"))


def test_empty_split_is_invalid():
    assert validate_split([], Decimal("0")) is False


def test_result_is_independent_of_row_order():
    for target in (Decimal("40.00"), Decimal("39.00")):
        results = {validate_split(list(p), target) for p in itertools.permutations(ROWS)}
        assert len(results) == 1


def test_validation_is_repeatable():
    assert [validate_split(ROWS, Decimal("40")) for _ in range(3)] == [True, True, True]


def test_unparseable_amounts_count_as_zero():
    rows = [
        SplitPaymentRow(SettlementMethod.CASH, "40"),
        SplitPaymentRow(SettlementMethod.CARD, "abc"),
        SplitPaymentRow(SettlementMethod.BANK, ""),
    ]

    assert split_total(rows) == Decimal("40")
    assert validate_split(rows, Decimal("40"))


def test_require_valid_split_raises_with_totals():
    rows = [SplitPaymentRow(SettlementMethod.CASH, "39.50")]

    with pytest.raises(SplitMismatchError) as exc:
        require_valid_split(rows, Decimal("40.00"))

    assert exc.value.error_code == "ERR_SETTLE_003"


def test_require_valid_split_rejects_no_rows():
    with pytest.raises(SplitMismatchError):
        require_valid_split([], Decimal("40.00"))


def test_even_split_puts_remainder_on_first_row():
    rows = even_split(Decimal("100.01"))

    assert [(r.method, r.amount_text) for r in rows] == [
        (SettlementMethod.CASH, "50.01"),
        (SettlementMethod.CARD, "50.00"),
    ]
    assert validate_split(rows, Decimal("100.01"))
