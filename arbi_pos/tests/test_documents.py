"""
Document composition tests.

Layouts are checked through the text the job would print.
"""

import re
from dataclasses import replace
from decimal import Decimal

from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod, Station
from arbi_pos.app.domain.money import parse_amount, round_money
from arbi_pos.app.domain.records import Customer, PaymentInfo, PaymentPart
from arbi_pos.app.domain.settlement.allocation import AllocationPart, CreditLedgerEntry, SettlementAllocation
from arbi_pos.app.printing import documents
from arbi_pos.app.printing.primitives import EMPHASIS, NORMAL, DocumentKind, Init, SetFont, WriteText
from arbi_pos.app.services.store import PaymentRecord, SettlementRecord
from conftest import make_credit_order, make_mixed_order

MONEY = re.compile(r"Rs\. (\d+\.\d{2})$")


def row(name, qty, total=""):
    """Item row: name in 20 columns, qty in 3, total right-aligned to 32."""
    return f"{name:<20}{qty:>3}" + (f"{total:>9}" if total else "")


def money_on(lines, label):
    line = next(line for line in lines if line.startswith(label))
    match = MONEY.search(line)
    assert match, line
    return parse_amount(match.group(1))


def paid_order():
    order = make_mixed_order()
    order.status = OrderStatus.COMPLETED
    order.payment = PaymentInfo(
        method=PaymentMethod.CASH,
        amount=Decimal("1243.00"),
        amount_paid=Decimal("1300"),
        change=Decimal("57"),
        timestamp=order.created_at + 60000,
    )
    return order


def test_receipt_money_fields_round_trip():
    data = documents.receipt_from_order(paid_order())
    lines = documents.compose_receipt(data).text_lines()

    assert money_on(lines, "Subtotal:") == round_money(data.subtotal) == Decimal("1000.00")
    assert money_on(lines, "Service (10%):") == round_money(data.service_charge) == Decimal("100.00")
    assert money_on(lines, "Tax (13%):") == round_money(data.tax) == Decimal("143.00")
    assert money_on(lines, "TOTAL:") == data.total == Decimal("1243.00")
    assert money_on(lines, "Cash:") == Decimal("1300.00")
    assert money_on(lines, "Change:") == Decimal("57.00")


def test_receipt_fractional_amounts_keep_two_decimals():
    order = replace(paid_order(), discount_percentage=Decimal("7.5"))
    data = documents.receipt_from_order(order)
    lines = documents.compose_receipt(data).text_lines()

    assert money_on(lines, "Discount:") == round_money(data.discount) == Decimal("75.00")
    assert money_on(lines, "Tax (13%):") == round_money(data.tax)
    assert money_on(lines, "TOTAL:") == data.total
    for line in lines:
        for amount in re.findall(r"\d+\.\d+", line):
            assert len(amount.split(".")[1]) == 2, line


def test_receipt_item_rows_are_column_aligned():
    job = documents.compose_receipt(documents.receipt_from_order(paid_order()))
    lines = job.text_lines()

    assert row("Chicken Momo", 2, "500.00") in lines
    assert row("Mojito", 1, "320.00") in lines
    assert all(len(line) <= 32 for line in lines)
    assert "Total Items: 3 Total Units: 4" in lines
    assert job.commands[0] == Init()


def test_long_item_names_are_cut_to_twenty_columns():
    order = paid_order()
    order.items[0] = replace(order.items[0], name="Steamed Chicken Momo Jhol Special")
    lines = documents.compose_receipt(documents.receipt_from_order(order)).text_lines()

    assert row("Steamed Chicken Momo", 2, "500.00") in lines


def test_split_payment_lists_each_part():
    order = paid_order()
    order.payment = PaymentInfo(
        method=PaymentMethod.SPLIT,
        amount=Decimal("1243"),
        amount_paid=Decimal("1243"),
        split_payments=[PaymentPart(PaymentMethod.CASH, Decimal("1000")), PaymentPart(PaymentMethod.CREDIT, Decimal("243"))],
    )
    lines = documents.compose_receipt(documents.receipt_from_order(order)).text_lines()

    assert money_on(lines, "Cash:") == Decimal("1000.00")
    assert money_on(lines, "Credit:") == Decimal("243.00")


def test_pre_receipt_shows_amount_due_and_no_payment():
    job = documents.compose_receipt(documents.receipt_from_order(paid_order(), pre_receipt=True))
    lines = job.text_lines()

    assert job.kind == DocumentKind.PRE_RECEIPT
    assert lines[:2] == ["CUSTOMER COPY", "PRE-RECEIPT"]
    assert "Payment: Pending" in lines
    assert money_on(lines, "Amount Due:") == Decimal("1243.00")
    assert not any(line.startswith("Change:") for line in lines)


def test_headers_are_emphasized():
    job = documents.compose_receipt(documents.receipt_from_order(paid_order()), documents.Letterhead(name="ARBI CAFE"))
    index = job.commands.index(WriteText("ARBI CAFE\n"))

    assert job.commands[index - 1] == SetFont(EMPHASIS)
    assert job.commands[index + 1] == SetFont(NORMAL)


def test_kot_and_bot_split_items_by_station():
    order = make_mixed_order()
    kot = documents.compose_kot(documents.ticket_from_order(order, Station.KOT))
    bot = documents.compose_bot(documents.ticket_from_order(order, Station.BOT))

    kot_items = [line for line in kot.text_lines() if re.match(r"^(Chicken Momo|Thukpa|Mojito)\s", line)]
    bot_items = [line for line in bot.text_lines() if re.match(r"^(Chicken Momo|Thukpa|Mojito)\s", line)]

    assert kot_items == [row("Chicken Momo", 2), row("Thukpa", 1)]
    assert bot_items == [row("Mojito", 1)]
    assert kot.kind == DocumentKind.KOT and kot.has_body
    assert bot.kind == DocumentKind.BOT and bot.has_body
    assert "  + extra spicy" in kot.text_lines()


def test_ticket_without_station_items_has_no_body():
    order = make_mixed_order()
    order.items = [item for item in order.items if item.order_type == Station.KOT]

    bot = documents.compose_bot(documents.ticket_from_order(order, Station.BOT))

    assert bot.has_body is False
    assert bot.text_lines()[0] == "BOT"


def test_credit_statement_lists_entries_and_total_due():
    customer = Customer(id="C1", name="Ram Thapa", phone="9800000001", credit_amount=Decimal("80"))
    ledger = [CreditLedgerEntry("ORD-1002", Decimal("30"), 2), CreditLedgerEntry("ORD-1001", Decimal("50.5"), 1)]

    data = documents.statement_from_ledger(customer, ledger)
    lines = documents.compose_credit_statement(data).text_lines()

    assert [entry.ref for entry in data.entries] == ["R1001", "R1002"]
    assert "Customer: Ram Thapa (9800000001)" in lines
    assert any(line.endswith("50.50") and "R1001" in line for line in lines)
    assert money_on(lines, "TOTAL DUE:") == Decimal("80.50")


def test_settlement_receipt_shows_credit_movement():
    record = SettlementRecord(
        reference="SET-1700000000000",
        customer_id="C1",
        customer_name="Ram Thapa",
        customer_phone="9800000001",
        allocation=SettlementAllocation(parts=(AllocationPart("A", Decimal("40.00")),)),
        payment=PaymentRecord(method=PaymentMethod.CASH, amount=Decimal("40.00"), reference="SET-1700000000000"),
        credit_before=Decimal("80.00"),
        credit_after=Decimal("40.00"),
        created_at=1700000000000,
    )
    job = documents.compose_settlement_receipt(record)
    lines = job.text_lines()

    assert job.kind == DocumentKind.SETTLEMENT_RECEIPT
    assert "Credit Settlement Receipt" in lines
    assert "Receipt: SET-1700000000000" in lines
    assert "Payment Method: Cash" in lines
    assert money_on(lines, "Credit Amount:") == Decimal("80.00")
    assert money_on(lines, "Settled Amount:") == Decimal("40.00")
    assert money_on(lines, "Remaining Credit:") == Decimal("40.00")


def test_daily_summary_aggregates_paid_orders():
    cash = paid_order()
    credit = make_credit_order("ORD-77777", "200.00", cash.created_at + 3600000)
    ongoing = make_mixed_order("ORD-OPEN")

    data = documents.daily_summary_from_orders([credit, ongoing, cash], "2023-11-14", cash.created_at + 7200000)

    by_type = {sale.type: (sale.count, sale.amount) for sale in data.sales_by_type}
    assert by_type == {
        "Card": (0, Decimal("0")),
        "Cash": (1, Decimal("1243.00")),
        "Credit": (1, Decimal("200.00")),
        "Total": (2, Decimal("1443.00")),
    }
    assert data.gross_sales == Decimal("1443.00")
    assert data.net_sales == Decimal("1443.00")
    assert data.first_receipt.sequence == "00042"
    assert data.last_receipt.sequence == "77777"

    lines = documents.compose_daily_summary(data).text_lines()
    assert "Day Summary" in lines
    assert any(line.startswith("CASH") and line.endswith("1243.00") for line in lines)
