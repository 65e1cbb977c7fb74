"""
Document composition.

Pure functions that turn a document record into a PrintJob. Nothing here
touches a printer. Money is always printed with exactly 2 decimals.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod, Station
from arbi_pos.app.domain.money import ZERO, format_amount, format_money
from arbi_pos.app.domain.records import Customer, Order, OrderItem, PaymentInfo, calculate_order_totals
from arbi_pos.app.domain.settlement.allocation import CreditLedgerEntry, ledger_order, total_due
from arbi_pos.app.printing.primitives import Align, DocumentKind, JobBuilder, PrintJob
from arbi_pos.app.services.store import SettlementRecord

ITEM_NAME_WIDTH = 20
QTY_WIDTH = 3


@dataclass(frozen=True)
class Letterhead:
    """Business header printed on customer-facing documents."""
    name: str = "ARBI POS"
    lines: tuple = ()
    currency: str = "Rs."
    width: int = 32


def format_date(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d")


def format_time(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000).strftime("%H:%M:%S")


def short_ref(order_id: str) -> str:
    return f"R{order_id[-4:]}"


def item_row(name: str, quantity: int, total: Optional[Decimal], width: int) -> str:
    row = f"{name[:ITEM_NAME_WIDTH]:<{ITEM_NAME_WIDTH}}{quantity:>{QTY_WIDTH}}"
    if total is None:
        return row
    return f"{row}{format_amount(total):>{max(width - len(row), 1)}}"


def item_header(width: int, with_total: bool = True) -> str:
    header = f"{'Item':<{ITEM_NAME_WIDTH}}{'Qty':>{QTY_WIDTH}}"
    if not with_total:
        return header
    return f"{header}{'Total':>{max(width - len(header), 1)}}"


# Receipt

@dataclass
class ReceiptData:
    receipt_id: str
    table: str
    timestamp: int
    items: Sequence[OrderItem]
    subtotal: Decimal
    discount: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal
    tax_label: str = "Tax"
    service_label: str = "Service"
    payment: Optional[PaymentInfo] = None
    cashier: Optional[str] = None
    steward: Optional[str] = None
    pre_receipt: bool = False


def _percent(value: Decimal) -> str:
    return f"{value.normalize():f}" if value == value.to_integral() else f"{value:f}"


def receipt_from_order(order: Order, table_name: Optional[str] = None, receipt_id: Optional[str] = None,
                       pre_receipt: bool = False) -> ReceiptData:
    totals = calculate_order_totals(order)
    return ReceiptData(
        receipt_id=receipt_id or f"R{order.created_at}",
        table=table_name or order.table_id,
        timestamp=order.created_at,
        items=list(order.items),
        subtotal=totals.subtotal,
        discount=totals.discount,
        service_charge=totals.service_charge,
        tax=totals.tax,
        total=totals.total,
        tax_label=f"Tax ({_percent(order.tax_percentage)}%)",
        service_label=f"Service ({_percent(order.service_charge_percentage)}%)",
        payment=None if pre_receipt else order.payment,
        pre_receipt=pre_receipt,
    )


def compose_receipt(data: ReceiptData, letterhead: Letterhead = Letterhead()) -> PrintJob:
    kind = DocumentKind.PRE_RECEIPT if data.pre_receipt else DocumentKind.RECEIPT
    job = JobBuilder(kind, letterhead.width)
    money = lambda value: format_money(value, letterhead.currency)  # noqa: E731

    job.align(Align.CENTER)
    if data.pre_receipt:
        job.emphasized("CUSTOMER COPY")
        job.emphasized("PRE-RECEIPT")
    job.emphasized(letterhead.name)
    for line in letterhead.lines:
        job.line(line)
    job.line(f"{format_date(data.timestamp)} {format_time(data.timestamp)}")
    job.line(f"Table {data.table}")
    if data.cashier:
        job.line(f"Cashier: {data.cashier}")
    if data.steward:
        job.line(f"Steward: {data.steward}")
    job.rule()

    job.align(Align.LEFT)
    job.line(item_header(letterhead.width))
    job.rule()
    for item in data.items:
        job.body_line(item_row(item.name, item.quantity, item.line_total, letterhead.width))
    job.rule()

    job.line(job.columns("Subtotal:", money(data.subtotal)))
    if data.discount > 0:
        job.line(job.columns("Discount:", f"-{money(data.discount)}"))
    job.line(job.columns(f"{data.service_label}:", money(data.service_charge)))
    job.line(job.columns(f"{data.tax_label}:", money(data.tax)))
    job.rule("=")
    job.emphasized(job.columns("TOTAL:", money(data.total)))

    if data.payment is not None:
        payment = data.payment
        if payment.method == PaymentMethod.SPLIT:
            for part in payment.split_payments:
                job.line(job.columns(f"{part.method.value}:", money(part.amount)))
        else:
            job.line(job.columns(f"{payment.method.value}:", money(payment.amount_paid)))
        if payment.change > 0:
            job.line(job.columns("Change:", money(payment.change)))
    elif data.pre_receipt:
        job.line("Payment: Pending")
        job.line(job.columns("Amount Due:", money(data.total)))

    units = sum(item.quantity for item in data.items)
    job.line(f"Total Items: {len(data.items)} Total Units: {units}")

    job.align(Align.CENTER)
    if data.pre_receipt:
        job.line()
        job.line("Please settle payment at counter")
        job.emphasized("Thank you for your order!")
    else:
        job.line()
        job.emphasized("Thank you")
    job.line(f"Ref Number: {data.receipt_id}")
    job.feed(3)
    return job.build()


# KOT / BOT

@dataclass
class TicketData:
    ticket_id: str
    table: str
    timestamp: int
    items: Sequence[OrderItem]
    steward: Optional[str] = None
    customer: Optional[str] = None
    special_instructions: Optional[str] = None


def ticket_from_order(order: Order, station: Station, table_name: Optional[str] = None,
                      ticket_id: Optional[str] = None) -> TicketData:
    return TicketData(
        ticket_id=ticket_id or f"{station.value}-{order.created_at}",
        table=table_name or order.table_id,
        timestamp=order.created_at,
        items=list(order.items),
        customer=order.customer_name or None,
    )


def _compose_ticket(data: TicketData, station: Station, width: int) -> PrintJob:
    job = JobBuilder(DocumentKind(station.value), width)

    job.align(Align.CENTER)
    job.emphasized(station.value)
    job.line(data.ticket_id)
    job.line(f"{format_date(data.timestamp)} {format_time(data.timestamp)}")
    job.line(f"Table {data.table}")
    if data.steward:
        job.line(f"Steward: {data.steward}")
    if data.customer:
        job.line(f"Customer: {data.customer}")
    job.rule()

    job.align(Align.LEFT)
    job.line(item_header(width, with_total=False))
    job.rule()
    for item in data.items:
        if item.order_type != station:
            continue
        job.body_line(item_row(item.name, item.quantity, None, width))
        for modifier in item.modifiers:
            job.line(f"  + {modifier}")
    job.rule()
    if data.special_instructions:
        job.line(f"Note: {data.special_instructions}")
    job.feed(3)
    return job.build()


def compose_kot(data: TicketData, width: int = 32) -> PrintJob:
    """Kitchen ticket with only the KOT-tagged items."""
    return _compose_ticket(data, Station.KOT, width)


def compose_bot(data: TicketData, width: int = 32) -> PrintJob:
    """Bar ticket with only the BOT-tagged items."""
    return _compose_ticket(data, Station.BOT, width)


# Credit statement

@dataclass(frozen=True)
class StatementEntry:
    timestamp: int
    ref: str
    amount: Decimal


@dataclass
class CreditStatementData:
    customer_name: str
    entries: Sequence[StatementEntry]
    total_due: Decimal
    customer_phone: Optional[str] = None


def statement_from_ledger(customer: Customer, ledger: Iterable[CreditLedgerEntry]) -> CreditStatementData:
    ordered = ledger_order(ledger)
    return CreditStatementData(
        customer_name=customer.name,
        customer_phone=customer.phone,
        entries=[StatementEntry(entry.timestamp, short_ref(entry.order_id), entry.credit_due) for entry in ordered],
        total_due=total_due(ordered),
    )


def compose_credit_statement(data: CreditStatementData, letterhead: Letterhead = Letterhead()) -> PrintJob:
    width = letterhead.width
    job = JobBuilder(DocumentKind.CREDIT_STATEMENT, width)

    job.align(Align.CENTER)
    job.emphasized("CREDIT STATEMENT")
    job.align(Align.LEFT)
    phone = f" ({data.customer_phone})" if data.customer_phone else ""
    job.line(f"Customer: {data.customer_name}{phone}")
    job.rule()
    job.line(job.columns(f"{'Date':<10} {'Ref':<10}", "Amount"))
    job.rule()
    for entry in data.entries:
        job.body_line(job.columns(f"{format_date(entry.timestamp):<10} {entry.ref:<10}", format_amount(entry.amount)))
    job.rule()
    job.emphasized(job.columns("TOTAL DUE:", format_money(data.total_due, letterhead.currency)))
    job.feed(3)
    return job.build()


# Daily summary

@dataclass(frozen=True)
class SalesByType:
    type: str
    count: int
    amount: Decimal


@dataclass(frozen=True)
class PaymentTotal:
    type: str
    amount: Decimal


@dataclass(frozen=True)
class AuditCounts:
    pre_receipt_count: int = 0
    receipt_reprint_count: int = 0
    void_receipt_count: int = 0
    total_void_item_count: int = 0


@dataclass(frozen=True)
class ReceiptMarker:
    reference: str
    timestamp: int
    net_amount: Decimal
    sequence: Optional[str] = None


@dataclass
class DailySummaryData:
    print_time: int
    period_label: str
    gross_sales: Decimal
    service_charge: Decimal
    discounts: Decimal
    net_sales: Decimal
    sales_by_type: List[SalesByType] = field(default_factory=list)
    payments_net: List[PaymentTotal] = field(default_factory=list)
    complementary: Decimal = ZERO
    audit: AuditCounts = AuditCounts()
    branch: Optional[str] = None
    first_receipt: Optional[ReceiptMarker] = None
    last_receipt: Optional[ReceiptMarker] = None


SUMMARY_METHODS = (PaymentMethod.CARD, PaymentMethod.CASH, PaymentMethod.CREDIT)


def daily_summary_from_orders(orders: Iterable[Order], period_label: str, print_time: int,
                              branch: Optional[str] = None) -> DailySummaryData:
    """Aggregate paid, completed orders into a day summary."""
    paid = sorted(
        (order for order in orders if order.status == OrderStatus.COMPLETED and order.payment is not None),
        key=lambda order: order.paid_at,
    )
    totals = {order.id: calculate_order_totals(order) for order in paid}

    def net_for(method: PaymentMethod) -> List[Decimal]:
        return [totals[order.id].total for order in paid if order.payment.method == method]

    sales_by_type = [SalesByType(m.value, len(net_for(m)), sum(net_for(m), ZERO)) for m in SUMMARY_METHODS]
    sales_by_type.append(SalesByType(
        "Total", sum(s.count for s in sales_by_type), sum((s.amount for s in sales_by_type), ZERO)
    ))

    def marker(order: Order) -> ReceiptMarker:
        return ReceiptMarker(
            reference=f"R{order.paid_at}",
            sequence=order.id[-5:],
            timestamp=order.paid_at,
            net_amount=totals[order.id].total,
        )

    return DailySummaryData(
        print_time=print_time,
        period_label=period_label,
        branch=branch,
        gross_sales=sum((t.subtotal + t.tax + t.service_charge for t in totals.values()), ZERO),
        service_charge=sum((t.service_charge for t in totals.values()), ZERO),
        discounts=sum((t.discount for t in totals.values()), ZERO),
        net_sales=sum((t.total for t in totals.values()), ZERO),
        sales_by_type=sales_by_type,
        payments_net=[PaymentTotal(m.value, sum(net_for(m), ZERO)) for m in (PaymentMethod.CREDIT, PaymentMethod.CASH, PaymentMethod.CARD)],
        first_receipt=marker(paid[0]) if paid else None,
        last_receipt=marker(paid[-1]) if paid else None,
    )


def compose_daily_summary(data: DailySummaryData, width: int = 32) -> PrintJob:
    job = JobBuilder(DocumentKind.DAILY_SUMMARY, width)

    job.align(Align.LEFT)
    job.line(f"Print time: {format_date(data.print_time)} {format_time(data.print_time)}")
    job.line(f"Date: {data.period_label}")
    if data.branch:
        job.line(f"Branch: {data.branch}")
    job.align(Align.CENTER)
    job.emphasized("Day Summary")
    job.align(Align.LEFT)
    job.rule()

    job.line("Sales Summary")
    for label, value in (
        ("Gross Sales", data.gross_sales),
        ("Service Charge", data.service_charge),
        ("Discounts", data.discounts),
        ("Complementary", data.complementary),
        ("Net Sales", data.net_sales),
    ):
        job.body_line(job.columns(label, format_amount(value)))
    job.rule()

    job.line("Sales")
    job.line(job.columns(f"{'Type':<12}{'Count':>6}", "Amount"))
    for sale in data.sales_by_type:
        job.body_line(job.columns(f"{sale.type.upper():<12}{sale.count:>6}", format_amount(sale.amount)))
    job.line("Total Payments Received (Net)")
    job.line(job.columns("Type", "Amount"))
    for payment in data.payments_net:
        job.body_line(job.columns(payment.type.upper(), format_amount(payment.amount)))
    job.rule()

    job.line("Audit")
    job.line(job.columns("Pre Receipt Print Count", str(data.audit.pre_receipt_count)))
    job.line(job.columns("Receipt Re-print Count", str(data.audit.receipt_reprint_count)))
    job.line(job.columns("Void Receipt Count", str(data.audit.void_receipt_count)))
    job.line(job.columns("Total Void Item Count", str(data.audit.total_void_item_count)))
    job.rule()

    for title, marker in (("First Receipt", data.first_receipt), ("Last Receipt", data.last_receipt)):
        if marker is None:
            continue
        job.line(title)
        job.line(job.columns("Reference", marker.reference))
        if marker.sequence:
            job.line(job.columns("Sequence Number", marker.sequence))
        job.line(job.columns("Time", format_time(marker.timestamp)))
        job.line(job.columns("Net Amount", format_amount(marker.net_amount)))
    job.rule()
    job.line("-- End --")
    job.feed(3)
    return job.build()


# Credit settlement receipt

def compose_settlement_receipt(record: SettlementRecord, letterhead: Letterhead = Letterhead()) -> PrintJob:
    """Receipt handed over after a credit settlement commits."""
    job = JobBuilder(DocumentKind.SETTLEMENT_RECEIPT, letterhead.width)
    money = lambda value: format_money(value, letterhead.currency)  # noqa: E731

    job.align(Align.CENTER)
    job.emphasized(letterhead.name)
    for line in letterhead.lines:
        job.line(line)
    job.line("Credit Settlement Receipt")
    job.line()
    job.align(Align.LEFT)
    job.line(f"Receipt: {record.reference}")
    job.line(f"Date: {format_date(record.created_at)}")
    job.line(f"Time: {format_time(record.created_at)}")
    job.line()
    job.body_line(f"Customer: {record.customer_name}")
    if record.customer_phone:
        job.line(f"Phone: {record.customer_phone}")
    job.line(f"Payment Method: {record.payment.method.value}")
    for part in record.payment.split_payments:
        job.line(job.columns(f"  {part.method.value}:", money(part.amount)))
    job.line()
    for part in record.allocation:
        job.line(job.columns(f"  Order {short_ref(part.order_id)}", money(part.amount_applied)))
    job.line(job.columns("Credit Amount:", money(record.credit_before)))
    job.line(job.columns("Settled Amount:", money(record.settled_amount)))
    job.line(job.columns("Remaining Credit:", money(record.credit_after)))
    job.line()
    job.align(Align.CENTER)
    job.line("Thank you!")
    job.line(f"Generated by {letterhead.name}")
    job.feed(3)
    return job.build()


def compose_test_job(width: int = 32) -> PrintJob:
    job = JobBuilder(DocumentKind.TEST, width)
    job.align(Align.LEFT)
    job.body_line("Test Print")
    job.feed(2)
    return job.build()
