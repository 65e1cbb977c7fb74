"""
Plain records shared between the stores, the settlement core and the
document composers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod, Station
from arbi_pos.app.domain.money import ZERO, round_money


@dataclass
class Customer:
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    credit_amount: Decimal = ZERO
    loyalty_points: int = 0
    visit_count: int = 0
    last_visit: Optional[int] = None  # epoch millis


@dataclass(frozen=True)
class OrderItem:
    menu_item_id: str
    name: str
    price: Decimal
    quantity: int
    order_type: Station = Station.KOT
    modifiers: tuple = ()

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class PaymentPart:
    method: PaymentMethod
    amount: Decimal


@dataclass
class PaymentInfo:
    method: PaymentMethod
    amount: Decimal
    amount_paid: Decimal
    change: Decimal = ZERO
    customer_name: str = ""
    customer_phone: str = ""
    timestamp: Optional[int] = None  # epoch millis
    split_payments: List[PaymentPart] = field(default_factory=list)

    @property
    def credit_portion(self) -> Decimal:
        """Part of the payment that was put on the customer's tab."""
        if self.method == PaymentMethod.CREDIT:
            return self.amount_paid if self.amount_paid > 0 else ZERO
        return sum(
            (part.amount for part in self.split_payments
             if part.method == PaymentMethod.CREDIT and part.amount > 0),
            ZERO,
        )


@dataclass
class Order:
    id: str
    table_id: str
    created_at: int  # epoch millis
    status: OrderStatus = OrderStatus.ONGOING
    items: List[OrderItem] = field(default_factory=list)
    discount_percentage: Decimal = ZERO
    service_charge_percentage: Decimal = ZERO
    tax_percentage: Decimal = ZERO
    customer_name: str = ""
    customer_phone: str = ""
    payment: Optional[PaymentInfo] = None
    credit_settled: Decimal = ZERO

    @property
    def credit_due(self) -> Decimal:
        """Credit portion still owed on this order."""
        if self.payment is None:
            return ZERO
        return max(self.payment.credit_portion - self.credit_settled, ZERO)

    @property
    def paid_at(self) -> int:
        if self.payment is not None and self.payment.timestamp:
            return self.payment.timestamp
        return self.created_at


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal


def calculate_order_totals(order: Order) -> OrderTotals:
    """
    Discount applies to the subtotal, service charge to the discounted
    amount, tax to the discounted amount plus service charge. Only the
    total is rounded.
    """
    subtotal = sum((item.line_total for item in order.items), ZERO)
    discount = subtotal * order.discount_percentage / 100
    after_discount = subtotal - discount
    service_charge = after_discount * order.service_charge_percentage / 100
    taxable = after_discount + service_charge
    tax = taxable * order.tax_percentage / 100
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        service_charge=service_charge,
        tax=tax,
        total=round_money(taxable + tax),
    )
