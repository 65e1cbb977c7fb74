"""
Store contract and the in-memory store.

The settlement core only talks to a CreditStore. commit_settlement is the
single operation allowed to reduce credit and it must land as a whole.
"""

import asyncio
import copy
import time
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

from arbi_pos.app.core.exceptions import OrderAlreadyCompletedError, ResourceNotFoundError, SettlementConflictError
from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod
from arbi_pos.app.domain.money import ALLOCATION_EPSILON, ZERO
from arbi_pos.app.domain.records import Customer, Order, PaymentInfo, PaymentPart
from arbi_pos.app.domain.settlement.allocation import SettlementAllocation
from arbi_pos.app.domain.settlement.ledger import belongs_to_customer


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PaymentRecord:
    """How a settlement was paid."""
    method: PaymentMethod
    amount: Decimal
    split_payments: tuple = ()
    reference: str = ""
    timestamp: int = 0


@dataclass(frozen=True)
class SettlementRecord:
    """A committed settlement, as needed for the receipt."""
    reference: str
    customer_id: str
    customer_name: str
    customer_phone: Optional[str]
    allocation: SettlementAllocation
    payment: PaymentRecord
    credit_before: Decimal
    credit_after: Decimal
    completed_order_ids: tuple = ()
    created_at: int = field(default_factory=now_millis)

    @property
    def settled_amount(self) -> Decimal:
        return self.allocation.total


class CreditStore(Protocol):
    async def get_customer(self, customer_id: str) -> Customer: ...

    async def get_orders_for_customer(self, customer_id: str) -> List[Order]: ...

    async def commit_settlement(
        self, customer_id: str, allocation: SettlementAllocation, payment: PaymentRecord
    ) -> SettlementRecord: ...

    async def mark_order_completed(self, order_id: str) -> Order: ...

    async def list_settlements(self, customer_id: str) -> List[SettlementRecord]: ...

    async def complete_order(self, order_id: str, payment: PaymentInfo) -> Order: ...


def check_allocation(customer: Customer, orders: Dict[str, Order], allocation: SettlementAllocation):
    """
    Re-check an allocation against current state right before commit.

    Raises:
        SettlementConflictError: an order is unknown or has less credit due
            than the allocation applies, or the customer owes less than the total
    """
    for part in allocation:
        order = orders.get(part.order_id)
        if order is None:
            raise SettlementConflictError(f"Order {part.order_id} is not a credit order of this customer", part.order_id)
        if part.amount_applied - order.credit_due > ALLOCATION_EPSILON:
            raise SettlementConflictError(f"Order {part.order_id} has only {order.credit_due} credit due", part.order_id)
    if allocation.total - customer.credit_amount > ALLOCATION_EPSILON:
        raise SettlementConflictError("Allocation exceeds the customer's outstanding credit")


def apply_credit_to_customer(customer: Customer, payment: PaymentInfo) -> Customer:
    """Customer after an order completion: credit portion added, visit counted."""
    return replace(
        customer,
        credit_amount=customer.credit_amount + payment.credit_portion,
        visit_count=customer.visit_count + 1,
        last_visit=now_millis(),
    )


class InMemoryStore:
    """
    Dict-backed CreditStore.

    Mutations build the new customer and orders first and swap them in under
    one lock, so a failed commit leaves nothing behind. Reads hand out copies.
    """

    def __init__(self):
        self._customers: Dict[str, Customer] = {}
        self._orders: Dict[str, Order] = {}
        self._settlements: List[SettlementRecord] = []
        self._lock = asyncio.Lock()

    async def add_customer(self, customer: Customer) -> Customer:
        async with self._lock:
            self._customers[customer.id] = copy.deepcopy(customer)
        return customer

    async def add_order(self, order: Order) -> Order:
        async with self._lock:
            self._orders[order.id] = copy.deepcopy(order)
        return order

    async def get_customer(self, customer_id: str) -> Customer:
        customer = self._customers.get(customer_id)
        if customer is None:
            raise ResourceNotFoundError("Customer", customer_id)
        return copy.deepcopy(customer)

    async def get_order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise ResourceNotFoundError("Order", order_id)
        return copy.deepcopy(order)

    async def get_orders_for_customer(self, customer_id: str) -> List[Order]:
        customer = await self.get_customer(customer_id)
        return [copy.deepcopy(order) for order in self._orders.values() if belongs_to_customer(order, customer)]

    async def list_settlements(self, customer_id: str) -> List[SettlementRecord]:
        return [record for record in self._settlements if record.customer_id == customer_id]

    async def commit_settlement(
        self, customer_id: str, allocation: SettlementAllocation, payment: PaymentRecord
    ) -> SettlementRecord:
        async with self._lock:
            customer = self._customers.get(customer_id)
            if customer is None:
                raise ResourceNotFoundError("Customer", customer_id)
            orders = {part.order_id: self._orders[part.order_id] for part in allocation if part.order_id in self._orders}
            check_allocation(customer, orders, allocation)

            updated_orders = {}
            for part in allocation:
                order = replace(orders[part.order_id], credit_settled=orders[part.order_id].credit_settled + part.amount_applied)
                if order.credit_due <= ALLOCATION_EPSILON and order.status == OrderStatus.ONGOING:
                    order = replace(order, status=OrderStatus.COMPLETED)
                updated_orders[order.id] = order
            updated_customer = replace(customer, credit_amount=customer.credit_amount - allocation.total)

            record = SettlementRecord(
                reference=payment.reference,
                customer_id=customer.id,
                customer_name=customer.name,
                customer_phone=customer.phone,
                allocation=allocation,
                payment=payment,
                credit_before=customer.credit_amount,
                credit_after=updated_customer.credit_amount,
                completed_order_ids=tuple(
                    order_id for order_id, order in updated_orders.items()
                    if order.status != orders[order_id].status
                ),
                created_at=payment.timestamp or now_millis(),
            )

            # swap in
            self._orders.update(updated_orders)
            self._customers[customer.id] = updated_customer
            self._settlements.append(record)
        return record

    async def mark_order_completed(self, order_id: str) -> Order:
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise ResourceNotFoundError("Order", order_id)
            order = replace(order, status=OrderStatus.COMPLETED)
            self._orders[order_id] = order
        return copy.deepcopy(order)

    async def complete_order(self, order_id: str, payment: PaymentInfo) -> Order:
        """Record the payment, complete the order, and add any credit to its customer."""
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise ResourceNotFoundError("Order", order_id)
            if order.status == OrderStatus.COMPLETED or order.payment is not None:
                raise OrderAlreadyCompletedError(order_id)
            order = replace(order, payment=payment, status=OrderStatus.COMPLETED)

            customer = next((c for c in self._customers.values() if belongs_to_customer(order, c)), None)
            if customer is None and payment.credit_portion > ZERO:
                raise ResourceNotFoundError("Customer", payment.customer_phone or payment.customer_name)
            if customer is not None:
                customer = apply_credit_to_customer(customer, payment)

            self._orders[order_id] = order
            if customer is not None:
                self._customers[customer.id] = customer
        return copy.deepcopy(order)


def settlement_reference(timestamp: int) -> str:
    """SET-<epoch millis>-<random hex>, unique even within one millisecond."""
    return f"SET-{timestamp}-{uuid.uuid4().hex[:6].upper()}"


def split_parts(rows) -> tuple:
    """Convert validated split rows into payment parts."""
    return tuple(PaymentPart(method=PaymentMethod(row.method.value), amount=row.amount) for row in rows)
