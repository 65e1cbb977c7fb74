"""
SQLAlchemy-backed CreditStore.

Every mutation runs inside one transaction: the credit reduction, the order
settlement marks and the settlement record commit together or roll back
together.
"""

from decimal import Decimal
from typing import List

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arbi_pos.app.core.exceptions import OrderAlreadyCompletedError, ResourceNotFoundError
from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod
from arbi_pos.app.domain.money import ALLOCATION_EPSILON, ZERO
from arbi_pos.app.domain.records import Customer, Order, OrderItem, PaymentInfo, PaymentPart
from arbi_pos.app.domain.settlement.allocation import AllocationPart, SettlementAllocation
from arbi_pos.app.domain.settlement.ledger import belongs_to_customer
from arbi_pos.app.models.credit_settlement import CreditSettlement, SettlementAllocationModel
from arbi_pos.app.models.customer import CustomerModel
from arbi_pos.app.models.order import OrderItemModel, OrderModel
from arbi_pos.app.services.store import (
    PaymentRecord,
    SettlementRecord,
    apply_credit_to_customer,
    check_allocation,
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _decimal(value) -> Decimal:
    return ZERO if value is None else Decimal(value)


def customer_to_record(row: CustomerModel) -> Customer:
    return Customer(
        id=row.id,
        name=row.name,
        phone=row.phone,
        email=row.email,
        credit_amount=_decimal(row.credit_amount),
        loyalty_points=row.loyalty_points or 0,
        visit_count=row.visit_count or 0,
        last_visit=row.last_visit,
    )


def order_to_record(row: OrderModel) -> Order:
    payment = None
    if row.payment_method is not None:
        payment = PaymentInfo(
            method=row.payment_method,
            amount=_decimal(row.payment_amount),
            amount_paid=_decimal(row.amount_paid),
            change=_decimal(row.change),
            customer_name=row.payment_customer_name or "",
            customer_phone=row.payment_customer_phone or "",
            timestamp=row.payment_timestamp,
            split_payments=[
                PaymentPart(method=PaymentMethod(part["method"]), amount=Decimal(str(part["amount"])))
                for part in (row.split_payments or [])
            ],
        )
    return Order(
        id=row.id,
        table_id=row.table_id,
        created_at=row.created_at,
        status=row.status,
        items=[
            OrderItem(
                menu_item_id=item.menu_item_id,
                name=item.name,
                price=_decimal(item.price),
                quantity=item.quantity,
                order_type=item.order_type,
                modifiers=tuple(item.modifiers or ()),
            )
            for item in row.items
        ],
        discount_percentage=_decimal(row.discount_percentage),
        service_charge_percentage=_decimal(row.service_charge_percentage),
        tax_percentage=_decimal(row.tax_percentage),
        customer_name=row.customer_name or "",
        customer_phone=row.customer_phone or "",
        payment=payment,
        credit_settled=_decimal(row.credit_settled),
    )


def _serialize_parts(parts) -> list:
    return [{"method": part.method.value, "amount": str(part.amount)} for part in parts]


def _apply_payment(row: OrderModel, payment: PaymentInfo):
    row.payment_method = payment.method
    row.payment_amount = payment.amount
    row.amount_paid = payment.amount_paid
    row.change = payment.change
    row.payment_customer_name = payment.customer_name
    row.payment_customer_phone = payment.customer_phone
    row.payment_timestamp = payment.timestamp
    row.split_payments = _serialize_parts(payment.split_payments)


class SqlStore:
    """CreditStore over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def add_customer(self, customer: Customer) -> Customer:
        async with self.session_factory() as db:
            async with db.begin():
                db.add(CustomerModel(
                    id=customer.id,
                    name=customer.name,
                    phone=customer.phone,
                    email=customer.email,
                    credit_amount=customer.credit_amount,
                    loyalty_points=customer.loyalty_points,
                    visit_count=customer.visit_count,
                    last_visit=customer.last_visit,
                ))
        return customer

    async def add_order(self, order: Order) -> Order:
        async with self.session_factory() as db:
            async with db.begin():
                row = OrderModel(
                    id=order.id,
                    table_id=order.table_id,
                    status=order.status,
                    discount_percentage=order.discount_percentage,
                    service_charge_percentage=order.service_charge_percentage,
                    tax_percentage=order.tax_percentage,
                    customer_name=order.customer_name,
                    customer_phone=order.customer_phone,
                    credit_settled=order.credit_settled,
                    created_at=order.created_at,
                    items=[
                        OrderItemModel(
                            position=position,
                            menu_item_id=item.menu_item_id,
                            name=item.name,
                            price=item.price,
                            quantity=item.quantity,
                            order_type=item.order_type,
                            modifiers=list(item.modifiers),
                        )
                        for position, item in enumerate(order.items)
                    ],
                )
                if order.payment is not None:
                    _apply_payment(row, order.payment)
                db.add(row)
        return order

    async def _customer_row(self, db: AsyncSession, customer_id: str, for_update: bool = False) -> CustomerModel:
        query = select(CustomerModel).where(CustomerModel.id == customer_id)
        if for_update:
            query = lock_for_update(query)
        row = (await db.execute(query)).scalar_one_or_none()
        if row is None:
            raise ResourceNotFoundError("Customer", customer_id)
        return row

    async def _order_rows_for(self, db: AsyncSession, customer: Customer, for_update: bool = False) -> List[OrderModel]:
        phone = (customer.phone or "").strip()
        if phone:
            condition = or_(OrderModel.payment_customer_phone == phone, OrderModel.customer_phone == phone)
        else:
            name = (customer.name or "").strip().lower()
            condition = or_(
                func.lower(OrderModel.payment_customer_name) == name,
                func.lower(OrderModel.customer_name) == name,
            )
        query = select(OrderModel).where(condition).order_by(OrderModel.created_at, OrderModel.id)
        if for_update:
            query = lock_for_update(query)
        rows = (await db.execute(query)).scalars().all()
        return [row for row in rows if belongs_to_customer(order_to_record(row), customer)]

    async def get_customer(self, customer_id: str) -> Customer:
        async with self.session_factory() as db:
            return customer_to_record(await self._customer_row(db, customer_id))

    async def get_order(self, order_id: str) -> Order:
        async with self.session_factory() as db:
            row = await db.get(OrderModel, order_id)
            if row is None:
                raise ResourceNotFoundError("Order", order_id)
            return order_to_record(row)

    async def get_orders_for_customer(self, customer_id: str) -> List[Order]:
        async with self.session_factory() as db:
            customer = customer_to_record(await self._customer_row(db, customer_id))
            return [order_to_record(row) for row in await self._order_rows_for(db, customer)]

    async def list_settlements(self, customer_id: str) -> List[SettlementRecord]:
        async with self.session_factory() as db:
            customer = customer_to_record(await self._customer_row(db, customer_id))
            rows = (await db.execute(
                select(CreditSettlement)
                .where(CreditSettlement.customer_id == customer_id)
                .order_by(CreditSettlement.created_at, CreditSettlement.id)
            )).scalars().all()
            return [self._settlement_to_record(row, customer) for row in rows]

    @staticmethod
    def _settlement_to_record(row: CreditSettlement, customer: Customer) -> SettlementRecord:
        allocation = SettlementAllocation(parts=tuple(
            AllocationPart(order_id=part.order_id, amount_applied=_decimal(part.amount_applied))
            for part in row.allocations
        ))
        return SettlementRecord(
            reference=row.reference,
            customer_id=row.customer_id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            allocation=allocation,
            payment=PaymentRecord(
                method=row.method,
                amount=_decimal(row.amount),
                split_payments=tuple(
                    PaymentPart(method=PaymentMethod(part["method"]), amount=Decimal(str(part["amount"])))
                    for part in (row.split_payments or [])
                ),
                reference=row.reference,
                timestamp=row.created_at,
            ),
            credit_before=_decimal(row.credit_before),
            credit_after=_decimal(row.credit_after),
            created_at=row.created_at,
        )

    async def commit_settlement(
        self, customer_id: str, allocation: SettlementAllocation, payment: PaymentRecord
    ) -> SettlementRecord:
        async with self.session_factory() as db:
            async with db.begin():
                customer_row = await self._customer_row(db, customer_id, for_update=True)
                customer = customer_to_record(customer_row)
                order_rows = {row.id: row for row in await self._order_rows_for(db, customer, for_update=True)}
                orders = {order_id: order_to_record(row) for order_id, row in order_rows.items()}
                check_allocation(customer, orders, allocation)

                completed = []
                for part in allocation:
                    row = order_rows[part.order_id]
                    row.credit_settled = _decimal(row.credit_settled) + part.amount_applied
                    remaining = orders[part.order_id].credit_due - part.amount_applied
                    if remaining <= ALLOCATION_EPSILON and row.status == OrderStatus.ONGOING:
                        row.status = OrderStatus.COMPLETED
                        completed.append(row.id)

                credit_before = customer.credit_amount
                customer_row.credit_amount = credit_before - allocation.total

                settlement = CreditSettlement(
                    reference=payment.reference,
                    customer_id=customer.id,
                    method=payment.method,
                    amount=allocation.total,
                    split_payments=_serialize_parts(payment.split_payments),
                    credit_before=credit_before,
                    credit_after=credit_before - allocation.total,
                    created_at=payment.timestamp,
                    allocations=[
                        SettlementAllocationModel(position=position, order_id=part.order_id, amount_applied=part.amount_applied)
                        for position, part in enumerate(allocation)
                    ],
                )
                db.add(settlement)

        return SettlementRecord(
            reference=payment.reference,
            customer_id=customer.id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            allocation=allocation,
            payment=payment,
            credit_before=credit_before,
            credit_after=credit_before - allocation.total,
            completed_order_ids=tuple(completed),
            created_at=payment.timestamp,
        )

    async def mark_order_completed(self, order_id: str) -> Order:
        async with self.session_factory() as db:
            async with db.begin():
                row = await db.get(OrderModel, order_id)
                if row is None:
                    raise ResourceNotFoundError("Order", order_id)
                row.status = OrderStatus.COMPLETED
                order = order_to_record(row)
            return order

    async def complete_order(self, order_id: str, payment: PaymentInfo) -> Order:
        """Record the payment, complete the order, and add any credit to its customer."""
        async with self.session_factory() as db:
            async with db.begin():
                row = await db.get(OrderModel, order_id)
                if row is None:
                    raise ResourceNotFoundError("Order", order_id)
                if row.status == OrderStatus.COMPLETED or row.payment_method is not None:
                    raise OrderAlreadyCompletedError(order_id)
                _apply_payment(row, payment)
                row.status = OrderStatus.COMPLETED
                order = order_to_record(row)

                customer_rows = (await db.execute(select(CustomerModel))).scalars().all()
                customer_row = next(
                    (c for c in customer_rows if belongs_to_customer(order, customer_to_record(c))), None
                )
                if customer_row is None and payment.credit_portion > ZERO:
                    raise ResourceNotFoundError("Customer", payment.customer_phone or payment.customer_name)
                if customer_row is not None:
                    updated = apply_credit_to_customer(customer_to_record(customer_row), payment)
                    customer_row.credit_amount = updated.credit_amount
                    customer_row.visit_count = updated.visit_count
                    customer_row.last_visit = updated.last_visit
            return order
