"""
Order and order item database models.

The payment is stored inline on the order. credit_settled records how much
of the order's credit portion settlements have already consumed.
"""

from sqlalchemy import Column, Integer, String, Numeric, BigInteger, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship
from arbi_pos.app.db.session import Base
from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod, Station


class OrderModel(Base):
    """Order model."""
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    table_id = Column(String(64), nullable=False, index=True)
    status = Column(Enum(OrderStatus), default=OrderStatus.ONGOING, nullable=False, index=True)

    # Pricing
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    service_charge_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    tax_percentage = Column(Numeric(5, 2), nullable=False, default=0)

    # Customer
    customer_name = Column(String(255), nullable=False, default="")
    customer_phone = Column(String(32), nullable=False, default="", index=True)

    # Payment (null until the order is paid)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    payment_amount = Column(Numeric(12, 2), nullable=True)
    amount_paid = Column(Numeric(12, 2), nullable=True)
    change = Column(Numeric(12, 2), nullable=True)
    payment_customer_name = Column(String(255), nullable=True)
    payment_customer_phone = Column(String(32), nullable=True)
    payment_timestamp = Column(BigInteger, nullable=True)
    split_payments = Column(JSON, nullable=True)  # [{"method": "Credit", "amount": "10.00"}]

    # Settlement progress
    credit_settled = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(BigInteger, nullable=False)  # epoch millis

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItemModel.position",
    )

    def __repr__(self):
        return f"<Order(id='{self.id}', status='{self.status.value}')>"


class OrderItemModel(Base):
    """Order line item."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    menu_item_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    order_type = Column(Enum(Station), nullable=False, default=Station.KOT)
    modifiers = Column(JSON, nullable=True)

    order = relationship("OrderModel", back_populates="items")
