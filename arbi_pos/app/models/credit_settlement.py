"""
Credit settlement database models.

Immutable records of committed settlements and the per-order amounts they
applied. NO updates or deletions.
"""

from sqlalchemy import Column, Integer, String, Numeric, BigInteger, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship
from arbi_pos.app.db.session import Base
from arbi_pos.app.domain.enums import PaymentMethod


class CreditSettlement(Base):
    """One committed settlement of a customer's credit."""
    __tablename__ = "credit_settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(64), unique=True, nullable=False, index=True)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=False, index=True)

    # Payment
    method = Column(Enum(PaymentMethod), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    split_payments = Column(JSON, nullable=True)

    # Credit before and after, for the receipt
    credit_before = Column(Numeric(12, 2), nullable=False)
    credit_after = Column(Numeric(12, 2), nullable=False)

    created_at = Column(BigInteger, nullable=False)  # epoch millis

    allocations = relationship(
        "SettlementAllocationModel",
        back_populates="settlement",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SettlementAllocationModel.position",
    )

    def __repr__(self):
        return f"<CreditSettlement(reference='{self.reference}', amount={self.amount})>"


class SettlementAllocationModel(Base):
    """Amount one settlement applied to one order."""
    __tablename__ = "settlement_allocations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    settlement_id = Column(Integer, ForeignKey("credit_settlements.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=False, index=True)
    amount_applied = Column(Numeric(12, 2), nullable=False)

    settlement = relationship("CreditSettlement", back_populates="allocations")
