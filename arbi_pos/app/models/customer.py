"""
Customer database model.

Customers carry an aggregate credit balance that must always equal the
credit still due on their orders.
"""

from sqlalchemy import Column, Integer, String, Numeric, BigInteger, DateTime
from sqlalchemy.sql import func
from arbi_pos.app.db.session import Base


class CustomerModel(Base):
    """Customer model."""
    __tablename__ = "customers"

    id = Column(String(64), primary_key=True)

    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(32), nullable=True, index=True)
    email = Column(String(255), nullable=True)

    # Financials
    credit_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Loyalty
    loyalty_points = Column(Integer, nullable=False, default=0)
    visit_count = Column(Integer, nullable=False, default=0)
    last_visit = Column(BigInteger, nullable=True)  # epoch millis

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Customer(id='{self.id}', name='{self.name}', credit={self.credit_amount})>"
