"""
Settlement Schemas.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from arbi_pos.app.domain.enums import PaymentMethod, SettlementMethod


class SplitRowIn(BaseModel):
    """One split tender row, amount as typed by the cashier."""
    method: SettlementMethod
    amount: str = "0"


class SettlementPreviewRequest(BaseModel):
    amount: str = Field(..., description="Amount to settle, as entered")


class SettlementRequest(BaseModel):
    amount: str = Field(..., description="Amount to settle, as entered")
    method: SettlementMethod = SettlementMethod.CASH
    split_payments: Optional[List[SplitRowIn]] = None
    print_receipt: bool = True


class LedgerEntryResponse(BaseModel):
    order_id: str
    credit_due: Decimal
    timestamp: int

    class Config:
        from_attributes = True


class AllocationPartResponse(BaseModel):
    order_id: str
    amount_applied: Decimal

    class Config:
        from_attributes = True


class SettlementPreviewResponse(BaseModel):
    customer_id: str
    credit_amount: Decimal
    ledger: List[LedgerEntryResponse]
    allocation: List[AllocationPartResponse]
    settled_amount: Decimal
    remaining_credit: Decimal


class PaymentPartResponse(BaseModel):
    method: PaymentMethod
    amount: Decimal

    class Config:
        from_attributes = True


class PrintOutcomeResponse(BaseModel):
    success: bool
    message: str
    document: Optional[str] = None
    error_code: Optional[str] = None
    remedy: Optional[str] = None
    skipped: bool = False

    class Config:
        from_attributes = True


class SettlementResponse(BaseModel):
    """A committed settlement. receipt is null when no receipt was requested."""
    reference: str
    customer_id: str
    method: PaymentMethod
    split_payments: List[PaymentPartResponse]
    allocation: List[AllocationPartResponse]
    settled_amount: Decimal
    credit_before: Decimal
    credit_after: Decimal
    completed_order_ids: List[str]
    created_at: int
    receipt: Optional[PrintOutcomeResponse] = None
