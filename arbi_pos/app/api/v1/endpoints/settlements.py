"""
Credit Settlement API Endpoints.

Preview, commit and history of customer credit settlements, plus the
printed credit statement.
"""

from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, status

from arbi_pos.app.core.dependencies import get_settlement_service
from arbi_pos.app.domain.settlement.service import SettlementService
from arbi_pos.app.domain.settlement.split import SplitPaymentRow
from arbi_pos.app.schemas.settlement import (
    LedgerEntryResponse,
    PrintOutcomeResponse,
    SettlementPreviewRequest,
    SettlementPreviewResponse,
    SettlementRequest,
    SettlementResponse,
)
from arbi_pos.app.services.print_service import PrintOutcome
from arbi_pos.app.services.store import SettlementRecord

router = APIRouter(prefix="/customers/{customer_id}", tags=["Credit Settlement"])


def _settlement_response(record: SettlementRecord, receipt: PrintOutcome = None) -> SettlementResponse:
    return SettlementResponse(
        reference=record.reference,
        customer_id=record.customer_id,
        method=record.payment.method,
        split_payments=[asdict(part) for part in record.payment.split_payments],
        allocation=[asdict(part) for part in record.allocation],
        settled_amount=record.settled_amount,
        credit_before=record.credit_before,
        credit_after=record.credit_after,
        completed_order_ids=list(record.completed_order_ids),
        created_at=record.created_at,
        receipt=asdict(receipt) if receipt is not None else None,
    )


@router.get("/credit-ledger", response_model=List[LedgerEntryResponse])
async def get_credit_ledger(customer_id: str, service: SettlementService = Depends(get_settlement_service)):
    """Outstanding credit orders, oldest first."""
    _, ledger = await service.outstanding(customer_id)
    return [asdict(entry) for entry in ledger]


@router.post("/settlements/preview", response_model=SettlementPreviewResponse)
async def preview_settlement(
    customer_id: str,
    request: SettlementPreviewRequest,
    service: SettlementService = Depends(get_settlement_service),
):
    """Show how an amount would be allocated. Nothing is committed."""
    preview = await service.preview(customer_id, request.amount)
    return SettlementPreviewResponse(
        customer_id=preview.customer.id,
        credit_amount=preview.customer.credit_amount,
        ledger=[asdict(entry) for entry in preview.ledger],
        allocation=[asdict(part) for part in preview.allocation],
        settled_amount=preview.allocation.total,
        remaining_credit=preview.remaining_credit,
    )


@router.post("/settlements", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(
    customer_id: str,
    request: SettlementRequest,
    service: SettlementService = Depends(get_settlement_service),
):
    """
    Settle credit and print the receipt.

    The settlement is committed before printing. A failed print is reported
    in 'receipt' and does not fail the request.
    """
    split_rows = None
    if request.split_payments is not None:
        split_rows = [SplitPaymentRow(method=row.method, amount_text=row.amount) for row in request.split_payments]
    outcome = await service.settle(
        customer_id,
        request.amount,
        method=request.method,
        split_rows=split_rows,
        print_receipt=request.print_receipt,
    )
    return _settlement_response(outcome.record, outcome.receipt)


@router.get("/settlements", response_model=List[SettlementResponse])
async def list_settlements(customer_id: str, service: SettlementService = Depends(get_settlement_service)):
    return [_settlement_response(record) for record in await service.history(customer_id)]


@router.post("/credit-statement/print", response_model=PrintOutcomeResponse)
async def print_credit_statement(customer_id: str, service: SettlementService = Depends(get_settlement_service)):
    outcome = await service.print_credit_statement(customer_id)
    return asdict(outcome)
