"""
Settlement Service (Domain Logic).

Settles part or all of a customer's credit. The financial commit always
lands before any printing; a print failure is reported on the outcome and
never undoes or hides the settlement.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from arbi_pos.app.domain.enums import PaymentMethod, SettlementMethod
from arbi_pos.app.domain.money import parse_amount
from arbi_pos.app.domain.records import Customer
from arbi_pos.app.domain.settlement.allocation import (
    CreditLedgerEntry,
    SettlementAllocation,
    allocate,
    validate_settlement_amount,
)
from arbi_pos.app.domain.settlement.ledger import build_credit_ledger, outstanding_ledger
from arbi_pos.app.domain.settlement.split import SplitPaymentRow, require_valid_split
from arbi_pos.app.printing.documents import (
    Letterhead,
    compose_credit_statement,
    compose_settlement_receipt,
    statement_from_ledger,
)
from arbi_pos.app.printing.primitives import PrintJob
from arbi_pos.app.services.print_service import PrintOutcome, PrintService
from arbi_pos.app.services.store import (
    CreditStore,
    PaymentRecord,
    SettlementRecord,
    now_millis,
    settlement_reference,
    split_parts,
)

logger = logging.getLogger("arbi_pos.settlement")


@dataclass(frozen=True)
class SettlementPreview:
    customer: Customer
    ledger: List[CreditLedgerEntry]
    allocation: SettlementAllocation
    remaining_credit: Decimal


@dataclass(frozen=True)
class SettlementOutcome:
    """A committed settlement and what happened when its receipt was printed."""
    record: SettlementRecord
    receipt: Optional[PrintOutcome] = None

    @property
    def printed(self) -> bool:
        return self.receipt is not None and self.receipt.success


class SettlementService:

    def __init__(self, store: CreditStore, printer: Optional[PrintService] = None):
        self.store = store
        self.printer = printer

    async def outstanding(self, customer_id: str):
        """Customer and their outstanding ledger, clipped to the customer's credit."""
        customer = await self.store.get_customer(customer_id)
        orders = await self.store.get_orders_for_customer(customer_id)
        ledger = outstanding_ledger(build_credit_ledger(customer, orders), customer.credit_amount)
        return customer, ledger

    async def preview(self, customer_id: str, amount: Any) -> SettlementPreview:
        """Allocation for an amount, without committing anything."""
        customer, ledger = await self.outstanding(customer_id)
        requested = validate_settlement_amount(parse_amount(amount), customer.credit_amount)
        allocation = allocate(ledger, requested)
        return SettlementPreview(
            customer=customer,
            ledger=ledger,
            allocation=allocation,
            remaining_credit=customer.credit_amount - allocation.total,
        )

    async def settle(
        self,
        customer_id: str,
        amount: Any,
        method: SettlementMethod = SettlementMethod.CASH,
        split_rows: Optional[Sequence[SplitPaymentRow]] = None,
        print_receipt: bool = True,
    ) -> SettlementOutcome:
        """
        Settle a customer's credit.

        Flow:
        1. Build the outstanding ledger
        2. Validate the amount and allocate it oldest-first
        3. Check the split rows against the settlement amount
        4. Commit credit reduction, order marks and record atomically
        5. Print the settlement receipt

        Args:
            customer_id: customer to settle
            amount: amount as entered; unparseable input counts as 0
            method: single tender method, ignored when split_rows is given
            split_rows: split tender rows, must sum to the settled amount
            print_receipt: print a receipt after the commit

        Returns:
            SettlementOutcome with the committed record and the print result

        Raises:
            NothingToAllocateError, AmountExceedsCreditError, SplitMismatchError:
                bad input, nothing was changed
            SettlementConflictError: credit changed underneath, nothing was changed
        """
        preview = await self.preview(customer_id, amount)
        allocation = preview.allocation

        timestamp = now_millis()
        if split_rows is not None:
            require_valid_split(split_rows, allocation.total)
            payment = PaymentRecord(
                method=PaymentMethod.SPLIT,
                amount=allocation.total,
                split_payments=split_parts(split_rows),
                reference=settlement_reference(timestamp),
                timestamp=timestamp,
            )
        else:
            payment = PaymentRecord(
                method=PaymentMethod(method.value),
                amount=allocation.total,
                reference=settlement_reference(timestamp),
                timestamp=timestamp,
            )

        record = await self.store.commit_settlement(customer_id, allocation, payment)
        logger.info(
            "Credit settled",
            extra={
                "customer_id": customer_id,
                "reference": record.reference,
                "amount": str(record.settled_amount),
                "orders": list(allocation.order_ids),
            },
        )

        if not print_receipt or self.printer is None:
            return SettlementOutcome(record=record)

        job = compose_settlement_receipt(record, self.printer.letterhead)
        receipt = await self.printer.print_job(job, "Settlement receipt")
        if not receipt.success:
            logger.warning(
                "Settlement committed but receipt printing failed",
                extra={"reference": record.reference, "error_code": receipt.error_code},
            )
        return SettlementOutcome(record=record, receipt=receipt)

    async def credit_statement(self, customer_id: str) -> PrintJob:
        customer, ledger = await self.outstanding(customer_id)
        letterhead = self.printer.letterhead if self.printer else Letterhead()
        return compose_credit_statement(statement_from_ledger(customer, ledger), letterhead)

    async def print_credit_statement(self, customer_id: str) -> PrintOutcome:
        if self.printer is None:
            return PrintOutcome(False, "No printer configured")
        job = await self.credit_statement(customer_id)
        return await self.printer.print_job(job, "Credit statement")

    async def history(self, customer_id: str) -> List[SettlementRecord]:
        return await self.store.list_settlements(customer_id)
