"""
Print service.

Composes documents for orders and sends them through a PrinterSession.
Printer errors come back as PrintOutcome values carrying a remedy, so
callers can report "printing failed" without losing what already happened.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from arbi_pos.app.core.config import Settings
from arbi_pos.app.core.exceptions import PrinterError
from arbi_pos.app.domain.enums import Station
from arbi_pos.app.domain.records import Order
from arbi_pos.app.printing import documents
from arbi_pos.app.printing.health import ConnectionHealth
from arbi_pos.app.printing.primitives import PrintJob
from arbi_pos.app.printing.session import PrinterSession

logger = logging.getLogger("arbi_pos.printing")


@dataclass(frozen=True)
class PrintOutcome:
    success: bool
    message: str
    document: Optional[str] = None
    error_code: Optional[str] = None
    remedy: Optional[str] = None
    skipped: bool = False


@dataclass(frozen=True)
class PrinterCheck:
    connected: bool
    message: str
    issues: List[str] = field(default_factory=list)


def letterhead_from_settings(settings: Settings) -> documents.Letterhead:
    return documents.Letterhead(
        name=settings.business_name,
        lines=tuple(settings.business_lines),
        currency=settings.currency_label,
        width=settings.paper_width,
    )


class PrintService:
    def __init__(self, session: PrinterSession, letterhead: documents.Letterhead = documents.Letterhead()):
        self.session = session
        self.letterhead = letterhead

    def check_printer_connection(self) -> PrinterCheck:
        """Advisory check for the UI, printing does not depend on it."""
        if not self.session.transport.is_supported():
            return PrinterCheck(False, "Bluetooth printing not supported on this device")
        if not self.session.bluetooth_enabled:
            return PrinterCheck(False, "Bluetooth is not enabled. Please enable Bluetooth to print.")
        health: ConnectionHealth = self.session.get_connection_health()
        if not health.healthy:
            return PrinterCheck(False, f"Printer connection issues: {', '.join(health.issues)}", list(health.issues))
        return PrinterCheck(True, "Printer connection available")

    async def print_job(self, job: PrintJob, label: str) -> PrintOutcome:
        if not job.has_body:
            return PrintOutcome(True, f"Nothing to print for {label}", document=job.kind.value, skipped=True)
        try:
            await self.session.transmit(job)
        except PrinterError as exc:
            logger.warning(
                "Print failed",
                extra={"document": job.kind.value, "error_code": exc.error_code, "failure": exc.failure.value},
            )
            return PrintOutcome(
                success=False,
                message=f"Failed to print {label}: {exc.message}",
                document=job.kind.value,
                error_code=exc.error_code,
                remedy=exc.remedy,
            )
        return PrintOutcome(True, f"{label} sent to printer successfully", document=job.kind.value)

    async def print_order_tickets(self, order: Order, table_name: Optional[str] = None) -> List[PrintOutcome]:
        """KOT then BOT for one order. A station without items is skipped."""
        width = self.letterhead.width
        kot = documents.compose_kot(documents.ticket_from_order(order, Station.KOT, table_name), width)
        bot = documents.compose_bot(documents.ticket_from_order(order, Station.BOT, table_name), width)
        outcomes = [await self.print_job(kot, "Kitchen ticket (KOT)")]
        outcomes.append(await self.print_job(bot, "Bar ticket (BOT)"))
        return outcomes

    async def print_receipt(self, order: Order, table_name: Optional[str] = None,
                            pre_receipt: bool = False) -> PrintOutcome:
        data = documents.receipt_from_order(order, table_name, pre_receipt=pre_receipt)
        job = documents.compose_receipt(data, self.letterhead)
        return await self.print_job(job, "Pre-receipt" if pre_receipt else "Receipt")

    async def print_daily_summary(self, orders: Iterable[Order], period_label: str, print_time: int,
                                  branch: Optional[str] = None) -> PrintOutcome:
        data = documents.daily_summary_from_orders(orders, period_label, print_time, branch)
        return await self.print_job(documents.compose_daily_summary(data, self.letterhead.width), "Day summary")
