"""
Service dependencies for FastAPI.

The store and the printer session live on app.state so each app (and each
test) owns its own instances.
"""

from fastapi import Depends, Request

from arbi_pos.app.core.config import settings
from arbi_pos.app.domain.settlement.service import SettlementService
from arbi_pos.app.printing.session import PrinterSession
from arbi_pos.app.services.print_service import PrintService, letterhead_from_settings
from arbi_pos.app.services.store import CreditStore


def get_store(request: Request) -> CreditStore:
    return request.app.state.store


def get_printer_session(request: Request) -> PrinterSession:
    return request.app.state.printer_session


def get_print_service(session: PrinterSession = Depends(get_printer_session)) -> PrintService:
    return PrintService(session, letterhead_from_settings(settings))


def get_settlement_service(
    store: CreditStore = Depends(get_store),
    printer: PrintService = Depends(get_print_service),
) -> SettlementService:
    return SettlementService(store, printer)
