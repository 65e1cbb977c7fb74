"""
Printer API Endpoints.

Drive the shared printer session: enable Bluetooth, find and connect a
printer, and inspect the link.
"""

from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends

from arbi_pos.app.core.dependencies import get_print_service, get_printer_session
from arbi_pos.app.printing.diagnostics import PrinterDiagnostics
from arbi_pos.app.printing.session import PrinterSession
from arbi_pos.app.printing.transport import DeviceHandle
from arbi_pos.app.schemas.printer import (
    ConnectionHealthResponse,
    ConnectRequest,
    DeviceResponse,
    DiagnosticsResponse,
    DisconnectResponse,
    PrinterStatusResponse,
)
from arbi_pos.app.services.print_service import PrintService

router = APIRouter(prefix="/printer", tags=["Printer"])


def _status(session: PrinterSession) -> PrinterStatusResponse:
    snapshot = session.status()
    device = snapshot.pop("current_device")
    return PrinterStatusResponse(**snapshot, current_device=asdict(device) if device else None)


@router.get("/status", response_model=PrinterStatusResponse)
async def get_status(session: PrinterSession = Depends(get_printer_session)):
    return _status(session)


@router.post("/enable", response_model=PrinterStatusResponse)
async def enable_bluetooth(session: PrinterSession = Depends(get_printer_session)):
    await session.enable()
    return _status(session)


@router.get("/devices", response_model=List[DeviceResponse])
async def scan_devices(session: PrinterSession = Depends(get_printer_session)):
    """Paired printers first, then newly discovered ones."""
    return [asdict(device) for device in await session.scan_devices()]


@router.post("/connect", response_model=PrinterStatusResponse)
async def connect_printer(request: ConnectRequest, session: PrinterSession = Depends(get_printer_session)):
    await session.connect(DeviceHandle(address=request.address, name=request.name or request.address))
    return _status(session)


@router.post("/reconnect", response_model=PrinterStatusResponse)
async def reconnect_printer(session: PrinterSession = Depends(get_printer_session)):
    await session.reconnect()
    return _status(session)


@router.post("/disconnect", response_model=DisconnectResponse)
async def disconnect_printer(session: PrinterSession = Depends(get_printer_session)):
    result = await session.disconnect()
    return DisconnectResponse(
        ok=result.ok,
        error=result.error.message if result.error else None,
        status=_status(session),
    )


@router.get("/health", response_model=ConnectionHealthResponse)
async def connection_health(
    session: PrinterSession = Depends(get_printer_session),
    printer: PrintService = Depends(get_print_service),
):
    health = session.get_connection_health()
    check = printer.check_printer_connection()
    return ConnectionHealthResponse(
        healthy=health.healthy,
        issues=health.issues,
        connected=check.connected,
        message=check.message,
    )


@router.post("/diagnostics", response_model=DiagnosticsResponse)
async def run_diagnostics(session: PrinterSession = Depends(get_printer_session)):
    report = await PrinterDiagnostics(session).run()
    return asdict(report)
