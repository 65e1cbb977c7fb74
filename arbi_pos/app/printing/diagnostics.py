"""
Printer diagnostics.

Walks the same checks a support person would (module, adapter,
permissions, link, test print) and keeps a timestamped debug log of each
step.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from arbi_pos.app.core.exceptions import PrinterError
from arbi_pos.app.printing.session import PrinterSession
from arbi_pos.app.printing.transport import DeviceHandle

logger = logging.getLogger("arbi_pos.printing.diagnostics")


@dataclass
class DiagnosticsReport:
    module_supported: bool = False
    bluetooth_enabled: bool = False
    permissions_granted: bool = False
    device_connected: bool = False
    current_device: Optional[DeviceHandle] = None
    last_error: Optional[str] = None
    devices: List[DeviceHandle] = field(default_factory=list)
    test_print_ok: Optional[bool] = None
    log: List[str] = field(default_factory=list)


class PrinterDiagnostics:
    def __init__(self, session: PrinterSession):
        self.session = session
        self._log: List[str] = []

    def log(self, message: str):
        timestamp = datetime.now(timezone.utc).isoformat()
        self._log.append(f"[{timestamp}] {message}")
        logger.debug(message)

    def debug_log(self) -> List[str]:
        return list(self._log)

    def clear_debug_log(self):
        self._log = []

    async def run(self) -> DiagnosticsReport:
        report = DiagnosticsReport()
        transport = self.session.transport
        self.log("Starting Bluetooth diagnostics")

        report.module_supported = transport.is_supported()
        if not report.module_supported:
            self.log("Bluetooth module not supported")
            report.log = self.debug_log()
            return report
        self.log("Module is supported")

        try:
            report.bluetooth_enabled = await transport.is_enabled()
            self.log(f"Bluetooth enabled: {report.bluetooth_enabled}")
            report.permissions_granted = await transport.request_permissions()
            self.log(f"Permissions granted: {report.permissions_granted}")
        except Exception as exc:
            self.log(f"Diagnostic error: {exc}")
            report.last_error = str(exc)
            report.log = self.debug_log()
            return report

        status = self.session.status()
        report.device_connected = status["connected"]
        report.current_device = status["current_device"]
        report.last_error = status["last_error"]
        self.log(f"Device connected: {report.device_connected}")
        if report.last_error:
            self.log(f"Last error: {report.last_error}")

        if report.bluetooth_enabled and report.permissions_granted and self.session.bluetooth_enabled:
            try:
                report.devices = await self.session.scan_devices()
            except PrinterError as exc:
                self.log(f"Device scan failed: {exc.message}")
            else:
                self.log(f"Found {len(report.devices)} devices")

        if report.device_connected:
            self.log("Testing connection")
            report.test_print_ok = await self.session.test_connection()
            self.log(f"Connection test result: {report.test_print_ok}")

        self.log("Diagnostics completed")
        report.log = self.debug_log()
        return report

    async def force_reconnect(self) -> bool:
        """Drop the link and connect to the last printer again."""
        device = self.session.current_device or self.session.last_device
        if device is None:
            self.log("No device to reconnect to")
            return False

        self.log(f"Forcing reconnect to {device.name or device.address}")
        result = await self.session.disconnect()
        if not result.ok:
            self.log(f"Disconnect reported: {result.error.message}")
        try:
            await self.session.connect(device)
        except PrinterError as exc:
            self.log(f"Reconnect failed: {exc.message}")
            return False
        self.log("Reconnect successful")
        return True
