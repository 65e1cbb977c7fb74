"""
Printer session: the connection state machine and job transmission.

    DISABLED --enable--> DISCONNECTED --connect--> CONNECTING --> CONNECTED
    CONNECTED --disconnect / transmit failure--> DISCONNECTED

A failed enable or scan leaves the session in ERROR with a diagnostic
message. A failed connect lands in DISCONNECTED, which is also where an
ERROR session recovers to.

One session owns one link. connect and transmit are exclusive: a second
call while a connect or a job is in flight is rejected with
SessionBusyError, never queued.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from arbi_pos.app.core.exceptions import (
    BluetoothDisabledError,
    ConnectionTimeoutError,
    DeviceUnreachableError,
    DisconnectError,
    ModuleUnavailableError,
    NotConnectedError,
    PermissionDeniedError,
    PrinterError,
    SessionBusyError,
    TransmitFailureError,
)
from arbi_pos.app.core.reliability import ReconnectGuard
from arbi_pos.app.printing.documents import compose_test_job
from arbi_pos.app.printing.health import ConnectionHealth, assess_connection
from arbi_pos.app.printing.primitives import NORMAL, Feed, Init, PrintJob, SetAlign, SetFont, WriteText
from arbi_pos.app.printing.transport import BluetoothTransport, DeviceHandle

logger = logging.getLogger("arbi_pos.printing.session")


class ConnectionState(str, enum.Enum):
    DISABLED = "DISABLED"
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class DisconnectResult:
    """Outcome of a disconnect. The session is disconnected either way."""
    error: Optional[DisconnectError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PrinterSession:
    def __init__(
        self,
        transport: BluetoothTransport,
        connect_timeout: float = 15.0,
        max_reconnect_attempts: int = 3,
        paper_width: int = 32,
    ):
        self.transport = transport
        self.connect_timeout = connect_timeout
        self.paper_width = paper_width
        self.guard = ReconnectGuard(max_attempts=max_reconnect_attempts)

        self.state = ConnectionState.DISABLED
        self.current_device: Optional[DeviceHandle] = None
        self.last_device: Optional[DeviceHandle] = None
        self.last_error: Optional[str] = None
        self.bluetooth_enabled = False
        self.permissions_granted = False
        self._busy = False
        self._connecting = False

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def busy(self) -> bool:
        return self._busy

    def _fail(self, error: PrinterError, state: ConnectionState = ConnectionState.ERROR) -> PrinterError:
        self.state = state
        self.last_error = error.message
        logger.warning(
            "Printer operation failed",
            extra={"error_code": error.error_code, "failure": error.failure.value, "state": state.value},
        )
        return error

    async def enable(self) -> ConnectionState:
        """Check module support, switch the adapter on and request permissions."""
        if not self.transport.is_supported():
            raise self._fail(ModuleUnavailableError())

        enabled = await self.transport.is_enabled()
        if not enabled:
            enabled = await self.transport.enable()
        self.bluetooth_enabled = enabled
        if not enabled:
            raise self._fail(BluetoothDisabledError())

        self.permissions_granted = await self.transport.request_permissions()
        if not self.permissions_granted:
            raise self._fail(PermissionDeniedError())

        if self.state != ConnectionState.CONNECTED:
            self.state = ConnectionState.DISCONNECTED
        self.last_error = None
        logger.info("Bluetooth enabled")
        return self.state

    def _require_ready(self):
        if not self.transport.is_supported():
            raise ModuleUnavailableError()
        if not self.bluetooth_enabled or self.state == ConnectionState.DISABLED:
            raise BluetoothDisabledError()
        if not self.permissions_granted:
            raise PermissionDeniedError()

    async def scan_devices(self) -> List[DeviceHandle]:
        """Paired devices first, then newly found ones, unique by address."""
        self._require_ready()
        try:
            result = await self.transport.scan()
        except Exception as exc:
            fallback = ConnectionState.CONNECTED if self.connected else ConnectionState.ERROR
            raise self._fail(DeviceUnreachableError(f"Device scan failed: {exc}"), fallback) from exc

        devices: Dict[str, DeviceHandle] = {}
        for device in result.paired:
            devices.setdefault(device.address, DeviceHandle(device.address, device.name, True, device.rssi))
        for device in result.found:
            devices.setdefault(device.address, device)
        logger.info("Device scan finished", extra={"device_count": len(devices)})
        return list(devices.values())

    async def _open_link(self, address: str):
        await asyncio.wait_for(self.transport.connect(address), timeout=self.connect_timeout)

    async def connect(self, device: Union[DeviceHandle, str]) -> DeviceHandle:
        """
        Connect to a printer, dropping any existing link first.

        Raises:
            SessionBusyError: another connect or a print job is in flight
            ConnectionTimeoutError: no link within connect_timeout seconds
            DeviceUnreachableError: the transport refused the connection
        """
        if isinstance(device, str):
            device = DeviceHandle(address=device, name=device)
        self._require_ready()
        if self._connecting or self._busy:
            raise SessionBusyError("Printer session is busy connecting or printing")

        self._connecting = True
        try:
            return await self._establish(device)
        finally:
            self._connecting = False

    async def _establish(self, device: DeviceHandle) -> DeviceHandle:
        if self.state == ConnectionState.CONNECTED:
            result = await self.disconnect()
            if not result.ok:
                logger.warning("Previous link did not close cleanly", extra={"error": result.error.message})

        self.state = ConnectionState.CONNECTING
        self.current_device = None
        logger.info("Connecting to printer", extra={"address": device.address, "device_name": device.name})
        try:
            await self.guard.call(self._open_link, device.address)
        except asyncio.TimeoutError:
            raise self._fail(ConnectionTimeoutError(self.connect_timeout), ConnectionState.DISCONNECTED) from None
        except Exception as exc:
            error = DeviceUnreachableError(f"Failed to connect to {device.name or device.address}: {exc}")
            raise self._fail(error, ConnectionState.DISCONNECTED) from exc

        self.state = ConnectionState.CONNECTED
        self.current_device = device
        self.last_device = device
        self.last_error = None
        logger.info("Printer connected", extra={"address": device.address})
        return device

    async def disconnect(self) -> DisconnectResult:
        """Drop the link. Transport errors are returned, not raised."""
        error = None
        try:
            await self.transport.disconnect()
        except Exception as exc:
            error = DisconnectError(f"Disconnect failed: {exc}")
            self.last_error = error.message
            logger.warning("Printer disconnect failed", extra={"error": str(exc)})

        if self.state != ConnectionState.DISABLED:
            self.state = ConnectionState.DISCONNECTED
        self.current_device = None
        return DisconnectResult(error=error)

    async def reconnect(self) -> DeviceHandle:
        """Reconnect to the last device while under the reconnect cap."""
        if self.last_device is None:
            raise NotConnectedError("No previous printer to reconnect to")
        self.guard.check()
        return await self.connect(self.last_device)

    async def _dispatch(self, command, font):
        if isinstance(command, Init):
            await self.transport.init()
        elif isinstance(command, SetAlign):
            await self.transport.align(command.mode)
        elif isinstance(command, WriteText):
            await self.transport.write_text(command.text, font)
        elif isinstance(command, Feed):
            await self.transport.feed(command.lines)
        else:
            raise TypeError(f"Unknown print command: {command!r}")

    async def transmit(self, job: PrintJob) -> int:
        """
        Send a job's primitives in order.

        Stops at the first failing primitive: the rest of the job is not
        sent and the session drops to DISCONNECTED.

        Returns:
            Number of primitives sent
        """
        if self._busy or self._connecting:
            raise SessionBusyError()
        if self.state != ConnectionState.CONNECTED:
            raise NotConnectedError()

        self._busy = True
        font = NORMAL
        try:
            for index, command in enumerate(job.commands):
                if isinstance(command, SetFont):
                    # Font applies to the text that follows it.
                    font = command.style
                    continue
                try:
                    await self._dispatch(command, font)
                except Exception as exc:
                    await self._drop_link()
                    error = TransmitFailureError(f"Printing failed at command {index + 1} of {len(job)}: {exc}", index)
                    raise self._fail(error, ConnectionState.DISCONNECTED) from exc
        finally:
            self._busy = False

        logger.info("Print job sent", extra={"kind": job.kind.value, "commands": len(job)})
        return len(job)

    async def _drop_link(self):
        self.current_device = None
        try:
            await self.transport.disconnect()
        except Exception as exc:
            logger.warning("Could not close link after transmit failure", extra={"error": str(exc)})

    async def test_connection(self) -> bool:
        if not self.connected:
            return False
        try:
            await self.transmit(compose_test_job(self.paper_width))
        except PrinterError:
            return False
        return True

    def clear_error(self):
        self.last_error = None
        if self.state == ConnectionState.ERROR:
            self.state = ConnectionState.DISCONNECTED if self.bluetooth_enabled else ConnectionState.DISABLED

    def get_connection_health(self) -> ConnectionHealth:
        return assess_connection(
            bluetooth_enabled=self.bluetooth_enabled,
            connected=self.connected,
            last_error=self.last_error,
            reconnect_attempts=self.guard.attempts,
        )

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "bluetooth_enabled": self.bluetooth_enabled,
            "permissions_granted": self.permissions_granted,
            "connected": self.connected,
            "current_device": self.current_device,
            "last_error": self.last_error,
            "reconnect_attempts": self.guard.attempts,
            "busy": self._busy,
        }
