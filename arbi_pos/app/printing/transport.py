"""
Bluetooth transport.

BluetoothTransport is the primitive contract the printer session is built
on. RfcommTransport delivers ESC/POS bytes over a Bluetooth serial (RFCOMM)
socket using the asyncio event loop.
"""

import asyncio
import logging
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol, Tuple

from arbi_pos.app.printing import escpos
from arbi_pos.app.printing.primitives import Align, FontStyle

logger = logging.getLogger("arbi_pos.printing.transport")

SYSFS_BLUETOOTH = Path("/sys/class/bluetooth")


@dataclass(frozen=True)
class DeviceHandle:
    address: str
    name: str = ""
    paired: bool = False
    rssi: Optional[int] = None


@dataclass(frozen=True)
class ScanResult:
    paired: Tuple[DeviceHandle, ...] = ()
    found: Tuple[DeviceHandle, ...] = ()


class BluetoothTransport(Protocol):
    def is_supported(self) -> bool: ...

    async def is_enabled(self) -> bool: ...

    async def enable(self) -> bool: ...

    async def request_permissions(self) -> bool: ...

    async def scan(self) -> ScanResult: ...

    async def connect(self, address: str) -> None: ...

    async def disconnect(self) -> None: ...

    async def init(self) -> None: ...

    async def align(self, mode: Align) -> None: ...

    async def write_text(self, text: str, font: FontStyle) -> None: ...

    async def feed(self, lines: int) -> None: ...


def parse_known_devices(entries: Iterable[str]) -> Tuple[DeviceHandle, ...]:
    """'AA:BB:CC:DD:EE:FF=Kitchen Printer' entries, name optional."""
    devices = []
    for entry in entries:
        address, _, name = entry.partition("=")
        address = address.strip().upper()
        if address:
            devices.append(DeviceHandle(address=address, name=name.strip() or address, paired=True))
    return tuple(devices)


class RfcommTransport:
    """
    RFCOMM socket transport for ESC/POS printers.

    The standard library exposes no device discovery, so scan() reports the
    configured known (paired) printers only.
    """

    def __init__(self, known_devices: Iterable[DeviceHandle] = (), channel: int = 1, encoding: str = "cp437"):
        self.known_devices = tuple(known_devices)
        self.channel = channel
        self.encoding = encoding
        self._sock: Optional[socket.socket] = None

    def is_supported(self) -> bool:
        return hasattr(socket, "AF_BLUETOOTH") and hasattr(socket, "BTPROTO_RFCOMM")

    async def is_enabled(self) -> bool:
        if not self.is_supported():
            return False
        return SYSFS_BLUETOOTH.is_dir() and any(SYSFS_BLUETOOTH.glob("hci*"))

    async def enable(self) -> bool:
        # Adapters cannot be powered on through the socket API.
        return await self.is_enabled()

    async def request_permissions(self) -> bool:
        try:
            probe = self._new_socket()
        except PermissionError:
            return False
        probe.close()
        return True

    async def scan(self) -> ScanResult:
        return ScanResult(paired=self.known_devices)

    def _new_socket(self) -> socket.socket:
        return socket.socket(socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)

    async def connect(self, address: str) -> None:
        loop = asyncio.get_running_loop()
        sock = self._new_socket()
        sock.setblocking(False)
        try:
            await loop.sock_connect(sock, (address, self.channel))
        except BaseException:
            sock.close()
            raise
        self._sock = sock
        logger.info("RFCOMM link open", extra={"address": address, "channel": self.channel})

    async def disconnect(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

    async def _send(self, payload: bytes) -> None:
        if self._sock is None:
            raise ConnectionError("RFCOMM link is not open")
        await asyncio.get_running_loop().sock_sendall(self._sock, payload)

    async def init(self) -> None:
        await self._send(escpos.encode_init())

    async def align(self, mode: Align) -> None:
        await self._send(escpos.encode_align(mode))

    async def write_text(self, text: str, font: FontStyle) -> None:
        await self._send(escpos.encode_font(font) + escpos.encode_text(text, self.encoding))

    async def feed(self, lines: int) -> None:
        await self._send(escpos.encode_feed(lines))
