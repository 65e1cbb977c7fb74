"""
Printer Schemas.
"""

from typing import List, Optional

from pydantic import BaseModel


class DeviceResponse(BaseModel):
    address: str
    name: str = ""
    paired: bool = False
    rssi: Optional[int] = None

    class Config:
        from_attributes = True


class ConnectRequest(BaseModel):
    address: str
    name: str = ""


class PrinterStatusResponse(BaseModel):
    state: str
    bluetooth_enabled: bool
    permissions_granted: bool
    connected: bool
    current_device: Optional[DeviceResponse] = None
    last_error: Optional[str] = None
    reconnect_attempts: int
    busy: bool


class DisconnectResponse(BaseModel):
    ok: bool
    error: Optional[str] = None
    status: PrinterStatusResponse


class ConnectionHealthResponse(BaseModel):
    healthy: bool
    issues: List[str]
    connected: bool
    message: str


class DiagnosticsResponse(BaseModel):
    module_supported: bool
    bluetooth_enabled: bool
    permissions_granted: bool
    device_connected: bool
    current_device: Optional[DeviceResponse] = None
    last_error: Optional[str] = None
    devices: List[DeviceResponse]
    test_print_ok: Optional[bool] = None
    log: List[str]

    class Config:
        from_attributes = True
