"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes for the settlement and printing cores
and the global exception handlers used by the HTTP adapter.
"""

import enum
import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("arbi_pos")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


# Settlement (input/validation) errors. Never mutate state.

class SettlementError(AppException):
    """Base class for settlement input errors."""

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class AmountExceedsCreditError(SettlementError):
    """Raised when a settlement amount is larger than the outstanding credit."""

    def __init__(self, requested: Any, available: Any):
        super().__init__(
            message="The settlement amount cannot exceed the outstanding credit amount",
            error_code="ERR_SETTLE_001",
            details={"requested": str(requested), "available": str(available)}
        )


class NothingToAllocateError(SettlementError):
    """Raised when an amount does not cover any credit."""

    def __init__(self, message: str = "Amount does not cover any credit"):
        super().__init__(message=message, error_code="ERR_SETTLE_002")


class SplitMismatchError(SettlementError):
    """Raised when split payment rows do not add up to the settlement amount."""

    def __init__(self, split_total: Any, target: Any, message: str = None):
        super().__init__(
            message=message or "Split total must exactly equal the settlement amount",
            error_code="ERR_SETTLE_003",
            details={"split_total": str(split_total), "target": str(target)}
        )


class SettlementConflictError(AppException):
    """Raised at commit time when the ledger moved under an allocation."""

    def __init__(self, message: str, order_id: Any = None):
        super().__init__(
            message=message,
            error_code="ERR_SETTLE_004",
            status_code=status.HTTP_409_CONFLICT,
            details={"order_id": order_id}
        )


class OrderAlreadyCompletedError(AppException):
    """Raised when an order that already carries a payment is completed again."""

    def __init__(self, order_id: Any):
        super().__init__(
            message=f"Order {order_id} is already completed",
            error_code="ERR_ORDER_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"order_id": order_id}
        )


# Printer errors

class PrinterFailure(str, enum.Enum):
    """Failure classification exposed to callers of the printer session."""
    MODULE_UNAVAILABLE = "MODULE_UNAVAILABLE"
    BLUETOOTH_DISABLED = "BLUETOOTH_DISABLED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DEVICE_UNREACHABLE = "DEVICE_UNREACHABLE"
    CONNECTION_TIMEOUT = "CONNECTION_TIMEOUT"
    NOT_CONNECTED = "NOT_CONNECTED"
    TRANSMIT_FAILURE = "TRANSMIT_FAILURE"
    SESSION_BUSY = "SESSION_BUSY"
    DISCONNECT_FAILURE = "DISCONNECT_FAILURE"


class PrinterError(AppException):
    """Base class for printer connectivity and transmission errors."""

    failure: PrinterFailure = PrinterFailure.DEVICE_UNREACHABLE
    remedy: str = "Check the printer and try again."

    def __init__(self, message: str, error_code: str, status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details={"failure": self.failure.value, "remedy": self.remedy}
        )


class ModuleUnavailableError(PrinterError):
    failure = PrinterFailure.MODULE_UNAVAILABLE
    remedy = "Bluetooth printing is not supported on this device."

    def __init__(self, message: str = "Bluetooth printing module not available"):
        super().__init__(message, "ERR_PRINT_001")


class BluetoothDisabledError(PrinterError):
    failure = PrinterFailure.BLUETOOTH_DISABLED
    remedy = "Enable Bluetooth to print."

    def __init__(self, message: str = "Bluetooth is not enabled"):
        super().__init__(message, "ERR_PRINT_002")


class PermissionDeniedError(PrinterError):
    failure = PrinterFailure.PERMISSION_DENIED
    remedy = "Grant Bluetooth and location permissions in settings."

    def __init__(self, message: str = "Required permissions not granted"):
        super().__init__(message, "ERR_PRINT_003", status.HTTP_403_FORBIDDEN)


class DeviceUnreachableError(PrinterError):
    failure = PrinterFailure.DEVICE_UNREACHABLE
    remedy = "Check that the printer is turned on and in range."

    def __init__(self, message: str = "Printer could not be reached"):
        super().__init__(message, "ERR_PRINT_004")


class ConnectionTimeoutError(DeviceUnreachableError):
    failure = PrinterFailure.CONNECTION_TIMEOUT
    remedy = "Printer connection timed out. Check that it is turned on and in range."

    def __init__(self, timeout: float):
        super().__init__(f"Connection timeout after {timeout:g}s")
        self.error_code = "ERR_PRINT_005"


class ReconnectLimitError(DeviceUnreachableError):
    remedy = "Reconnect limit reached. Select the printer and connect again."

    def __init__(self, attempts: int):
        super().__init__(f"Gave up reconnecting after {attempts} failed attempts")
        self.error_code = "ERR_PRINT_006"


class NotConnectedError(PrinterError):
    failure = PrinterFailure.NOT_CONNECTED
    remedy = "Connect a printer before printing."

    def __init__(self, message: str = "No device connected"):
        super().__init__(message, "ERR_PRINT_007", status.HTTP_409_CONFLICT)


class TransmitFailureError(PrinterError):
    failure = PrinterFailure.TRANSMIT_FAILURE
    remedy = "Printer connection lost. Reconnect the printer and print again."

    def __init__(self, message: str, command_index: int = None):
        super().__init__(message, "ERR_PRINT_008")
        self.command_index = command_index
        self.details["command_index"] = command_index


class SessionBusyError(PrinterError):
    failure = PrinterFailure.SESSION_BUSY
    remedy = "Another document is printing. Try again when it finishes."

    def __init__(self, message: str = "Printer session is busy with another job"):
        super().__init__(message, "ERR_PRINT_009", status.HTTP_409_CONFLICT)


class DisconnectError(PrinterError):
    failure = PrinterFailure.DISCONNECT_FAILURE
    remedy = "The printer may still hold the link. Power-cycle it if reconnecting fails."

    def __init__(self, message: str):
        super().__init__(message, "ERR_PRINT_010")


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
