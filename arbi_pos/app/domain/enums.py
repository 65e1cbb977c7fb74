"""
POS enumerations.
"""

import enum


class OrderStatus(str, enum.Enum):
    """Order status enumeration."""
    ONGOING = "ongoing"
    COMPLETED = "completed"


class Station(str, enum.Enum):
    """Print routing tag on an order line item."""
    KOT = "KOT"  # Kitchen Order Ticket
    BOT = "BOT"  # Bar Order Ticket


class PaymentMethod(str, enum.Enum):
    """Tender types recorded on an order payment."""
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"
    BANK_CARD = "Bank Card"
    BANK = "Bank"
    FONEPAY = "Fonepay"
    CREDIT = "Credit"
    SPLIT = "Split"


class SettlementMethod(str, enum.Enum):
    """Tender types accepted when settling credit."""
    CASH = "Cash"
    CARD = "Card"
    BANK = "Bank"
    FONEPAY = "Fonepay"
