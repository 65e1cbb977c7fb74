"""
Configuration settings for the ARBI POS core.

This module handles application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "ARBI POS"
    api_version: str = "v1"
    debug: bool = True
    log_level: str = "INFO"

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./arbi_pos.db"
    db_echo: bool = False

    # Receipt Layout
    business_name: str = "ARBI POS"
    business_lines: List[str] = []
    currency_label: str = "Rs."
    paper_width: int = 32

    # Printer Connection
    printer_connect_timeout_seconds: float = 15.0
    printer_max_reconnect_attempts: int = 3
    printer_rfcomm_channel: int = 1
    printer_encoding: str = "cp437"
    printer_known_devices: List[str] = []  # "AA:BB:CC:DD:EE:FF=Printer Name"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
