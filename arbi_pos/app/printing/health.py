"""
Connection health report for a printer session.

Advisory only: printing never gates on this, transmit re-checks the
connection itself.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ConnectionHealth:
    healthy: bool
    issues: List[str] = field(default_factory=list)


def assess_connection(
    bluetooth_enabled: bool,
    connected: bool,
    last_error: Optional[str],
    reconnect_attempts: int,
) -> ConnectionHealth:
    issues = []
    if not bluetooth_enabled:
        issues.append("Bluetooth is not enabled")
    if not connected:
        issues.append("No printer connected")
    if last_error:
        issues.append(f"Last error: {last_error}")
    if reconnect_attempts > 0:
        issues.append(f"Failed connection attempts: {reconnect_attempts}")
    return ConnectionHealth(healthy=not issues, issues=issues)
