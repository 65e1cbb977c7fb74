"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from arbi_pos.app.api.v1.endpoints import printer, settlements

router = APIRouter()

# Credit settlement and statements
router.include_router(settlements.router)

# Printer session
router.include_router(printer.router)
