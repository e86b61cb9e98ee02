"""
Ticketing Module

Ticket sales and the ticket lifecycle for the Urban Transit Ticketing System.
It includes:

- Validity rules for ride tickets and unlimited passes
- Purchase with duplicate-pass prevention and price snapshots
- Validation and use against routes, with an append-only usage log
- Admin cancellation and a periodic expiry sweep
- Sales reports and QR code images for tickets

Key Components:
- validity.py: Pure validity predicates and the ride consumption transition
- service.py: TicketService, purchase/validate/use/cancel/expire and reports
- usage_service.py: UsageService, travel history and usage patterns
- expiry.py: Background loop that expires tickets past their window
- router.py: FastAPI endpoints for riders and administrators
- schemas.py: Pydantic models for request/response structures
"""

from .router import router, admin_router, usage_admin_router
from .service import TicketService
from .usage_service import UsageService
from .expiry import ticket_expiry_loop, run_expiry_sweep
from .validity import is_currently_valid, can_be_used_for_transit, use_ticket

__all__ = [
    "router",
    "admin_router",
    "usage_admin_router",
    "TicketService",
    "UsageService",
    "ticket_expiry_loop",
    "run_expiry_sweep",
    "is_currently_valid",
    "can_be_used_for_transit",
    "use_ticket"
]
