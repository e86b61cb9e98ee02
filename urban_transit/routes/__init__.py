"""
Route Management Module

Browsing and administration of transit routes for the Urban Transit
Ticketing System. It includes:

- Active route listing, lookup by id or name, and paged browsing
- Search by name/description, transport type, stop and operating hours
- Admin create/update/soft-delete with stop list validation
- Usage-based route rankings (popular and underutilized routes)

Key Components:
- service.py: Route queries and admin operations
- validation.py: Stop list, route name and operating-hours rules
- router.py: FastAPI endpoints for public browsing and admin management
- schemas.py: Pydantic models for request/response structures
"""

from .router import router, admin_router
from .service import RouteService
from .validation import validate_stops, operates_at
from .schemas import (
    RouteCreate, RouteUpdate, RouteStatusUpdate, RouteResponse, RouteSummaryResponse,
    RouteUsageResponse, TransportTypeCountResponse
)

__all__ = [
    "router",
    "admin_router",
    "RouteService",
    "validate_stops",
    "operates_at",
    "RouteCreate",
    "RouteUpdate",
    "RouteStatusUpdate",
    "RouteResponse",
    "RouteSummaryResponse",
    "RouteUsageResponse",
    "TransportTypeCountResponse"
]
