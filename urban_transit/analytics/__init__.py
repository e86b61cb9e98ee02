"""
Analytics Module

Admin reporting for the Urban Transit Ticketing System: dashboard figures,
sales and revenue, usage trends, route and stop rankings, user engagement,
system health and ticket exports.

Key Components:
- service.py: AnalyticsService aggregations
- router.py: FastAPI endpoints under /admin/analytics
- schemas.py: Pydantic response models
"""

from .router import router
from .service import AnalyticsService

__all__ = ["router", "AnalyticsService"]
