from .router import router, admin_router
from .service import PricingService

__all__ = ["router", "admin_router", "PricingService"]
