import asyncio
import contextlib
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from urban_transit import __version__
from urban_transit.config import settings
from urban_transit.database import init_db
from urban_transit.exceptions import TransitError
from urban_transit.logging import setup_logging
from urban_transit.auth import router as auth_router
from urban_transit.users import router as users_router
from urban_transit.routes import router as routes_router, admin_router as routes_admin_router
from urban_transit.pricing import router as pricing_router, admin_router as pricing_admin_router
from urban_transit.tickets import (
    router as tickets_router,
    admin_router as tickets_admin_router,
    usage_admin_router,
    ticket_expiry_loop,
)
from urban_transit.analytics import router as analytics_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, create tables and run the expiry sweep in the background"""
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    init_db()
    logger.info("{} v{} starting ({})", settings.PROJECT_NAME, __version__, settings.ENVIRONMENT)

    expiry_task = None
    if settings.TICKET_EXPIRY_SWEEP_ENABLED:
        expiry_task = asyncio.create_task(ticket_expiry_loop(settings.TICKET_EXPIRY_SWEEP_INTERVAL_SECONDS))

    yield

    if expiry_task is not None:
        expiry_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await expiry_task
    logger.info("{} stopped", settings.PROJECT_NAME)


def _error_body(request: Request, message: str) -> dict:
    return {
        "success": False,
        "message": message,
        "path": request.url.path,
        "timestamp": datetime.now().isoformat(),
    }


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="Urban Transit Ticketing System API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TransitError)
async def transit_error_handler(request: Request, exc: TransitError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(request, exc.message))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(request, str(exc)))


# Include routers
api = settings.API_V1_STR

app.include_router(auth_router.router, prefix=f"{api}/auth", tags=["Authentication"])
app.include_router(users_router.router, prefix=f"{api}/users", tags=["Users"])
app.include_router(routes_router, prefix=f"{api}/routes", tags=["Routes"])
app.include_router(pricing_router, prefix=f"{api}/pricing", tags=["Pricing"])
app.include_router(tickets_router, prefix=f"{api}/tickets", tags=["Tickets"])

app.include_router(users_router.admin_router, prefix=f"{api}/admin/users", tags=["Admin - Users"])
app.include_router(routes_admin_router, prefix=f"{api}/admin/routes", tags=["Admin - Routes"])
app.include_router(pricing_admin_router, prefix=f"{api}/admin/pricing", tags=["Admin - Pricing"])
app.include_router(tickets_admin_router, prefix=f"{api}/admin/tickets", tags=["Admin - Tickets"])
app.include_router(usage_admin_router, prefix=f"{api}/admin/usage", tags=["Admin - Usage"])
app.include_router(analytics_router, prefix=f"{api}/admin/analytics", tags=["Admin - Analytics"])


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Urban Transit Ticketing System API",
        "version": __version__,
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
