from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from urban_transit.database import get_db
from urban_transit.auth.dependencies import require_admin
from urban_transit.enums import TicketType
from urban_transit.pricing.schemas import (
    PricingCreate, PricingUpdate, PricingStatusUpdate, TicketPricingResponse,
    PriceResponse, PricingSummaryResponse
)
from urban_transit.pricing.service import PricingService

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])

@router.get("", response_model=List[TicketPricingResponse])
def list_active_pricing(db: Session = Depends(get_db)):
    """Active prices for every ticket type"""
    return PricingService.active_pricing(db)

@router.get("/{ticket_type}", response_model=TicketPricingResponse)
def get_pricing(ticket_type: TicketType, db: Session = Depends(get_db)):
    return PricingService.get_active_pricing(db, ticket_type)

@router.get("/{ticket_type}/current", response_model=PriceResponse)
def get_current_price(ticket_type: TicketType, db: Session = Depends(get_db)):
    return PricingService.price_response(db, ticket_type)

# ================================
# Admin pricing management
# ================================
@admin_router.get("", response_model=List[TicketPricingResponse])
def list_all_pricing(db: Session = Depends(get_db)):
    return PricingService.all_pricing(db)

@admin_router.post("", response_model=TicketPricingResponse, status_code=status.HTTP_201_CREATED)
def create_pricing(request: PricingCreate, db: Session = Depends(get_db)):
    return PricingService.create_pricing(db, request)

@admin_router.get("/history", response_model=List[TicketPricingResponse])
def pricing_history(db: Session = Depends(get_db)):
    return PricingService.history(db)

@admin_router.get("/summary", response_model=PricingSummaryResponse)
def pricing_summary(db: Session = Depends(get_db)):
    return PricingService.summary(db)

@admin_router.put("/{ticket_type}", response_model=TicketPricingResponse)
def update_pricing(ticket_type: TicketType, request: PricingUpdate, db: Session = Depends(get_db)):
    return PricingService.update_pricing(db, ticket_type, request)

@admin_router.put("/{ticket_type}/status", response_model=TicketPricingResponse)
def set_pricing_status(ticket_type: TicketType, request: PricingStatusUpdate, db: Session = Depends(get_db)):
    return PricingService.set_status(db, ticket_type, request.active)
