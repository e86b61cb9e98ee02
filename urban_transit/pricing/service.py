from decimal import Decimal
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from urban_transit.enums import TicketType
from urban_transit.exceptions import NotFound, Conflict, InvalidRequest, PricingUnavailable
from urban_transit.models import TicketPricing
from urban_transit.pricing.schemas import (
    PricingCreate, PricingUpdate, PriceResponse, PricingSummaryItem, PricingSummaryResponse
)

def _check_price(price: Decimal) -> Decimal:
    if price is None or price <= 0:
        raise InvalidRequest("Price must be greater than zero")
    return price.quantize(Decimal("0.01"))

class PricingService:
    # ================================
    # Public lookups
    # ================================
    @staticmethod
    def active_pricing(db: Session) -> List[TicketPricing]:
        rows = db.query(TicketPricing).filter(TicketPricing.active.is_(True)).all()
        order = list(TicketType)
        return sorted(rows, key=lambda p: order.index(TicketType(p.ticket_type)))
    
    @staticmethod
    def find_active_pricing(db: Session, ticket_type: TicketType) -> Optional[TicketPricing]:
        return db.query(TicketPricing).filter(
            TicketPricing.ticket_type == ticket_type,
            TicketPricing.active.is_(True)
        ).first()
    
    @staticmethod
    def get_active_pricing(db: Session, ticket_type: TicketType) -> TicketPricing:
        pricing = PricingService.find_active_pricing(db, ticket_type)
        if pricing is None:
            raise NotFound(f"No active pricing for {ticket_type.value}")
        return pricing
    
    @staticmethod
    def current_price(db: Session, ticket_type: TicketType) -> Decimal:
        """Price a new ticket of this type is sold at"""
        pricing = PricingService.find_active_pricing(db, ticket_type)
        if pricing is None:
            logger.error("No active pricing configured for {}", ticket_type.value)
            raise PricingUnavailable(f"Pricing not available for {ticket_type.display_name}")
        return pricing.price
    
    @staticmethod
    def price_response(db: Session, ticket_type: TicketType) -> PriceResponse:
        return PriceResponse(
            ticket_type=ticket_type,
            display_name=ticket_type.display_name,
            price=PricingService.current_price(db, ticket_type),
            validity_days=ticket_type.validity_days
        )
    
    # ================================
    # Admin operations
    # ================================
    @staticmethod
    def all_pricing(db: Session) -> List[TicketPricing]:
        return db.query(TicketPricing).order_by(TicketPricing.ticket_type).all()
    
    @staticmethod
    def _get_record(db: Session, ticket_type: TicketType) -> TicketPricing:
        pricing = db.query(TicketPricing).filter(TicketPricing.ticket_type == ticket_type).first()
        if pricing is None:
            raise NotFound(f"Pricing for {ticket_type.value} not found")
        return pricing
    
    @staticmethod
    def create_pricing(db: Session, request: PricingCreate) -> TicketPricing:
        if db.query(TicketPricing).filter(TicketPricing.ticket_type == request.ticket_type).first():
            raise Conflict(f"Pricing for {request.ticket_type.value} already exists")
        pricing = TicketPricing(
            ticket_type=request.ticket_type,
            price=_check_price(request.price),
            description=request.description,
            active=request.active
        )
        db.add(pricing)
        db.commit()
        db.refresh(pricing)
        logger.info("Pricing created for {}: {}", pricing.ticket_type.value, pricing.price)
        return pricing
    
    @staticmethod
    def update_pricing(db: Session, ticket_type: TicketType, request: PricingUpdate) -> TicketPricing:
        pricing = PricingService._get_record(db, ticket_type)
        old_price = pricing.price
        pricing.price = _check_price(request.price)
        if request.description is not None:
            pricing.description = request.description
        if request.active is not None:
            pricing.active = request.active
        db.commit()
        db.refresh(pricing)
        logger.info("Pricing for {} changed from {} to {}", ticket_type.value, old_price, pricing.price)
        return pricing
    
    @staticmethod
    def set_status(db: Session, ticket_type: TicketType, active: bool) -> TicketPricing:
        pricing = PricingService._get_record(db, ticket_type)
        pricing.active = active
        db.commit()
        db.refresh(pricing)
        logger.info("Pricing for {} {}", ticket_type.value, "activated" if active else "deactivated")
        return pricing
    
    @staticmethod
    def history(db: Session) -> List[TicketPricing]:
        return db.query(TicketPricing).order_by(TicketPricing.updated_at.desc(), TicketPricing.id.desc()).all()
    
    @staticmethod
    def summary(db: Session) -> PricingSummaryResponse:
        records = {TicketType(p.ticket_type): p for p in db.query(TicketPricing).all()}
        items = []
        for ticket_type in TicketType:
            record = records.get(ticket_type)
            items.append(PricingSummaryItem(
                ticket_type=ticket_type,
                display_name=ticket_type.display_name,
                price=record.price if record else None,
                active=bool(record and record.active),
                description=record.description if record else None
            ))
        return PricingSummaryResponse(
            items=items,
            active_count=sum(1 for item in items if item.active),
            total_count=len(records)
        )
