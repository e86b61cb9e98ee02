from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from urban_transit.enums import TicketType

class PricingCreate(BaseModel):
    ticket_type: TicketType
    price: Decimal = Field(..., decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)
    active: bool = True

class PricingUpdate(BaseModel):
    price: Decimal = Field(..., decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)
    active: Optional[bool] = None

class PricingStatusUpdate(BaseModel):
    active: bool

class TicketPricingResponse(BaseModel):
    id: int
    ticket_type: TicketType
    price: Decimal
    description: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class PriceResponse(BaseModel):
    ticket_type: TicketType
    display_name: str
    price: Decimal
    validity_days: int

class PricingSummaryItem(BaseModel):
    ticket_type: TicketType
    display_name: str
    price: Optional[Decimal] = None
    active: bool
    description: Optional[str] = None

class PricingSummaryResponse(BaseModel):
    items: List[PricingSummaryItem]
    active_count: int
    total_count: int
