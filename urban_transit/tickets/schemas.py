from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from urban_transit.enums import TicketType, TicketStatus, TransportType
from urban_transit.users.schemas import UserSummaryResponse
from urban_transit.routes.schemas import RouteSummaryResponse

# ================================
# Requests
# ================================
class TicketPurchaseRequest(BaseModel):
    ticket_type: TicketType
    route_id: int

class TicketValidationRequest(BaseModel):
    ticket_number: str = Field(..., min_length=1)
    route_id: Optional[int] = None

class TicketUseRequest(BaseModel):
    ticket_number: str = Field(..., min_length=1)
    route_id: int
    transport_type: Optional[TransportType] = None
    boarding_stop: Optional[str] = Field(None, max_length=100)
    destination_stop: Optional[str] = Field(None, max_length=100)

class UsageRecordRequest(TicketUseRequest):
    used_at: Optional[datetime] = None

    @validator('used_at')
    def to_local_naive(cls, v):
        # Stored timestamps are naive local time
        if v is not None and v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v

class BulkUsageRequest(BaseModel):
    records: List[UsageRecordRequest] = Field(..., min_length=1)

# ================================
# Ticket responses
# ================================
class TicketSummaryResponse(BaseModel):
    id: int
    ticket_number: str
    ticket_type: TicketType
    price: Decimal
    status: TicketStatus
    purchase_date: datetime
    valid_until: datetime
    is_currently_valid: bool

class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    ticket_type: TicketType
    price: Decimal
    status: TicketStatus
    purchase_date: datetime
    valid_from: datetime
    valid_until: datetime
    used_date: Optional[datetime] = None
    is_currently_valid: bool
    can_be_used_for_transit: bool
    user: UserSummaryResponse
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class TicketValidationResponse(BaseModel):
    is_valid: bool
    message: str
    ticket: Optional[TicketResponse] = None

class PurchaseEligibilityResponse(BaseModel):
    ticket_type: TicketType
    can_purchase: bool
    reason: Optional[str] = None
    price: Optional[Decimal] = None

class ValidPassResponse(BaseModel):
    has_valid_pass: bool

# ================================
# Usage responses
# ================================
class TicketUsageResponse(BaseModel):
    id: int
    ticket: TicketSummaryResponse
    route: RouteSummaryResponse
    transport_type: TransportType
    boarding_stop: Optional[str] = None
    destination_stop: Optional[str] = None
    used_at: datetime

class BulkUsageFailure(BaseModel):
    index: int
    ticket_number: str
    message: str

class BulkUsageResponse(BaseModel):
    recorded: List[TicketUsageResponse]
    failures: List[BulkUsageFailure]

class UserUsageStatsResponse(BaseModel):
    total_rides: int
    rides_this_month: int
    most_used_route: Optional[RouteSummaryResponse] = None
    favourite_transport_type: Optional[TransportType] = None

class StopCountResponse(BaseModel):
    stop: str
    count: int

class HourlyUsageResponse(BaseModel):
    hour: int
    count: int

class WeekdayUsageResponse(BaseModel):
    day: str
    count: int

# ================================
# Reports
# ================================
class SalesByTypeResponse(BaseModel):
    ticket_type: TicketType
    display_name: str
    tickets_sold: int
    revenue: Decimal

class RevenueResponse(BaseModel):
    start: datetime
    end: datetime
    revenue: Decimal

class TopPurchaserResponse(BaseModel):
    user: UserSummaryResponse
    ticket_count: int
    total_spent: Decimal

class DailyReportResponse(BaseModel):
    report: str

class ExpirySweepResponse(BaseModel):
    expired_count: int
