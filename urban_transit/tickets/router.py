from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from urban_transit.database import get_db
from urban_transit.auth.dependencies import get_current_active_user, require_admin
from urban_transit.auth.schemas import MessageResponse
from urban_transit.enums import TicketType, TicketStatus, TransportType
from urban_transit.exceptions import InvalidRequest
from urban_transit.models import User
from urban_transit.pagination import PagedResponse
from urban_transit.pricing.schemas import PriceResponse
from urban_transit.pricing.service import PricingService
from urban_transit.tickets.schemas import (
    TicketPurchaseRequest, TicketValidationRequest, TicketUseRequest, UsageRecordRequest,
    BulkUsageRequest, TicketResponse, TicketValidationResponse, TicketUsageResponse,
    PurchaseEligibilityResponse, ValidPassResponse, BulkUsageResponse, UserUsageStatsResponse,
    StopCountResponse, HourlyUsageResponse, WeekdayUsageResponse, SalesByTypeResponse,
    RevenueResponse, TopPurchaserResponse, DailyReportResponse, ExpirySweepResponse
)
from urban_transit.tickets.service import TicketService, to_ticket_response, to_usage_response
from urban_transit.tickets.usage_service import UsageService

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])
usage_admin_router = APIRouter(dependencies=[Depends(require_admin)])

def _check_range(start: datetime, end: datetime) -> None:
    if end < start:
        raise InvalidRequest("End date must not be before start date")

def _responses(tickets) -> List[TicketResponse]:
    now = datetime.now()
    return [to_ticket_response(t, now) for t in tickets]

# ================================
# Purchase, validation and use
# ================================
@router.post("/purchase", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def purchase_ticket(
    request: TicketPurchaseRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Buy a ride ticket or an unlimited pass"""
    ticket = TicketService(db).purchase(current_user, request.ticket_type, request.route_id)
    return to_ticket_response(ticket)

@router.post("/validate", response_model=TicketValidationResponse)
def validate_ticket(
    request: TicketValidationRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Check whether a ticket is currently valid, without using it"""
    return TicketService(db).validate(request.ticket_number, request.route_id)

@router.post("/use", response_model=TicketUsageResponse, status_code=status.HTTP_201_CREATED)
def use_ticket(
    request: TicketUseRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Board a route; ride tickets are consumed"""
    usage = TicketService(db).use(current_user, request)
    return to_usage_response(usage)

@router.get("/eligibility/{ticket_type}", response_model=PurchaseEligibilityResponse)
def purchase_eligibility(
    ticket_type: TicketType,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return TicketService(db).purchase_eligibility(current_user, ticket_type)

@router.get("/price/{ticket_type}", response_model=PriceResponse)
def ticket_price(ticket_type: TicketType, db: Session = Depends(get_db)):
    return PricingService.price_response(db, ticket_type)

# ================================
# My tickets
# ================================
@router.get("/my", response_model=PagedResponse[TicketResponse])
def my_tickets(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return TicketService(db).user_tickets(current_user.id, page, size)

@router.get("/my/valid", response_model=List[TicketResponse])
def my_valid_tickets(current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    return _responses(TicketService(db).user_valid_tickets(current_user.id))

@router.get("/my/valid/rides", response_model=List[TicketResponse])
def my_valid_rides(current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    """Unused ride tickets, oldest first"""
    return _responses(TicketService(db).valid_ride_tickets(current_user.id))

@router.get("/my/valid/passes", response_model=List[TicketResponse])
def my_valid_passes(current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    return _responses(TicketService(db).valid_unlimited_tickets(current_user.id))

@router.get("/my/type/{ticket_type}", response_model=List[TicketResponse])
def my_tickets_by_type(
    ticket_type: TicketType,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return _responses(TicketService(db).user_tickets_by_type(current_user.id, ticket_type))

@router.get("/my/status/{ticket_status}", response_model=List[TicketResponse])
def my_tickets_by_status(
    ticket_status: TicketStatus,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return _responses(TicketService(db).user_tickets_by_status(current_user.id, ticket_status))

@router.get("/my/has-valid-pass", response_model=ValidPassResponse)
def has_valid_pass(current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    return ValidPassResponse(has_valid_pass=TicketService(db).user_has_valid_pass(current_user.id))

# ================================
# Travel history
# ================================
@router.get("/history", response_model=PagedResponse[TicketUsageResponse])
def travel_history(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return UsageService(db).travel_history(current_user.id, page, size)

@router.get("/history/range", response_model=List[TicketUsageResponse])
def travel_history_range(
    start: datetime,
    end: datetime,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    _check_range(start, end)
    return UsageService(db).travel_history_between(current_user.id, start, end)

@router.get("/stats", response_model=UserUsageStatsResponse)
def my_usage_stats(current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    return UsageService(db).user_stats(current_user.id)

# ================================
# Single ticket
# ================================
@router.get("/{ticket_id}", response_model=TicketResponse)
def get_ticket(ticket_id: int, current_user: User = Depends(get_current_active_user), db: Session = Depends(get_db)):
    return to_ticket_response(TicketService(db).get_user_ticket(current_user, ticket_id))

@router.get("/{ticket_id}/qr")
def get_ticket_qr_code(
    ticket_id: int,
    size: int = Query(10, ge=2, le=40, description="Box size in pixels"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """QR code image for a ticket"""
    service = TicketService(db)
    ticket = service.get_user_ticket(current_user, ticket_id)
    return Response(
        content=service.generate_qr_code_image(ticket, size),
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="ticket_{ticket.ticket_number}_qr.png"'}
    )

# ================================
# Admin ticket management
# ================================
@admin_router.get("", response_model=PagedResponse[TicketResponse])
def all_tickets(
    ticket_status: Optional[TicketStatus] = Query(None, alias="status"),
    ticket_type: Optional[TicketType] = Query(None, alias="type"),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    db: Session = Depends(get_db)
):
    """All tickets, optionally filtered by status and type"""
    return TicketService(db).all_tickets(page, size, ticket_status, ticket_type)

@admin_router.get("/range", response_model=List[TicketResponse])
def tickets_in_range(start: datetime, end: datetime, db: Session = Depends(get_db)):
    _check_range(start, end)
    return _responses(TicketService(db).tickets_purchased_between(start, end))

@admin_router.get("/sales-by-type", response_model=List[SalesByTypeResponse])
def sales_by_type(start: Optional[datetime] = None, end: Optional[datetime] = None, db: Session = Depends(get_db)):
    return TicketService(db).sales_by_type(start, end)

@admin_router.get("/revenue", response_model=RevenueResponse)
def revenue(start: datetime, end: datetime, db: Session = Depends(get_db)):
    _check_range(start, end)
    return RevenueResponse(start=start, end=end, revenue=TicketService(db).revenue_between(start, end))

@admin_router.get("/top-purchasers", response_model=List[TopPurchaserResponse])
def top_purchasers(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return TicketService(db).top_purchasers(limit)

@admin_router.get("/daily-report", response_model=DailyReportResponse)
def daily_report(day: Optional[date] = None, db: Session = Depends(get_db)):
    return DailyReportResponse(report=TicketService(db).daily_report(day or date.today()))

@admin_router.post("/expire", response_model=ExpirySweepResponse)
def expire_tickets(db: Session = Depends(get_db)):
    """Run the expiry sweep now"""
    return ExpirySweepResponse(expired_count=TicketService(db).expire_tickets())

@admin_router.get("/number/{ticket_number}", response_model=TicketResponse)
def get_ticket_by_number(ticket_number: str, db: Session = Depends(get_db)):
    return to_ticket_response(TicketService(db).get_by_number_or_404(ticket_number))

@admin_router.post("/{ticket_id}/cancel", response_model=TicketResponse)
def cancel_ticket(ticket_id: int, reason: Optional[str] = Query(None, max_length=255), db: Session = Depends(get_db)):
    return to_ticket_response(TicketService(db).cancel(ticket_id, reason))

# ================================
# Admin usage log
# ================================
@usage_admin_router.get("", response_model=PagedResponse[TicketUsageResponse])
def all_usage(page: int = Query(0, ge=0), size: int = Query(20, ge=1), db: Session = Depends(get_db)):
    return UsageService(db).all_usage(page, size)

@usage_admin_router.post("", response_model=TicketUsageResponse, status_code=status.HTTP_201_CREATED)
def record_usage(request: UsageRecordRequest, db: Session = Depends(get_db)):
    return to_usage_response(UsageService(db).record_usage(request))

@usage_admin_router.post("/bulk", response_model=BulkUsageResponse)
def bulk_record_usage(request: BulkUsageRequest, db: Session = Depends(get_db)):
    return UsageService(db).bulk_record(request.records)

@usage_admin_router.get("/route/{route_id}", response_model=PagedResponse[TicketUsageResponse])
def usage_by_route(route_id: int, page: int = Query(0, ge=0), size: int = Query(20, ge=1), db: Session = Depends(get_db)):
    return UsageService(db).usage_by_route(route_id, page, size)

@usage_admin_router.get("/transport/{transport_type}", response_model=PagedResponse[TicketUsageResponse])
def usage_by_transport_type(
    transport_type: TransportType,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    db: Session = Depends(get_db)
):
    return UsageService(db).usage_by_transport_type(transport_type, page, size)

@usage_admin_router.get("/user/{user_id}/stats", response_model=UserUsageStatsResponse)
def user_usage_stats(user_id: int, db: Session = Depends(get_db)):
    return UsageService(db).user_stats(user_id)

@usage_admin_router.get("/stops/boarding", response_model=List[StopCountResponse])
def popular_boarding_stops(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return UsageService(db).popular_boarding_stops(limit)

@usage_admin_router.get("/stops/destination", response_model=List[StopCountResponse])
def popular_destinations(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return UsageService(db).popular_destinations(limit)

@usage_admin_router.get("/patterns/hourly", response_model=List[HourlyUsageResponse])
def hourly_pattern(db: Session = Depends(get_db)):
    return UsageService(db).hourly_pattern()

@usage_admin_router.get("/patterns/weekday", response_model=List[WeekdayUsageResponse])
def weekday_pattern(db: Session = Depends(get_db)):
    return UsageService(db).weekday_pattern()

@usage_admin_router.delete("/{usage_id}", response_model=MessageResponse)
def delete_usage(usage_id: int, db: Session = Depends(get_db)):
    """Remove a usage record; the log is otherwise append-only"""
    UsageService(db).delete_usage(usage_id)
    return MessageResponse(message="Usage record deleted")
