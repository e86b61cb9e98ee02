from pydantic import BaseModel
from typing import List, Optional, Dict, Any, Literal
from datetime import date, datetime
from decimal import Decimal
from urban_transit.enums import TicketType, TicketStatus, TransportType
from urban_transit.routes.schemas import RouteSummaryResponse

class DashboardStatsResponse(BaseModel):
    total_users: int
    total_routes: int
    active_tickets: int
    today_usage: int
    revenue_last_year: Decimal
    total_tickets_sold: int

class TodayStatsResponse(BaseModel):
    day: date
    tickets_sold: int
    revenue: Decimal
    usage_count: int
    new_users: int

class DailyTrendResponse(BaseModel):
    day: date
    tickets_sold: int
    revenue: Decimal
    usage_count: int

class PeriodStats(BaseModel):
    start: datetime
    end: datetime
    tickets_sold: int
    revenue: Decimal

class MonthlyComparisonResponse(BaseModel):
    current_month: PeriodStats
    previous_month: PeriodStats
    revenue_growth_percent: Optional[float] = None
    ticket_growth_percent: Optional[float] = None

class RouteUtilizationResponse(BaseModel):
    route: RouteSummaryResponse
    usage_count: int
    share_percent: float

class TransportTypeStatsResponse(BaseModel):
    transport_type: TransportType
    display_name: str
    route_count: int
    usage_count: int

class UserEngagementResponse(BaseModel):
    total_users: int
    users_with_tickets: int
    engagement_rate: float

class UserSegmentResponse(BaseModel):
    ticket_type: TicketType
    display_name: str
    user_count: int

class RetentionResponse(BaseModel):
    window_days: int
    previous_period_buyers: int
    retained_buyers: int
    retention_rate: float

class NewVsReturningResponse(BaseModel):
    start: datetime
    end: datetime
    new_buyers: int
    returning_buyers: int

class SystemPerformanceResponse(BaseModel):
    total_users: int
    total_routes: int
    total_tickets: int
    total_usage_records: int
    cpu_percent: float
    memory_percent: float
    disk_percent: float
    timestamp: datetime

class StatusCountResponse(BaseModel):
    counts: Dict[TicketStatus, int]
    invalid_tickets: int

class CustomReportRequest(BaseModel):
    report_type: str
    start: datetime
    end: datetime

class CustomReportResponse(BaseModel):
    report_type: Literal["revenue", "usage"]
    start: datetime
    end: datetime
    summary: Dict[str, Any]
    breakdown: List[Dict[str, Any]]
