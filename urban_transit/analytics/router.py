from datetime import datetime
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from urban_transit.database import get_db
from urban_transit.auth.dependencies import require_admin
from urban_transit.analytics.schemas import (
    DashboardStatsResponse, TodayStatsResponse, DailyTrendResponse, MonthlyComparisonResponse,
    RouteUtilizationResponse, TransportTypeStatsResponse, UserEngagementResponse, UserSegmentResponse,
    RetentionResponse, NewVsReturningResponse, SystemPerformanceResponse, StatusCountResponse,
    CustomReportRequest, CustomReportResponse
)
from urban_transit.analytics.service import AnalyticsService
from urban_transit.exceptions import InvalidRequest
from urban_transit.routes.schemas import RouteUsageResponse
from urban_transit.routes.service import RouteService
from urban_transit.tickets.schemas import (
    StopCountResponse, HourlyUsageResponse, RevenueResponse, SalesByTypeResponse
)

router = APIRouter(dependencies=[Depends(require_admin)])

# ================================
# Dashboard & sales
# ================================
@router.get("/dashboard", response_model=DashboardStatsResponse)
def dashboard(db: Session = Depends(get_db)):
    """Headline numbers for the admin dashboard"""
    return AnalyticsService(db).dashboard()

@router.get("/today", response_model=TodayStatsResponse)
def today_stats(db: Session = Depends(get_db)):
    return AnalyticsService(db).today_stats()

@router.get("/revenue", response_model=RevenueResponse)
def revenue(start: datetime, end: datetime, db: Session = Depends(get_db)):
    if end < start:
        raise InvalidRequest("End date must not be before start date")
    return RevenueResponse(start=start, end=end, revenue=AnalyticsService(db).tickets.revenue_between(start, end))

@router.get("/sales-by-type", response_model=List[SalesByTypeResponse])
def sales_by_type(start: Optional[datetime] = None, end: Optional[datetime] = None, db: Session = Depends(get_db)):
    return AnalyticsService(db).tickets.sales_by_type(start, end)

# ================================
# Trends
# ================================
@router.get("/trends/daily", response_model=List[DailyTrendResponse])
def daily_trends(days: int = Query(30, ge=1, le=366), db: Session = Depends(get_db)):
    return AnalyticsService(db).daily_trends(days)

@router.get("/trends/monthly", response_model=MonthlyComparisonResponse)
def monthly_comparison(db: Session = Depends(get_db)):
    """This month against last month"""
    return AnalyticsService(db).monthly_comparison()

@router.get("/trends/peak-hours", response_model=List[HourlyUsageResponse])
def peak_hours(
    days: int = Query(30, ge=1, le=366),
    limit: int = Query(5, ge=1, le=24),
    db: Session = Depends(get_db)
):
    return AnalyticsService(db).peak_hours(days, limit)

# ================================
# Routes & stops
# ================================
@router.get("/routes/top", response_model=List[RouteUsageResponse])
def top_routes(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return RouteService.popular_routes(db, limit)

@router.get("/routes/utilization", response_model=List[RouteUtilizationResponse])
def route_utilization(db: Session = Depends(get_db)):
    return AnalyticsService(db).route_utilization()

@router.get("/transport-types", response_model=List[TransportTypeStatsResponse])
def transport_type_stats(db: Session = Depends(get_db)):
    return AnalyticsService(db).transport_type_stats()

@router.get("/stops/popular", response_model=List[StopCountResponse])
def popular_stops(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return AnalyticsService(db).popular_stops(limit)

# ================================
# Users
# ================================
@router.get("/users/engagement", response_model=UserEngagementResponse)
def user_engagement(db: Session = Depends(get_db)):
    return AnalyticsService(db).user_engagement()

@router.get("/users/segmentation", response_model=List[UserSegmentResponse])
def user_segmentation(db: Session = Depends(get_db)):
    return AnalyticsService(db).user_segmentation()

@router.get("/users/retention", response_model=RetentionResponse)
def user_retention(window_days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    return AnalyticsService(db).retention(window_days)

@router.get("/users/new-vs-returning", response_model=NewVsReturningResponse)
def new_vs_returning(start: datetime, end: datetime, db: Session = Depends(get_db)):
    if end < start:
        raise InvalidRequest("End date must not be before start date")
    return AnalyticsService(db).new_vs_returning(start, end)

# ================================
# Operations
# ================================
@router.get("/system/performance", response_model=SystemPerformanceResponse)
def system_performance(db: Session = Depends(get_db)):
    return AnalyticsService(db).system_performance()

@router.get("/tickets/validation-failures", response_model=StatusCountResponse)
def validation_failures(db: Session = Depends(get_db)):
    return AnalyticsService(db).validation_failures()

@router.post("/reports/custom", response_model=CustomReportResponse)
def custom_report(request: CustomReportRequest, db: Session = Depends(get_db)):
    return AnalyticsService(db).custom_report(request.report_type, request.start, request.end)

@router.get("/export/tickets")
def export_tickets(
    start: datetime,
    end: datetime,
    format: Literal["csv", "excel"] = "csv",
    db: Session = Depends(get_db)
):
    """Download tickets purchased in the range"""
    if end < start:
        raise InvalidRequest("End date must not be before start date")
    content = AnalyticsService(db).export_tickets(start, end, format)
    if format == "csv":
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=tickets.csv"}
        )
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=tickets.xlsx"}
    )
