import io
from collections import defaultdict
from datetime import datetime, date, time, timedelta
from typing import List, Optional

import pandas as pd
import psutil
from loguru import logger
from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from urban_transit.analytics.schemas import (
    DashboardStatsResponse, TodayStatsResponse, DailyTrendResponse, PeriodStats,
    MonthlyComparisonResponse, RouteUtilizationResponse, TransportTypeStatsResponse,
    UserEngagementResponse, UserSegmentResponse, RetentionResponse, NewVsReturningResponse,
    SystemPerformanceResponse, StatusCountResponse, CustomReportResponse
)
from urban_transit.enums import TicketType, TicketStatus, TransportType
from urban_transit.exceptions import InvalidRequest
from urban_transit.models import User, Route, Ticket, TicketUsage
from urban_transit.money import ZERO, to_money
from urban_transit.routes.service import RouteService, to_summary as route_summary
from urban_transit.tickets.schemas import StopCountResponse, HourlyUsageResponse
from urban_transit.tickets.service import TicketService
from urban_transit.tickets.usage_service import UsageService

REPORT_TYPES = ("revenue", "usage")

EXPORT_COLUMNS = [
    "ticket_number", "ticket_type", "price", "status", "purchase_date",
    "valid_from", "valid_until", "used_date", "user_email"
]

def _day_bounds(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)

def _percent(part, whole) -> float:
    if not whole:
        return 0.0
    return round(float(part) * 100.0 / float(whole), 2)

def _growth(current, previous) -> Optional[float]:
    if not previous:
        return None
    return round((float(current) - float(previous)) * 100.0 / float(previous), 2)

def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class AnalyticsService:
    """Read-only aggregations for the admin dashboard and reports"""

    def __init__(self, db: Session):
        self.db = db
        self.tickets = TicketService(db)
        self.usage = UsageService(db)

    # ================================
    # Dashboard
    # ================================
    def dashboard(self, now: Optional[datetime] = None) -> DashboardStatsResponse:
        now = now or datetime.now()
        today_start, today_end = _day_bounds(now.date())
        return DashboardStatsResponse(
            total_users=self.db.query(User).count(),
            total_routes=RouteService.active_routes_query(self.db).count(),
            active_tickets=self.db.query(Ticket).filter(Ticket.status == TicketStatus.ACTIVE).count(),
            today_usage=self.usage.count_between(today_start, today_end),
            revenue_last_year=self.tickets.revenue_between(now - timedelta(days=365), now),
            total_tickets_sold=self.db.query(Ticket).count()
        )

    def today_stats(self, now: Optional[datetime] = None) -> TodayStatsResponse:
        now = now or datetime.now()
        start, end = _day_bounds(now.date())
        return TodayStatsResponse(
            day=now.date(),
            tickets_sold=self.tickets.tickets_sold_between(start, end),
            revenue=self.tickets.revenue_between(start, end),
            usage_count=self.usage.count_between(start, end),
            new_users=self.db.query(User).filter(User.created_at >= start, User.created_at <= end).count()
        )

    # ================================
    # Trends
    # ================================
    def daily_trends(self, days: int = 30, now: Optional[datetime] = None) -> List[DailyTrendResponse]:
        """One entry per day for the last ``days`` days, oldest first"""
        now = now or datetime.now()
        first_day = now.date() - timedelta(days=days - 1)
        start = datetime.combine(first_day, time.min)

        sold = defaultdict(int)
        revenue = defaultdict(lambda: ZERO)
        for purchase_date, price in self.db.query(Ticket.purchase_date, Ticket.price).filter(
            Ticket.purchase_date >= start, Ticket.purchase_date <= now
        ):
            sold[purchase_date.date()] += 1
            revenue[purchase_date.date()] += to_money(price)

        used = defaultdict(int)
        for used_at in self.usage.used_at_values(start, now):
            used[used_at.date()] += 1

        trends = []
        for offset in range(days):
            day = first_day + timedelta(days=offset)
            trends.append(DailyTrendResponse(
                day=day, tickets_sold=sold[day], revenue=revenue[day], usage_count=used[day]
            ))
        return trends

    def _period(self, start: datetime, end: datetime) -> PeriodStats:
        return PeriodStats(
            start=start,
            end=end,
            tickets_sold=self.tickets.tickets_sold_between(start, end),
            revenue=self.tickets.revenue_between(start, end)
        )

    def monthly_comparison(self, now: Optional[datetime] = None) -> MonthlyComparisonResponse:
        now = now or datetime.now()
        current_start = _month_start(now)
        previous_start = _month_start(current_start - timedelta(days=1))
        current = self._period(current_start, now)
        previous = self._period(previous_start, current_start - timedelta(microseconds=1))
        return MonthlyComparisonResponse(
            current_month=current,
            previous_month=previous,
            revenue_growth_percent=_growth(current.revenue, previous.revenue),
            ticket_growth_percent=_growth(current.tickets_sold, previous.tickets_sold)
        )

    def peak_hours(self, days: int = 30, limit: int = 5, now: Optional[datetime] = None) -> List[HourlyUsageResponse]:
        """Busiest hours of the day over the last ``days`` days"""
        now = now or datetime.now()
        hours = self.usage.hourly_pattern(now - timedelta(days=days), now)
        busy = [h for h in hours if h.count > 0]
        busy.sort(key=lambda h: (-h.count, h.hour))
        return busy[:limit]

    # ================================
    # Routes & stops
    # ================================
    def route_utilization(self) -> List[RouteUtilizationResponse]:
        rows = RouteService.routes_with_usage(self.db)
        total = sum(count for _, count in rows)
        return [
            RouteUtilizationResponse(route=route_summary(r), usage_count=c, share_percent=_percent(c, total))
            for r, c in rows
        ]

    def transport_type_stats(self) -> List[TransportTypeStatsResponse]:
        route_counts = RouteService.count_by_transport_type(self.db)
        usage_counts = self.usage.count_by_transport_type()
        return [
            TransportTypeStatsResponse(
                transport_type=t,
                display_name=t.display_name,
                route_count=route_counts[t],
                usage_count=usage_counts[t]
            )
            for t in TransportType
        ]

    def popular_stops(self, limit: int = 10) -> List[StopCountResponse]:
        """Stops ranked by boardings plus alightings"""
        counts = defaultdict(int)
        for column in (TicketUsage.boarding_stop, TicketUsage.destination_stop):
            rows = self.db.query(column, func.count(TicketUsage.id)).filter(column.isnot(None)).group_by(column)
            for stop, count in rows:
                counts[stop] += count
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [StopCountResponse(stop=stop, count=count) for stop, count in ranked[:limit]]

    # ================================
    # Users
    # ================================
    def user_engagement(self) -> UserEngagementResponse:
        total = self.db.query(User).count()
        with_tickets = self.db.query(func.count(distinct(Ticket.user_id))).scalar() or 0
        return UserEngagementResponse(
            total_users=total,
            users_with_tickets=with_tickets,
            engagement_rate=_percent(with_tickets, total)
        )

    def user_segmentation(self) -> List[UserSegmentResponse]:
        rows = dict(self.db.query(Ticket.ticket_type, func.count(distinct(Ticket.user_id))).group_by(
            Ticket.ticket_type
        ).all())
        return [
            UserSegmentResponse(ticket_type=t, display_name=t.display_name, user_count=rows.get(t, 0))
            for t in TicketType
        ]

    def _buyers_between(self, start: datetime, end: datetime) -> set:
        rows = self.db.query(distinct(Ticket.user_id)).filter(
            Ticket.purchase_date >= start, Ticket.purchase_date <= end
        ).all()
        return {user_id for (user_id,) in rows}

    def retention(self, window_days: int = 30, now: Optional[datetime] = None) -> RetentionResponse:
        """Share of the previous window's buyers who bought again in the current one"""
        now = now or datetime.now()
        current_start = now - timedelta(days=window_days)
        previous_start = current_start - timedelta(days=window_days)
        previous = self._buyers_between(previous_start, current_start)
        current = self._buyers_between(current_start, now)
        retained = len(previous & current)
        return RetentionResponse(
            window_days=window_days,
            previous_period_buyers=len(previous),
            retained_buyers=retained,
            retention_rate=_percent(retained, len(previous))
        )

    def new_vs_returning(self, start: datetime, end: datetime) -> NewVsReturningResponse:
        buyers = self._buyers_between(start, end)
        earlier = {
            user_id for (user_id,) in self.db.query(distinct(Ticket.user_id)).filter(Ticket.purchase_date < start)
        }
        returning = len(buyers & earlier)
        return NewVsReturningResponse(
            start=start, end=end, new_buyers=len(buyers) - returning, returning_buyers=returning
        )

    # ================================
    # Operations
    # ================================
    def system_performance(self) -> SystemPerformanceResponse:
        return SystemPerformanceResponse(
            total_users=self.db.query(User).count(),
            total_routes=self.db.query(Route).count(),
            total_tickets=self.db.query(Ticket).count(),
            total_usage_records=self.db.query(TicketUsage).count(),
            cpu_percent=psutil.cpu_percent(interval=None),
            memory_percent=psutil.virtual_memory().percent,
            disk_percent=psutil.disk_usage('/').percent,
            timestamp=datetime.now()
        )

    def validation_failures(self) -> StatusCountResponse:
        """Ticket counts per status; USED and EXPIRED tickets fail validation"""
        rows = self.db.query(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status).all()
        counts = {s: 0 for s in TicketStatus}
        for ticket_status, count in rows:
            counts[TicketStatus(ticket_status)] = count
        return StatusCountResponse(
            counts=counts,
            invalid_tickets=counts[TicketStatus.USED] + counts[TicketStatus.EXPIRED]
        )

    def custom_report(self, report_type: str, start: datetime, end: datetime) -> CustomReportResponse:
        report_type = (report_type or "").strip().lower()
        if report_type not in REPORT_TYPES:
            raise InvalidRequest(f"Unknown report type '{report_type}', expected one of {', '.join(REPORT_TYPES)}")
        if end < start:
            raise InvalidRequest("End date must not be before start date")

        if report_type == "revenue":
            sales = self.tickets.sales_by_type(start, end)
            summary = {
                "total_revenue": str(sum((s.revenue for s in sales), ZERO)),
                "tickets_sold": sum(s.tickets_sold for s in sales)
            }
            breakdown = [
                {"ticket_type": s.ticket_type.value, "tickets_sold": s.tickets_sold, "revenue": str(s.revenue)}
                for s in sales
            ]
        else:
            usages = self.usage.usage_between(start, end)
            per_type = defaultdict(int)
            for usage in usages:
                per_type[TransportType(usage.transport_type)] += 1
            summary = {"total_usage": len(usages)}
            breakdown = [{"transport_type": t.value, "usage_count": per_type[t]} for t in TransportType]

        logger.info("Custom {} report generated for {} - {}", report_type, start, end)
        return CustomReportResponse(
            report_type=report_type, start=start, end=end, summary=summary, breakdown=breakdown
        )

    # ================================
    # Export
    # ================================
    def tickets_frame(self, start: datetime, end: datetime) -> pd.DataFrame:
        rows = []
        for ticket in self.tickets.tickets_purchased_between(start, end):
            rows.append({
                "ticket_number": ticket.ticket_number,
                "ticket_type": TicketType(ticket.ticket_type).value,
                "price": str(to_money(ticket.price)),
                "status": TicketStatus(ticket.status).value,
                "purchase_date": ticket.purchase_date.isoformat(),
                "valid_from": ticket.valid_from.isoformat(),
                "valid_until": ticket.valid_until.isoformat(),
                "used_date": ticket.used_date.isoformat() if ticket.used_date else "",
                "user_email": ticket.user.email
            })
        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    def export_tickets(self, start: datetime, end: datetime, export_format: str = "csv") -> bytes:
        """Tickets purchased in the range as CSV or Excel"""
        df = self.tickets_frame(start, end)
        logger.info("Exporting {} ticket(s) as {}", len(df), export_format)
        if export_format == "csv":
            output = io.StringIO()
            df.to_csv(output, index=False)
            return output.getvalue().encode()
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Tickets')
        return output.getvalue()
