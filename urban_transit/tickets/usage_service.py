from collections import Counter
from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from urban_transit.enums import TransportType
from urban_transit.exceptions import NotFound, TransitError
from urban_transit.models import Route, Ticket, TicketUsage
from urban_transit.pagination import PagedResponse, paginate
from urban_transit.routes.service import to_summary as route_summary
from urban_transit.tickets.schemas import (
    UsageRecordRequest, BulkUsageResponse, BulkUsageFailure, UserUsageStatsResponse,
    StopCountResponse, HourlyUsageResponse, WeekdayUsageResponse, TicketUsageResponse
)
from urban_transit.tickets.service import TicketService, to_usage_response

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

class UsageService:
    """Read side of the usage log plus admin recording"""

    def __init__(self, db: Session):
        self.db = db

    # ================================
    # Recording
    # ================================
    def record_usage(self, request: UsageRecordRequest) -> TicketUsage:
        """Record a use on behalf of a rider, with the same checks as boarding"""
        return TicketService(self.db).use(None, request, now=request.used_at)

    def bulk_record(self, requests: List[UsageRecordRequest]) -> BulkUsageResponse:
        """Record each item independently; failures do not stop the batch"""
        service = TicketService(self.db)
        recorded = []
        failures = []
        for index, request in enumerate(requests):
            # use() runs every check before it touches the session
            try:
                usage = service.use(None, request, now=request.used_at, commit=False)
                recorded.append(usage)
            except TransitError as e:
                failures.append(BulkUsageFailure(index=index, ticket_number=request.ticket_number, message=e.message))
        self.db.commit()
        logger.info("Bulk usage: {} recorded, {} failed", len(recorded), len(failures))
        return BulkUsageResponse(recorded=[to_usage_response(u) for u in recorded], failures=failures)

    def delete_usage(self, usage_id: int) -> None:
        usage = self.db.query(TicketUsage).filter(TicketUsage.id == usage_id).first()
        if usage is None:
            raise NotFound(f"Usage record {usage_id} not found")
        self.db.delete(usage)
        self.db.commit()
        logger.info("Usage record {} deleted", usage_id)

    # ================================
    # Travel history
    # ================================
    def _user_usage(self, user_id: int):
        return self.db.query(TicketUsage).join(Ticket, TicketUsage.ticket_id == Ticket.id).filter(
            Ticket.user_id == user_id
        )

    def travel_history(self, user_id: int, page: int, size: int) -> PagedResponse:
        query = self._user_usage(user_id).order_by(TicketUsage.used_at.desc(), TicketUsage.id.desc())
        return paginate(query, page, size, to_usage_response)

    def travel_history_between(self, user_id: int, start: datetime, end: datetime) -> List[TicketUsageResponse]:
        usages = self._user_usage(user_id).filter(
            TicketUsage.used_at >= start,
            TicketUsage.used_at <= end
        ).order_by(TicketUsage.used_at.desc()).all()
        return [to_usage_response(u) for u in usages]

    def user_stats(self, user_id: int, now: Optional[datetime] = None) -> UserUsageStatsResponse:
        now = now or datetime.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        total = self._user_usage(user_id).count()
        this_month = self._user_usage(user_id).filter(TicketUsage.used_at >= month_start).count()

        route_count = func.count(TicketUsage.id)
        top_route = self._user_usage(user_id).join(Route, TicketUsage.route_id == Route.id).with_entities(
            Route, route_count
        ).group_by(Route.id).order_by(route_count.desc(), Route.id).first()

        type_count = func.count(TicketUsage.id)
        top_type = self._user_usage(user_id).with_entities(
            TicketUsage.transport_type, type_count
        ).group_by(TicketUsage.transport_type).order_by(type_count.desc()).first()

        return UserUsageStatsResponse(
            total_rides=total,
            rides_this_month=this_month,
            most_used_route=route_summary(top_route[0]) if top_route else None,
            favourite_transport_type=top_type[0] if top_type else None
        )

    # ================================
    # Admin views
    # ================================
    def all_usage(self, page: int, size: int) -> PagedResponse:
        query = self.db.query(TicketUsage).order_by(TicketUsage.used_at.desc(), TicketUsage.id.desc())
        return paginate(query, page, size, to_usage_response)

    def usage_by_route(self, route_id: int, page: int, size: int) -> PagedResponse:
        query = self.db.query(TicketUsage).filter(
            TicketUsage.route_id == route_id
        ).order_by(TicketUsage.used_at.desc())
        return paginate(query, page, size, to_usage_response)

    def usage_by_transport_type(self, transport_type: TransportType, page: int, size: int) -> PagedResponse:
        query = self.db.query(TicketUsage).filter(
            TicketUsage.transport_type == transport_type
        ).order_by(TicketUsage.used_at.desc())
        return paginate(query, page, size, to_usage_response)

    def usage_between(self, start: datetime, end: datetime) -> List[TicketUsage]:
        return self.db.query(TicketUsage).filter(
            TicketUsage.used_at >= start,
            TicketUsage.used_at <= end
        ).order_by(TicketUsage.used_at).all()

    def count_between(self, start: datetime, end: datetime) -> int:
        return self.db.query(TicketUsage).filter(
            TicketUsage.used_at >= start,
            TicketUsage.used_at <= end
        ).count()

    def count_by_transport_type(self) -> dict:
        rows = self.db.query(TicketUsage.transport_type, func.count(TicketUsage.id)).group_by(
            TicketUsage.transport_type
        ).all()
        counts = {t: 0 for t in TransportType}
        for transport_type, count in rows:
            counts[TransportType(transport_type)] = count
        return counts

    # ================================
    # Patterns
    # ================================
    def _top_stops(self, column, limit: int) -> List[StopCountResponse]:
        stop_count = func.count(TicketUsage.id)
        rows = self.db.query(column, stop_count).filter(column.isnot(None)).group_by(column).order_by(
            stop_count.desc(), column
        ).limit(limit).all()
        return [StopCountResponse(stop=stop, count=count) for stop, count in rows]

    def popular_boarding_stops(self, limit: int = 10) -> List[StopCountResponse]:
        return self._top_stops(TicketUsage.boarding_stop, limit)

    def popular_destinations(self, limit: int = 10) -> List[StopCountResponse]:
        return self._top_stops(TicketUsage.destination_stop, limit)

    def used_at_values(self, start: Optional[datetime] = None, end: Optional[datetime] = None):
        query = self.db.query(TicketUsage.used_at)
        if start is not None:
            query = query.filter(TicketUsage.used_at >= start)
        if end is not None:
            query = query.filter(TicketUsage.used_at <= end)
        return [used_at for (used_at,) in query.all()]

    def hourly_pattern(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[HourlyUsageResponse]:
        # Bucketed in Python; hour extraction differs between Postgres and SQLite
        counts = Counter(used_at.hour for used_at in self.used_at_values(start, end))
        return [HourlyUsageResponse(hour=hour, count=counts.get(hour, 0)) for hour in range(24)]

    def weekday_pattern(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[WeekdayUsageResponse]:
        counts = Counter(used_at.weekday() for used_at in self.used_at_values(start, end))
        return [WeekdayUsageResponse(day=name, count=counts.get(i, 0)) for i, name in enumerate(WEEKDAYS)]
