import io
from datetime import timedelta
from decimal import Decimal

import pandas as pd
import pytest

from urban_transit.analytics.service import EXPORT_COLUMNS, AnalyticsService
from urban_transit.enums import TicketStatus, TicketType, TransportType
from urban_transit.exceptions import InvalidRequest
from urban_transit.tickets.schemas import TicketUseRequest
from urban_transit.tickets.service import TicketService

from tests.conftest import T0

API = "/api/v1"


@pytest.fixture
def activity(db, user, make_user, pricing, route):
    """Two riders: one with a used ride and a monthly pass, one with nothing"""
    make_user(email="idle@example.com")
    service = TicketService(db)
    ride = service.purchase(user, TicketType.RIDE, route.id, now=T0)
    monthly = service.purchase(user, TicketType.MONTHLY, route.id, now=T0 + timedelta(hours=1))
    service.use(user, TicketUseRequest(ticket_number=ride.ticket_number, route_id=route.id,
                                       boarding_stop="City Hall", destination_stop="University"),
                now=T0 + timedelta(hours=2))
    service.use(user, TicketUseRequest(ticket_number=monthly.ticket_number, route_id=route.id,
                                       boarding_stop="University"),
                now=T0 + timedelta(hours=3))
    return ride, monthly


def test_dashboard(db, activity):
    stats = AnalyticsService(db).dashboard(now=T0 + timedelta(hours=4))
    assert stats.total_users == 2
    assert stats.total_routes == 1
    assert stats.active_tickets == 1
    assert stats.today_usage == 2
    assert stats.revenue_last_year == Decimal("77.50")
    assert stats.total_tickets_sold == 2


def test_daily_trends_cover_every_day(db, activity):
    trends = AnalyticsService(db).daily_trends(days=3, now=T0 + timedelta(days=1))
    assert [t.day for t in trends] == [(T0 - timedelta(days=1)).date(), T0.date(), (T0 + timedelta(days=1)).date()]
    assert trends[1].tickets_sold == 2
    assert trends[1].revenue == Decimal("77.50")
    assert trends[1].usage_count == 2
    assert trends[0].tickets_sold == 0


def test_monthly_comparison_without_history(db, activity):
    comparison = AnalyticsService(db).monthly_comparison(now=T0 + timedelta(days=1))
    assert comparison.current_month.tickets_sold == 2
    assert comparison.previous_month.tickets_sold == 0
    assert comparison.revenue_growth_percent is None


def test_peak_hours_from_usage(db, activity):
    peaks = AnalyticsService(db).peak_hours(now=T0 + timedelta(days=1))
    assert [(p.hour, p.count) for p in peaks] == [(10, 1), (11, 1)]


def test_route_and_stop_stats(db, activity):
    service = AnalyticsService(db)
    utilization = service.route_utilization()
    assert utilization[0].usage_count == 2
    assert utilization[0].share_percent == 100.0

    by_type = {s.transport_type: s for s in service.transport_type_stats()}
    assert by_type[TransportType.BUS].usage_count == 2
    assert by_type[TransportType.METRO].route_count == 0

    stops = service.popular_stops()
    assert (stops[0].stop, stops[0].count) == ("University", 2)


def test_user_engagement_and_segments(db, activity):
    service = AnalyticsService(db)
    engagement = service.user_engagement()
    assert engagement.total_users == 2
    assert engagement.users_with_tickets == 1
    assert engagement.engagement_rate == 50.0

    segments = {s.ticket_type: s.user_count for s in service.user_segmentation()}
    assert segments == {TicketType.RIDE: 1, TicketType.MONTHLY: 1, TicketType.YEARLY: 0}


def test_new_vs_returning(db, user, activity, route):
    TicketService(db).purchase(user, TicketType.RIDE, route.id, now=T0 + timedelta(days=2))
    result = AnalyticsService(db).new_vs_returning(T0 + timedelta(days=1), T0 + timedelta(days=3))
    assert result.returning_buyers == 1
    assert result.new_buyers == 0


def test_validation_failures(db, activity):
    counts = AnalyticsService(db).validation_failures()
    assert counts.counts[TicketStatus.USED] == 1
    assert counts.invalid_tickets == 1


def test_custom_report(db, activity):
    service = AnalyticsService(db)
    report = service.custom_report("Revenue", T0, T0 + timedelta(days=1))
    assert report.report_type == "revenue"
    assert report.summary["total_revenue"] == "77.50"
    assert report.summary["tickets_sold"] == 2

    usage = service.custom_report("usage", T0, T0 + timedelta(days=1))
    assert usage.summary["total_usage"] == 2

    with pytest.raises(InvalidRequest):
        service.custom_report("weather", T0, T0 + timedelta(days=1))
    with pytest.raises(InvalidRequest):
        service.custom_report("usage", T0 + timedelta(days=1), T0)


def test_export_tickets_csv(db, activity):
    data = AnalyticsService(db).export_tickets(T0, T0 + timedelta(days=1))
    frame = pd.read_csv(io.BytesIO(data))
    assert list(frame.columns) == EXPORT_COLUMNS
    assert len(frame) == 2
    assert set(frame["status"]) == {"USED", "ACTIVE"}
    assert set(frame["user_email"]) == {"rider@example.com"}


def test_export_tickets_excel(db, activity):
    data = AnalyticsService(db).export_tickets(T0, T0 + timedelta(days=1), export_format="excel")
    frame = pd.read_excel(io.BytesIO(data), sheet_name="Tickets")
    assert len(frame) == 2


def test_system_performance(db, activity):
    performance = AnalyticsService(db).system_performance()
    assert performance.total_tickets == 2
    assert performance.total_usage_records == 2
    assert 0 <= performance.memory_percent <= 100


def test_analytics_endpoints_are_admin_only(client, user_headers, admin_headers, activity):
    assert client.get(f"{API}/admin/analytics/dashboard", headers=user_headers).status_code == 403

    response = client.get(f"{API}/admin/analytics/dashboard", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total_tickets_sold"] == 2

    export = client.get(f"{API}/admin/analytics/export/tickets", headers=admin_headers, params={
        "start": T0.isoformat(), "end": (T0 + timedelta(days=1)).isoformat(), "format": "csv"
    })
    assert export.status_code == 200
    assert "attachment" in export.headers["content-disposition"]

    bad = client.post(f"{API}/admin/analytics/reports/custom", headers=admin_headers, json={
        "report_type": "revenue", "start": (T0 + timedelta(days=1)).isoformat(), "end": T0.isoformat()
    })
    assert bad.status_code == 400
