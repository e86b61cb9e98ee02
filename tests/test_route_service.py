from datetime import time, timedelta

import pytest

from urban_transit.enums import TicketType, TransportType
from urban_transit.exceptions import Conflict, InvalidRequest, NotFound
from urban_transit.routes.schemas import RouteCreate, RouteUpdate
from urban_transit.routes.service import RouteService
from urban_transit.routes.validation import operates_at, validate_stops
from urban_transit.tickets.schemas import TicketUseRequest
from urban_transit.tickets.service import TicketService

from tests.conftest import T0


# ================================
# Stop validation
# ================================
def test_validate_stops_trims_names():
    assert validate_stops([" Central Station ", "Airport"]) == ["Central Station", "Airport"]


@pytest.mark.parametrize("stops, message", [
    (None, "at least 2 stops"),
    (["Only One"], "at least 2 stops"),
    (["Central", "  "], "must not be blank"),
    (["Central", "x" * 101], "exceeds 100 characters"),
    (["Central", "Harbour", "central "], "Duplicate stop"),
])
def test_validate_stops_rejects_bad_lists(stops, message):
    with pytest.raises(InvalidRequest) as exc:
        validate_stops(stops)
    assert message in exc.value.message


def test_operating_hours():
    assert operates_at(None, None, time(3, 0))
    assert operates_at(time(5, 0), time(23, 0), time(5, 0))
    assert not operates_at(time(5, 0), time(23, 0), time(23, 30))
    # Night service crossing midnight
    assert operates_at(time(22, 0), time(2, 0), time(1, 0))
    assert operates_at(time(22, 0), time(2, 0), time(23, 0))
    assert not operates_at(time(22, 0), time(2, 0), time(12, 0))


# ================================
# Create / update
# ================================
def test_create_route(db):
    route = RouteService.create_route(db, RouteCreate(
        route_name=" Tram 3 ",
        description="Old Town loop",
        transport_type=TransportType.TRAM,
        stops=["Old Town", " Cathedral", "Harbour"]
    ))
    assert route.id is not None
    assert route.route_name == "Tram 3"
    assert route.stops == ["Old Town", "Cathedral", "Harbour"]
    assert route.stop_count == 3
    assert route.active


def test_create_route_duplicate_name(db, route):
    with pytest.raises(Conflict):
        RouteService.create_route(db, RouteCreate(
            route_name="bus 12", transport_type=TransportType.BUS, stops=["A", "B"]
        ))


def test_create_route_with_one_stop(db):
    with pytest.raises(InvalidRequest):
        RouteService.create_route(db, RouteCreate(
            route_name="Shuttle", transport_type=TransportType.BUS, stops=["A"]
        ))


def test_update_route_replaces_stops(db, route):
    updated = RouteService.update_route(db, route.id, RouteUpdate(
        stops=["Central Station", "Stadium"], description="Match day service"
    ))
    assert updated.stops == ["Central Station", "Stadium"]
    assert updated.description == "Match day service"
    assert updated.transport_type == TransportType.BUS


def test_update_route_name_conflict(db, route, make_route):
    other = make_route(name="Bus 40")
    with pytest.raises(Conflict):
        RouteService.update_route(db, other.id, RouteUpdate(route_name="Bus 12"))
    # Renaming to its own name is fine
    assert RouteService.update_route(db, route.id, RouteUpdate(route_name="Bus 12")).route_name == "Bus 12"


def test_soft_delete_keeps_route_for_admins(db, route):
    RouteService.delete_route(db, route.id)

    assert RouteService.get_active_route(db, route.id) is None
    with pytest.raises(NotFound):
        RouteService.get_route(db, route.id)
    assert RouteService.get_any_route(db, route.id).active is False

    RouteService.set_route_status(db, route.id, True)
    assert RouteService.get_route(db, route.id).id == route.id


# ================================
# Queries
# ================================
def test_listing_and_search(db, route, inactive_route, make_route):
    make_route(name="Metro Line A", transport_type=TransportType.METRO,
               stops=["North Terminal", "Central Station"], description="North-south line")

    assert [r.route_name for r in RouteService.list_active_routes(db)] == ["Bus 12", "Metro Line A"]
    assert [r.route_name for r in RouteService.search_routes(db, "north")] == ["Metro Line A"]
    assert [r.route_name for r in RouteService.routes_by_stop(db, "central station")] == ["Bus 12", "Metro Line A"]
    assert [r.route_name for r in RouteService.routes_by_transport_type(db, TransportType.TRAM)] == []
    assert RouteService.get_route_by_name(db, "METRO LINE A").transport_type == TransportType.METRO

    page = RouteService.advanced_search(db, "", TransportType.BUS, 0, 10)
    assert page.total_elements == 1
    assert page.content[0].stops == ["Central Station", "City Hall", "University"]


def test_routes_operating_at(db, route, make_route):
    make_route(name="Night Bus", stops=["A", "B"], start=time(22, 0), end=time(4, 0))
    make_route(name="Airport Express", transport_type=TransportType.TRAIN, stops=["A", "C"])

    names = [r.route_name for r in RouteService.routes_operating_at(db, time(2, 0))]
    assert names == ["Airport Express", "Night Bus"]


def test_count_by_transport_type(db, route, inactive_route):
    counts = RouteService.count_by_transport_type(db)
    assert counts[TransportType.BUS] == 1
    assert counts[TransportType.TRAM] == 0
    assert set(counts) == set(TransportType)


def test_popular_and_underutilized_routes(db, user, pricing, route, make_route):
    quiet = make_route(name="Tram 3", transport_type=TransportType.TRAM, stops=["A", "B"])
    ticket = TicketService(db).purchase(user, TicketType.MONTHLY, route.id, now=T0)
    for hours in (1, 2, 3):
        TicketService(db).use(
            user, TicketUseRequest(ticket_number=ticket.ticket_number, route_id=route.id),
            now=T0 + timedelta(hours=hours)
        )

    popular = RouteService.popular_routes(db, limit=2)
    assert [(p.route.route_name, p.usage_count) for p in popular] == [("Bus 12", 3), ("Tram 3", 0)]

    under = RouteService.underutilized_routes(db, threshold=2)
    assert [u.route.id for u in under] == [quiet.id]
