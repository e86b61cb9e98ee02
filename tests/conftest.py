"""Shared fixtures: in-memory database, sessions, HTTP client, users and tokens."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["TICKET_EXPIRY_SWEEP_ENABLED"] = "false"

from datetime import datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from urban_transit.auth.utils import create_access_token, get_password_hash
from urban_transit.database import Base, SessionLocal, engine, get_db
from urban_transit.enums import TicketType, TransportType, UserRole
from urban_transit.main import app
from urban_transit.models import Route, TicketPricing, User

T0 = datetime(2025, 3, 10, 8, 0, 0)


@pytest.fixture
def db():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient sharing the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email="rider@example.com", full_name="Test Rider", password="secret123",
                   role=UserRole.USER, active=True):
        user = User(
            email=email,
            full_name=full_name,
            password=get_password_hash(password),
            role=role,
            active=active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", full_name="Admin", role=UserRole.ADMIN)


def token_for(user) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email})


@pytest.fixture
def user_headers(user):
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {token_for(admin)}"}


@pytest.fixture
def pricing(db):
    rows = [
        TicketPricing(ticket_type=TicketType.RIDE, price=Decimal("2.50"), description="Single ride", active=True),
        TicketPricing(ticket_type=TicketType.MONTHLY, price=Decimal("75.00"), description="Monthly pass", active=True),
        TicketPricing(ticket_type=TicketType.YEARLY, price=Decimal("800.00"), description="Yearly pass", active=True),
    ]
    db.add_all(rows)
    db.commit()
    return {row.ticket_type: row for row in rows}


@pytest.fixture
def make_route(db):
    def _make_route(name="Bus 12", transport_type=TransportType.BUS, stops=None, active=True,
                    start=None, end=None, description=None):
        route = Route(
            route_name=name,
            description=description,
            transport_type=transport_type,
            operating_start_time=start,
            operating_end_time=end,
            active=active,
        )
        route.stops = stops or ["Central Station", "City Hall", "University"]
        db.add(route)
        db.commit()
        db.refresh(route)
        return route
    return _make_route


@pytest.fixture
def route(make_route):
    return make_route(start=time(5, 0), end=time(23, 0))


@pytest.fixture
def inactive_route(make_route):
    return make_route(name="Old Tram", transport_type=TransportType.TRAM, active=False)
