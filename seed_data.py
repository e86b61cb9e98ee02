#!/usr/bin/env python3

import os
from datetime import time
from decimal import Decimal

from urban_transit.database import SessionLocal, init_db
from urban_transit.auth.utils import get_password_hash
from urban_transit.enums import TicketType, TransportType, UserRole
from urban_transit.models import User, TicketPricing, Route

PRICING = [
    (TicketType.RIDE, Decimal("2.50"), "Single ride ticket - Valid for 24 hours"),
    (TicketType.MONTHLY, Decimal("75.00"), "30-day unlimited pass - Best value for regular commuters"),
    (TicketType.YEARLY, Decimal("800.00"), "365-day unlimited pass - Maximum savings for daily users"),
]

ROUTES = [
    {
        "route_name": "Bus 12",
        "description": "Central Station to University Campus",
        "transport_type": TransportType.BUS,
        "stops": ["Central Station", "City Hall", "Market Square", "Library", "University Campus"],
        "operating_start_time": time(5, 30),
        "operating_end_time": time(23, 30),
    },
    {
        "route_name": "Metro Line A",
        "description": "North-south metro line",
        "transport_type": TransportType.METRO,
        "stops": ["North Terminal", "Riverside", "Central Station", "Old Town", "South Park"],
        "operating_start_time": time(5, 0),
        "operating_end_time": time(1, 0),
    },
    {
        "route_name": "Tram 3",
        "description": "Old Town loop",
        "transport_type": TransportType.TRAM,
        "stops": ["Old Town", "Cathedral", "Harbour", "Museum Quarter"],
        "operating_start_time": time(6, 0),
        "operating_end_time": time(22, 0),
    },
    {
        "route_name": "Airport Express",
        "description": "Central Station to the airport",
        "transport_type": TransportType.TRAIN,
        "stops": ["Central Station", "Business District", "Airport"],
        "operating_start_time": None,
        "operating_end_time": None,
    },
]

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for Urban Transit Ticketing System...")

        # 1. Admin account
        admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com").strip().lower()
        admin = db.query(User).filter(User.email == admin_email).first()
        if admin is None:
            print(f"Creating admin user {admin_email}...")
            admin = User(
                email=admin_email,
                full_name="System Administrator",
                password=get_password_hash(os.getenv("ADMIN_PASSWORD", "admin123")),
                role=UserRole.ADMIN,
                active=True
            )
            db.add(admin)

        # 2. Ticket pricing
        print("Creating ticket pricing...")
        created_prices = 0
        for ticket_type, price, description in PRICING:
            if db.query(TicketPricing).filter(TicketPricing.ticket_type == ticket_type).first():
                continue
            db.add(TicketPricing(ticket_type=ticket_type, price=price, description=description, active=True))
            created_prices += 1

        # 3. Routes
        print("Creating routes...")
        created_routes = 0
        for data in ROUTES:
            if db.query(Route).filter(Route.route_name == data["route_name"]).first():
                continue
            data = dict(data)
            stops = data.pop("stops")
            route = Route(active=True, **data)
            route.stops = stops
            db.add(route)
            created_routes += 1

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data for Urban Transit Ticketing System!")
        print("Created:")
        print(f"  - {created_prices} pricing records")
        print(f"  - {created_routes} routes")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
