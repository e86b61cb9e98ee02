from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Time, ForeignKey, Numeric, Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from urban_transit.database import Base
from urban_transit.enums import TicketType, TicketStatus, TransportType, UserRole

# SQLite only autoincrements INTEGER primary keys
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")

TicketTypeEnum = SAEnum(TicketType, name="ticket_type")
TicketStatusEnum = SAEnum(TicketStatus, name="ticket_status")
TransportTypeEnum = SAEnum(TransportType, name="transport_type")
UserRoleEnum = SAEnum(UserRole, name="user_role")

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"
    
    id = Column(PrimaryKey, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(100), nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(UserRoleEnum, nullable=False, default=UserRole.USER)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    tickets = relationship("Ticket", back_populates="user")

# ================================
# Routes
# ================================
class Route(Base):
    __tablename__ = "routes"
    
    id = Column(PrimaryKey, primary_key=True, index=True)
    route_name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(500))
    transport_type = Column(TransportTypeEnum, nullable=False)
    operating_start_time = Column(Time)
    operating_end_time = Column(Time)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    route_stops = relationship(
        "RouteStop",
        back_populates="route",
        order_by="RouteStop.stop_order",
        cascade="all, delete-orphan",
    )
    usages = relationship("TicketUsage", back_populates="route")
    
    @property
    def stops(self):
        return [stop.stop_name for stop in self.route_stops]
    
    @stops.setter
    def stops(self, names):
        self.route_stops = [RouteStop(stop_order=i, stop_name=name) for i, name in enumerate(names)]
    
    @property
    def stop_count(self) -> int:
        return len(self.route_stops)

class RouteStop(Base):
    __tablename__ = "route_stops"
    
    id = Column(PrimaryKey, primary_key=True, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    stop_order = Column(Integer, nullable=False)
    stop_name = Column(String(100), nullable=False)
    
    # Relationships
    route = relationship("Route", back_populates="route_stops")

# ================================
# Pricing
# ================================
class TicketPricing(Base):
    __tablename__ = "ticket_pricing"
    
    id = Column(PrimaryKey, primary_key=True, index=True)
    ticket_type = Column(TicketTypeEnum, unique=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(String(255))
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

# ================================
# Tickets & Usage
# ================================
class Ticket(Base):
    __tablename__ = "tickets"
    
    id = Column(PrimaryKey, primary_key=True, index=True)
    ticket_number = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    ticket_type = Column(TicketTypeEnum, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    status = Column(TicketStatusEnum, nullable=False, default=TicketStatus.ACTIVE)
    purchase_date = Column(DateTime, nullable=False)
    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    used_date = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    user = relationship("User", back_populates="tickets")
    usages = relationship("TicketUsage", back_populates="ticket")

class TicketUsage(Base):
    __tablename__ = "ticket_usage"
    
    id = Column(PrimaryKey, primary_key=True, index=True)
    ticket_id = Column(BigInteger, ForeignKey("tickets.id"), nullable=False, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    transport_type = Column(TransportTypeEnum, nullable=False)
    boarding_stop = Column(String(100))
    destination_stop = Column(String(100))
    used_at = Column(DateTime, nullable=False, index=True)
    
    # Relationships
    ticket = relationship("Ticket", back_populates="usages")
    route = relationship("Route", back_populates="usages")
