from datetime import datetime, date, time, timedelta
from decimal import Decimal
from io import BytesIO
from typing import List, Optional

import qrcode
from qrcode import constants
from loguru import logger
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from urban_transit.enums import TicketType, TicketStatus, UserRole
from urban_transit.exceptions import (
    TransitError, NotFound, TicketNotValid, DuplicatePass, RouteUnavailable, InvalidTransition
)
from urban_transit.models import Ticket, TicketUsage, User
from urban_transit.money import to_money
from urban_transit.pagination import PagedResponse, paginate
from urban_transit.pricing.service import PricingService
from urban_transit.routes.service import RouteService, to_summary as route_summary
from urban_transit.tickets.schemas import (
    TicketResponse, TicketSummaryResponse, TicketValidationResponse, TicketUseRequest,
    TicketUsageResponse, PurchaseEligibilityResponse, SalesByTypeResponse, TopPurchaserResponse
)
from urban_transit.tickets.validity import (
    is_currently_valid, can_be_used_for_transit, use_ticket, is_expired,
    validity_window, generate_ticket_number
)
from urban_transit.users.service import to_summary as user_summary

# ================================
# Response mapping
# ================================
def to_ticket_response(ticket: Ticket, now: Optional[datetime] = None) -> TicketResponse:
    now = now or datetime.now()
    return TicketResponse(
        id=ticket.id,
        ticket_number=ticket.ticket_number,
        ticket_type=ticket.ticket_type,
        price=ticket.price,
        status=ticket.status,
        purchase_date=ticket.purchase_date,
        valid_from=ticket.valid_from,
        valid_until=ticket.valid_until,
        used_date=ticket.used_date,
        is_currently_valid=is_currently_valid(ticket, now),
        can_be_used_for_transit=can_be_used_for_transit(ticket, now),
        user=user_summary(ticket.user),
        created_at=ticket.created_at,
        updated_at=ticket.updated_at
    )

def to_ticket_summary(ticket: Ticket, now: Optional[datetime] = None) -> TicketSummaryResponse:
    now = now or datetime.now()
    return TicketSummaryResponse(
        id=ticket.id,
        ticket_number=ticket.ticket_number,
        ticket_type=ticket.ticket_type,
        price=ticket.price,
        status=ticket.status,
        purchase_date=ticket.purchase_date,
        valid_until=ticket.valid_until,
        is_currently_valid=is_currently_valid(ticket, now)
    )

def to_usage_response(usage: TicketUsage, now: Optional[datetime] = None) -> TicketUsageResponse:
    return TicketUsageResponse(
        id=usage.id,
        ticket=to_ticket_summary(usage.ticket, now),
        route=route_summary(usage.route),
        transport_type=usage.transport_type,
        boarding_stop=usage.boarding_stop,
        destination_stop=usage.destination_stop,
        used_at=usage.used_at
    )

def _clean_stop(stop: Optional[str]) -> Optional[str]:
    if stop is None:
        return None
    return stop.strip() or None


class TicketService:
    """Ticket purchase, validation, use and lifecycle management"""

    MAX_NUMBER_ATTEMPTS = 3

    def __init__(self, db: Session):
        self.db = db

    # ================================
    # Lookups
    # ================================
    def get_by_number(self, ticket_number: str) -> Optional[Ticket]:
        return self.db.query(Ticket).filter(Ticket.ticket_number == ticket_number.strip()).first()

    def get_by_number_or_404(self, ticket_number: str) -> Ticket:
        ticket = self.get_by_number(ticket_number)
        if ticket is None:
            raise NotFound("Ticket not found")
        return ticket

    def get_ticket(self, ticket_id: int) -> Ticket:
        ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if ticket is None:
            raise NotFound(f"Ticket {ticket_id} not found")
        return ticket

    def get_user_ticket(self, user: User, ticket_id: int) -> Ticket:
        """Ticket by id, visible to its owner and to admins"""
        ticket = self.get_ticket(ticket_id)
        if ticket.user_id != user.id and user.role != UserRole.ADMIN:
            raise NotFound(f"Ticket {ticket_id} not found")
        return ticket

    def user_has_valid_pass(self, user_id: int, now: Optional[datetime] = None) -> bool:
        """Does the user hold an ACTIVE monthly or yearly pass covering ``now``"""
        now = now or datetime.now()
        return self.db.query(Ticket.id).filter(
            Ticket.user_id == user_id,
            Ticket.status == TicketStatus.ACTIVE,
            Ticket.ticket_type.in_(TicketType.unlimited_types()),
            Ticket.valid_from <= now,
            Ticket.valid_until > now
        ).first() is not None

    def _lock_user(self, user_id: int) -> None:
        # Serializes purchases per user; SQLite ignores FOR UPDATE
        self.db.query(User).filter(User.id == user_id).with_for_update().first()

    # ================================
    # Purchase
    # ================================
    def purchase(
        self,
        user: User,
        ticket_type: TicketType,
        route_id: int,
        now: Optional[datetime] = None
    ) -> Ticket:
        """
        Sell a ticket to ``user``.

        Raises RouteUnavailable when ``route_id`` does not name an active
        route, DuplicatePass when an unlimited pass is bought while another
        one is still valid, and PricingUnavailable when the type has no
        active price.
        """
        now = now or datetime.now()
        ticket_type = TicketType(ticket_type)
        user_id = user.id

        try:
            if RouteService.get_active_route(self.db, route_id) is None:
                logger.warning("Purchase rejected for user {}: route {} unavailable", user_id, route_id)
                raise RouteUnavailable("Route not found or inactive")

            price = PricingService.current_price(self.db, ticket_type)
            valid_from, valid_until = validity_window(ticket_type, now)

            for attempt in range(1, self.MAX_NUMBER_ATTEMPTS + 1):
                self._lock_user(user_id)
                if ticket_type.is_unlimited and self.user_has_valid_pass(user_id, now):
                    logger.warning("Purchase rejected for user {}: already holds a valid pass", user_id)
                    raise DuplicatePass("User already has a valid unlimited pass")

                ticket = Ticket(
                    ticket_number=generate_ticket_number(ticket_type, now),
                    user_id=user_id,
                    ticket_type=ticket_type,
                    price=price,
                    status=TicketStatus.ACTIVE,
                    purchase_date=now,
                    valid_from=valid_from,
                    valid_until=valid_until
                )
                self.db.add(ticket)
                try:
                    self.db.commit()
                except IntegrityError:
                    self.db.rollback()
                    if attempt == self.MAX_NUMBER_ATTEMPTS:
                        raise
                    logger.warning("Ticket number collision on {}, retrying", ticket.ticket_number)
                    continue

                self.db.refresh(ticket)
                logger.info(
                    "Ticket {} purchased by user {}: {} at {}",
                    ticket.ticket_number, user_id, ticket_type.value, ticket.price
                )
                return ticket
        except TransitError:
            self.db.rollback()
            raise

    def purchase_eligibility(
        self, user: User, ticket_type: TicketType, now: Optional[datetime] = None
    ) -> PurchaseEligibilityResponse:
        now = now or datetime.now()
        ticket_type = TicketType(ticket_type)
        pricing = PricingService.find_active_pricing(self.db, ticket_type)
        if pricing is None:
            return PurchaseEligibilityResponse(
                ticket_type=ticket_type, can_purchase=False, reason="Pricing not available"
            )
        if ticket_type.is_unlimited and self.user_has_valid_pass(user.id, now):
            return PurchaseEligibilityResponse(
                ticket_type=ticket_type,
                can_purchase=False,
                reason="User already has a valid unlimited pass",
                price=pricing.price
            )
        return PurchaseEligibilityResponse(ticket_type=ticket_type, can_purchase=True, price=pricing.price)

    # ================================
    # Validation & use
    # ================================
    def validate(
        self, ticket_number: str, route_id: Optional[int] = None, now: Optional[datetime] = None
    ) -> TicketValidationResponse:
        """Check a ticket without changing it"""
        now = now or datetime.now()
        ticket = self.get_by_number(ticket_number)
        if ticket is None:
            return TicketValidationResponse(is_valid=False, message="Ticket not found")

        if route_id is not None and RouteService.get_active_route(self.db, route_id) is None:
            return TicketValidationResponse(
                is_valid=False,
                message="Route not found or inactive",
                ticket=to_ticket_response(ticket, now)
            )

        if not is_currently_valid(ticket, now):
            return TicketValidationResponse(
                is_valid=False, message="Ticket not valid", ticket=to_ticket_response(ticket, now)
            )

        return TicketValidationResponse(is_valid=True, message="Ticket is valid", ticket=to_ticket_response(ticket, now))

    def validate_or_raise(self, ticket_number: str, now: Optional[datetime] = None) -> Ticket:
        now = now or datetime.now()
        ticket = self.get_by_number_or_404(ticket_number)
        if not is_currently_valid(ticket, now):
            raise TicketNotValid("Ticket not valid")
        return ticket

    def use(
        self,
        user: Optional[User],
        request: TicketUseRequest,
        now: Optional[datetime] = None,
        commit: bool = True
    ) -> TicketUsage:
        """
        Board a route with a ticket.

        Ride tickets are consumed; passes stay ACTIVE. A usage record is
        written only when the ticket was usable. ``user=None`` skips the
        ownership check (admin recording).
        """
        now = now or datetime.now()
        ticket = self.get_by_number(request.ticket_number)
        if ticket is None or (
            user is not None and user.role != UserRole.ADMIN and ticket.user_id != user.id
        ):
            raise NotFound("Ticket not found")

        if not can_be_used_for_transit(ticket, now):
            logger.warning("Ticket {} rejected for transit (status {})", ticket.ticket_number, ticket.status.value)
            raise TicketNotValid("Ticket cannot be used for transit")

        route = RouteService.get_active_route(self.db, request.route_id)
        if route is None:
            logger.warning("Ticket {} rejected: route {} unavailable", ticket.ticket_number, request.route_id)
            raise RouteUnavailable("Route not found or inactive")

        use_ticket(ticket, now)
        usage = TicketUsage(
            ticket=ticket,
            route=route,
            transport_type=request.transport_type or route.transport_type,
            boarding_stop=_clean_stop(request.boarding_stop),
            destination_stop=_clean_stop(request.destination_stop),
            used_at=now
        )
        self.db.add(usage)
        if commit:
            self.db.commit()
            self.db.refresh(usage)
        else:
            self.db.flush()
        logger.info("Ticket {} used on route {}", ticket.ticket_number, route.route_name)
        return usage

    # ================================
    # Lifecycle
    # ================================
    def cancel(self, ticket_id: int, reason: Optional[str] = None) -> Ticket:
        """Admin cancellation, allowed only from ACTIVE"""
        ticket = self.get_ticket(ticket_id)
        if TicketStatus(ticket.status).is_terminal:
            logger.warning("Cancel rejected for ticket {}: status {}", ticket.ticket_number, ticket.status.value)
            raise InvalidTransition("Cannot cancel used or expired ticket")
        ticket.status = TicketStatus.EXPIRED
        self.db.commit()
        self.db.refresh(ticket)
        logger.info("Ticket {} cancelled: {}", ticket.ticket_number, reason or "no reason given")
        return ticket

    def expire_tickets(self, now: Optional[datetime] = None) -> int:
        """Move every ACTIVE ticket whose window has closed to EXPIRED"""
        now = now or datetime.now()
        candidates = self.db.query(Ticket).filter(
            Ticket.status == TicketStatus.ACTIVE,
            Ticket.valid_until < now
        ).all()

        expired = 0
        for ticket in candidates:
            if is_expired(ticket, now):
                ticket.status = TicketStatus.EXPIRED
                expired += 1

        if expired:
            self.db.commit()
            logger.info("Expired {} ticket(s)", expired)
        return expired

    # ================================
    # User views
    # ================================
    def _user_query(self, user_id: int):
        return self.db.query(Ticket).filter(Ticket.user_id == user_id)

    def user_tickets(self, user_id: int, page: int, size: int, now: Optional[datetime] = None) -> PagedResponse:
        now = now or datetime.now()
        query = self._user_query(user_id).order_by(Ticket.purchase_date.desc(), Ticket.id.desc())
        return paginate(query, page, size, lambda t: to_ticket_response(t, now))

    def _user_open_tickets(self, user_id: int, now: datetime):
        # SQL narrows to ACTIVE tickets whose window is still open; the predicate decides
        return self._user_query(user_id).filter(
            Ticket.status == TicketStatus.ACTIVE,
            Ticket.valid_until > now
        )

    def user_valid_tickets(self, user_id: int, now: Optional[datetime] = None) -> List[Ticket]:
        now = now or datetime.now()
        tickets = self._user_open_tickets(user_id, now).order_by(Ticket.valid_until).all()
        return [t for t in tickets if is_currently_valid(t, now)]

    def valid_ride_tickets(self, user_id: int, now: Optional[datetime] = None) -> List[Ticket]:
        """Unused rides, oldest purchase first"""
        now = now or datetime.now()
        tickets = self._user_open_tickets(user_id, now).filter(
            Ticket.ticket_type == TicketType.RIDE,
            Ticket.used_date.is_(None)
        ).order_by(Ticket.purchase_date, Ticket.id).all()
        return [t for t in tickets if can_be_used_for_transit(t, now)]

    def valid_unlimited_tickets(self, user_id: int, now: Optional[datetime] = None) -> List[Ticket]:
        """Valid passes, longest remaining first"""
        now = now or datetime.now()
        tickets = self._user_open_tickets(user_id, now).filter(
            Ticket.ticket_type.in_(TicketType.unlimited_types())
        ).order_by(Ticket.valid_until.desc()).all()
        return [t for t in tickets if is_currently_valid(t, now)]

    def user_tickets_by_type(self, user_id: int, ticket_type: TicketType) -> List[Ticket]:
        return self._user_query(user_id).filter(
            Ticket.ticket_type == ticket_type
        ).order_by(Ticket.purchase_date.desc()).all()

    def user_tickets_by_status(self, user_id: int, ticket_status: TicketStatus) -> List[Ticket]:
        return self._user_query(user_id).filter(
            Ticket.status == ticket_status
        ).order_by(Ticket.purchase_date.desc()).all()

    # ================================
    # Admin views
    # ================================
    def all_tickets(
        self,
        page: int,
        size: int,
        ticket_status: Optional[TicketStatus] = None,
        ticket_type: Optional[TicketType] = None,
        now: Optional[datetime] = None
    ) -> PagedResponse:
        now = now or datetime.now()
        query = self.db.query(Ticket)
        if ticket_status is not None:
            query = query.filter(Ticket.status == ticket_status)
        if ticket_type is not None:
            query = query.filter(Ticket.ticket_type == ticket_type)
        query = query.order_by(Ticket.purchase_date.desc(), Ticket.id.desc())
        return paginate(query, page, size, lambda t: to_ticket_response(t, now))

    def tickets_purchased_between(self, start: datetime, end: datetime) -> List[Ticket]:
        return self.db.query(Ticket).filter(
            Ticket.purchase_date >= start,
            Ticket.purchase_date <= end
        ).order_by(Ticket.purchase_date).all()

    # ================================
    # Reports
    # ================================
    def sales_by_type(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[SalesByTypeResponse]:
        """Tickets sold and revenue per type, every type listed"""
        query = self.db.query(Ticket.ticket_type, func.count(Ticket.id), func.sum(Ticket.price))
        if start is not None:
            query = query.filter(Ticket.purchase_date >= start)
        if end is not None:
            query = query.filter(Ticket.purchase_date <= end)
        rows = {TicketType(t): (count, total) for t, count, total in query.group_by(Ticket.ticket_type).all()}

        result = []
        for ticket_type in TicketType:
            count, total = rows.get(ticket_type, (0, None))
            result.append(SalesByTypeResponse(
                ticket_type=ticket_type,
                display_name=ticket_type.display_name,
                tickets_sold=count,
                revenue=to_money(total)
            ))
        return result

    def revenue_between(self, start: datetime, end: datetime) -> Decimal:
        total = self.db.query(func.sum(Ticket.price)).filter(
            Ticket.purchase_date >= start,
            Ticket.purchase_date <= end
        ).scalar()
        return to_money(total)

    def tickets_sold_between(self, start: datetime, end: datetime) -> int:
        return self.db.query(Ticket).filter(
            Ticket.purchase_date >= start,
            Ticket.purchase_date <= end
        ).count()

    def top_purchasers(self, limit: int = 10) -> List[TopPurchaserResponse]:
        ticket_count = func.count(Ticket.id)
        rows = self.db.query(User, ticket_count, func.sum(Ticket.price)).join(
            Ticket, Ticket.user_id == User.id
        ).group_by(User.id).order_by(ticket_count.desc(), User.id).limit(limit).all()
        return [
            TopPurchaserResponse(user=user_summary(u), ticket_count=c, total_spent=to_money(spent))
            for u, c, spent in rows
        ]

    def daily_report(self, day: date) -> str:
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1) - timedelta(microseconds=1)
        sold = self.tickets_sold_between(start, end)
        revenue = self.revenue_between(start, end)
        return f"Date: {day.isoformat()}, Tickets Sold: {sold}, Revenue: ${revenue:.2f}"

    # ================================
    # QR codes
    # ================================
    def generate_qr_code_image(self, ticket: Ticket, size: int = 10) -> bytes:
        """PNG QR code carrying the ticket number"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=size,
            border=4,
        )
        qr.add_data(ticket.ticket_number)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()
