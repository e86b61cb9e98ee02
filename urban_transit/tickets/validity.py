"""
Ticket validity rules.

Pure functions over a ticket and an explicit ``now``. They work on any object
with ``ticket_type``, ``status``, ``valid_from``, ``valid_until`` and
``used_date`` attributes, so they are usable on ORM rows as well as on plain
test doubles.

A ticket is valid strictly inside its window: at exactly ``valid_from`` or
exactly ``valid_until`` it is not valid. The predicates never raise; a ticket
with missing or malformed fields is reported as not valid.
"""

import uuid
from datetime import datetime, timedelta
from typing import Tuple

from urban_transit.enums import TicketStatus, TicketType


def _ticket_type(ticket) -> TicketType:
    return TicketType(ticket.ticket_type)


def _status(ticket) -> TicketStatus:
    return TicketStatus(ticket.status)


def is_currently_valid(ticket, now: datetime) -> bool:
    """ACTIVE, strictly inside the window, and not a consumed ride"""
    try:
        if _status(ticket) != TicketStatus.ACTIVE:
            return False
        if not (ticket.valid_from < now < ticket.valid_until):
            return False
        if _ticket_type(ticket) == TicketType.RIDE and ticket.used_date is not None:
            return False
        return True
    except (AttributeError, TypeError, ValueError):
        return False


def can_be_used_for_transit(ticket, now: datetime) -> bool:
    """Rides may be used once, passes any number of times inside the window"""
    try:
        if _ticket_type(ticket) == TicketType.RIDE:
            return is_currently_valid(ticket, now) and ticket.used_date is None
        return is_currently_valid(ticket, now)
    except (AttributeError, TypeError, ValueError):
        return False


def use_ticket(ticket, now: datetime):
    """
    Consume a ride ticket.

    Eligible RIDE tickets get ``used_date=now`` and status USED. Everything
    else, including passes and rides that were already used, is returned
    untouched. The ticket is modified in place and returned.
    """
    try:
        ticket_type = _ticket_type(ticket)
    except (AttributeError, TypeError, ValueError):
        return ticket

    if ticket_type == TicketType.RIDE and can_be_used_for_transit(ticket, now):
        ticket.used_date = now
        ticket.status = TicketStatus.USED
    return ticket


def is_expired(ticket, now: datetime) -> bool:
    """True for ACTIVE tickets whose window closed before ``now``"""
    try:
        return _status(ticket) == TicketStatus.ACTIVE and ticket.valid_until < now
    except (AttributeError, TypeError, ValueError):
        return False


def validity_window(ticket_type: TicketType, start: datetime) -> Tuple[datetime, datetime]:
    return start, start + timedelta(days=TicketType(ticket_type).validity_days)


def generate_ticket_number(ticket_type: TicketType, now: datetime) -> str:
    """Build ``{PREFIX}-{yyyyMMddHHmmss}-{4 random hex chars}``"""
    try:
        prefix = TicketType(ticket_type).prefix
    except ValueError:
        prefix = "TK"
    random_part = uuid.uuid4().hex[:4].upper()
    return f"{prefix}-{now.strftime('%Y%m%d%H%M%S')}-{random_part}"
