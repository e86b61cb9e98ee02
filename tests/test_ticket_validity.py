from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from urban_transit.enums import TicketStatus, TicketType
from urban_transit.tickets.validity import (
    can_be_used_for_transit,
    generate_ticket_number,
    is_currently_valid,
    is_expired,
    use_ticket,
    validity_window,
)

T0 = datetime(2025, 3, 10, 8, 0, 0)


def _ticket(ticket_type=TicketType.RIDE, status=TicketStatus.ACTIVE, used_date=None, start=T0):
    valid_from, valid_until = validity_window(ticket_type, start)
    return SimpleNamespace(
        ticket_type=ticket_type,
        status=status,
        valid_from=valid_from,
        valid_until=valid_until,
        used_date=used_date,
        price="2.50",
        ticket_number="RD-20250310080000-ABCD",
    )


@pytest.mark.parametrize("ticket_type, days", [
    (TicketType.RIDE, 1),
    (TicketType.MONTHLY, 30),
    (TicketType.YEARLY, 365),
])
def test_validity_window_matches_ticket_type(ticket_type, days):
    valid_from, valid_until = validity_window(ticket_type, T0)
    assert valid_from == T0
    assert valid_until == T0 + timedelta(days=days)


@pytest.mark.parametrize("ticket_type", list(TicketType))
def test_window_bounds_are_exclusive(ticket_type):
    ticket = _ticket(ticket_type)
    assert not is_currently_valid(ticket, ticket.valid_from)
    assert not is_currently_valid(ticket, ticket.valid_until)
    assert not can_be_used_for_transit(ticket, ticket.valid_from)
    assert not can_be_used_for_transit(ticket, ticket.valid_until)


@pytest.mark.parametrize("ticket_type", list(TicketType))
def test_active_ticket_valid_at_midpoint(ticket_type):
    ticket = _ticket(ticket_type)
    midpoint = ticket.valid_from + (ticket.valid_until - ticket.valid_from) / 2
    assert is_currently_valid(ticket, midpoint)
    assert can_be_used_for_transit(ticket, midpoint)


def test_one_microsecond_inside_the_window_is_valid():
    ticket = _ticket()
    assert is_currently_valid(ticket, ticket.valid_from + timedelta(microseconds=1))
    assert is_currently_valid(ticket, ticket.valid_until - timedelta(microseconds=1))


@pytest.mark.parametrize("status", [TicketStatus.USED, TicketStatus.EXPIRED])
def test_non_active_status_is_never_valid(status):
    ticket = _ticket(TicketType.MONTHLY, status=status)
    assert not is_currently_valid(ticket, T0 + timedelta(days=1))
    assert not can_be_used_for_transit(ticket, T0 + timedelta(days=1))


def test_ride_use_sets_used_date_and_status():
    ticket = _ticket()
    used_at = T0 + timedelta(hours=1)

    result = use_ticket(ticket, used_at)

    assert result is ticket
    assert ticket.status == TicketStatus.USED
    assert ticket.used_date == used_at


def test_used_ride_can_never_be_used_again():
    ticket = _ticket()
    use_ticket(ticket, T0 + timedelta(hours=1))

    # Even at an instant before the recorded use
    for moment in (T0 + timedelta(minutes=30), T0 + timedelta(hours=2), T0 + timedelta(hours=23)):
        assert not can_be_used_for_transit(ticket, moment)
        assert not is_currently_valid(ticket, moment)


def test_ride_with_used_date_but_active_status_is_not_valid():
    ticket = _ticket(used_date=T0 + timedelta(hours=1))
    assert not is_currently_valid(ticket, T0 + timedelta(hours=2))
    assert not can_be_used_for_transit(ticket, T0 + timedelta(hours=2))


def test_second_use_of_ride_is_a_no_op():
    ticket = _ticket()
    first = T0 + timedelta(hours=1)
    use_ticket(ticket, first)

    use_ticket(ticket, T0 + timedelta(hours=2))

    assert ticket.status == TicketStatus.USED
    assert ticket.used_date == first


@pytest.mark.parametrize("ticket_type", [TicketType.MONTHLY, TicketType.YEARLY])
def test_pass_use_never_changes_state(ticket_type):
    ticket = _ticket(ticket_type)
    for days in (1, 5, 10, 29):
        use_ticket(ticket, T0 + timedelta(days=days))
        assert ticket.status == TicketStatus.ACTIVE
        assert ticket.used_date is None
        assert can_be_used_for_transit(ticket, T0 + timedelta(days=days, hours=1))


def test_use_outside_window_leaves_ride_untouched():
    ticket = _ticket()
    use_ticket(ticket, T0 + timedelta(days=2))
    assert ticket.status == TicketStatus.ACTIVE
    assert ticket.used_date is None


def test_predicates_are_total_on_malformed_tickets():
    broken = SimpleNamespace(ticket_type="BOGUS", status=None, valid_from=None, valid_until="later", used_date=None)
    assert is_currently_valid(broken, T0) is False
    assert can_be_used_for_transit(broken, T0) is False
    assert is_expired(broken, T0) is False
    assert use_ticket(broken, T0) is broken

    assert is_currently_valid(object(), T0) is False
    assert can_be_used_for_transit(None, T0) is False


def test_predicates_accept_plain_string_enums():
    ticket = _ticket()
    ticket.ticket_type = "RIDE"
    ticket.status = "ACTIVE"
    assert is_currently_valid(ticket, T0 + timedelta(hours=1))


def test_is_expired_only_after_valid_until():
    ticket = _ticket()
    assert not is_expired(ticket, ticket.valid_until)
    assert is_expired(ticket, ticket.valid_until + timedelta(seconds=1))

    ticket.status = TicketStatus.USED
    assert not is_expired(ticket, ticket.valid_until + timedelta(days=1))


def test_past_active_ticket_is_not_currently_valid():
    ticket = _ticket(start=T0 - timedelta(days=3))
    assert ticket.status == TicketStatus.ACTIVE
    assert not is_currently_valid(ticket, T0)


@pytest.mark.parametrize("ticket_type, prefix", [
    (TicketType.RIDE, "RD"),
    (TicketType.MONTHLY, "MO"),
    (TicketType.YEARLY, "YR"),
])
def test_ticket_number_format(ticket_type, prefix):
    number = generate_ticket_number(ticket_type, T0)
    head, stamp, tail = number.split("-")
    assert head == prefix
    assert stamp == "20250310080000"
    assert len(tail) == 4
    assert tail == tail.upper()


def test_ticket_numbers_differ_within_the_same_second():
    numbers = {generate_ticket_number(TicketType.RIDE, T0) for _ in range(20)}
    assert len(numbers) > 1
