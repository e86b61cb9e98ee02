from decimal import Decimal

import pytest

from urban_transit.enums import TicketType
from urban_transit.exceptions import Conflict, InvalidRequest, NotFound, PricingUnavailable
from urban_transit.pricing.schemas import PricingCreate, PricingUpdate
from urban_transit.pricing.service import PricingService


def test_create_pricing(db):
    pricing = PricingService.create_pricing(db, PricingCreate(
        ticket_type=TicketType.MONTHLY, price=Decimal("75.00"), description="30 days"
    ))
    assert pricing.price == Decimal("75.00")
    assert pricing.active
    assert PricingService.current_price(db, TicketType.MONTHLY) == Decimal("75.00")


def test_create_pricing_twice_conflicts(db, pricing):
    with pytest.raises(Conflict):
        PricingService.create_pricing(db, PricingCreate(ticket_type=TicketType.RIDE, price=Decimal("3.00")))


@pytest.mark.parametrize("price", [Decimal("0"), Decimal("-1.50")])
def test_price_must_be_positive(db, price):
    with pytest.raises(InvalidRequest):
        PricingService.create_pricing(db, PricingCreate(ticket_type=TicketType.RIDE, price=price))


def test_update_pricing(db, pricing):
    updated = PricingService.update_pricing(db, TicketType.RIDE, PricingUpdate(price=Decimal("2.75")))
    assert updated.price == Decimal("2.75")
    assert updated.description == "Single ride"
    assert PricingService.price_response(db, TicketType.RIDE).price == Decimal("2.75")


def test_update_unknown_pricing(db):
    with pytest.raises(NotFound):
        PricingService.update_pricing(db, TicketType.YEARLY, PricingUpdate(price=Decimal("900.00")))


def test_inactive_pricing_is_not_for_sale(db, pricing):
    PricingService.set_status(db, TicketType.YEARLY, False)

    assert [p.ticket_type for p in PricingService.active_pricing(db)] == [TicketType.RIDE, TicketType.MONTHLY]
    with pytest.raises(PricingUnavailable):
        PricingService.current_price(db, TicketType.YEARLY)
    with pytest.raises(NotFound):
        PricingService.get_active_pricing(db, TicketType.YEARLY)


def test_price_response(db, pricing):
    response = PricingService.price_response(db, TicketType.YEARLY)
    assert response.display_name == "Yearly Pass"
    assert response.validity_days == 365


def test_summary_lists_every_type(db):
    PricingService.create_pricing(db, PricingCreate(ticket_type=TicketType.RIDE, price=Decimal("2.50")))
    PricingService.create_pricing(db, PricingCreate(ticket_type=TicketType.MONTHLY, price=Decimal("75.00"),
                                                    active=False))

    summary = PricingService.summary(db)
    assert [item.ticket_type for item in summary.items] == list(TicketType)
    assert summary.total_count == 2
    assert summary.active_count == 1
    assert summary.items[2].price is None
