"""
Tests de las pestañas current/upcoming/past
"""
from datetime import date, datetime, timedelta
import itertools

import pytest

from petbnb.schemas.booking import BookingCategory, BookingStatus
from petbnb.services import categorize_booking, group_bookings

TODAY = date(2026, 3, 10)


def _booking(status, start_offset, end_offset, **extra):
    start = datetime.combine(TODAY + timedelta(days=start_offset), datetime.min.time()).replace(hour=10)
    end = datetime.combine(TODAY + timedelta(days=end_offset), datetime.min.time()).replace(hour=18)
    return {"id": f"{status}-{start_offset}-{end_offset}", "status": status, "start_date": start, "end_date": end, **extra}


@pytest.mark.parametrize("status,start,end,expected", [
    ("confirmed", -1, 2, BookingCategory.current),
    ("in_progress", 0, 0, BookingCategory.current),
    ("confirmed", -3, 0, BookingCategory.current),
    ("pending", -1, 2, BookingCategory.upcoming),
    ("pending", 5, 8, BookingCategory.upcoming),
    ("confirmed", 1, 3, BookingCategory.upcoming),
    ("in_progress", 2, 4, BookingCategory.upcoming),
    ("completed", -1, 2, BookingCategory.past),
    ("cancelled", 5, 8, BookingCategory.past),
    ("confirmed", -5, -1, BookingCategory.past),
    ("pending", -5, -1, BookingCategory.past),
    ("in_progress", -5, -1, BookingCategory.past),
])
def test_categorize(status, start, end, expected):
    assert categorize_booking(_booking(status, start, end), TODAY) == expected


def test_end_date_time_of_day_is_ignored():
    """Una reserva que termina hoy a las 08:00 sigue siendo actual todo el día"""
    b = _booking("confirmed", -2, 0)
    b["end_date"] = b["end_date"].replace(hour=8)
    assert categorize_booking(b, TODAY) == BookingCategory.current


def test_tabs_partition_every_booking():
    """Cada reserva cae en exactamente una pestaña y los contadores suman el total"""
    offsets = range(-4, 5)
    bookings = [
        _booking(status.value, s, e)
        for status in BookingStatus
        for s, e in itertools.product(offsets, offsets)
        if s <= e
    ]

    groups = group_bookings(bookings, TODAY)

    assert set(groups) == set(BookingCategory)
    assert sum(len(g) for g in groups.values()) == len(bookings)
    ids = [b["id"] for g in groups.values() for b in g]
    assert len(ids) == len(set(ids))


def test_group_empty():
    groups = group_bookings([], TODAY)
    assert all(items == [] for items in groups.values())


@pytest.mark.asyncio
async def test_booking_tabs_for_user(booking_service, make_booking, owner_id, sitter_id, conversation, clock):
    upcoming = await make_booking(start_in_days=3)
    current = await make_booking(start_in_days=-1)
    await booking_service.accept_booking(current["id"], sitter_id, conversation["id"])
    cancelled = await make_booking(start_in_days=7)
    await booking_service.cancel_booking(cancelled["id"], owner_id)

    tabs = await booking_service.booking_tabs(owner_id)

    assert [b["id"] for b in tabs[BookingCategory.current]] == [current["id"]]
    assert [b["id"] for b in tabs[BookingCategory.upcoming]] == [upcoming["id"]]
    assert [b["id"] for b in tabs[BookingCategory.past]] == [cancelled["id"]]
    # el cuidador ve las mismas pestañas
    sitter_tabs = await booking_service.booking_tabs(sitter_id)
    assert {c: len(v) for c, v in sitter_tabs.items()} == {c: len(v) for c, v in tabs.items()}
