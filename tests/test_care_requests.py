"""
Tests del cooldown de peticiones de cuidado (walk/feed/play)
"""
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from petbnb.errors import ActorNotAllowed, CareRequestOnCooldown, MessageDeliveryError
from petbnb.repositories import CareRequestRepository
from petbnb.schemas.care_request import CareRequestType
from petbnb.services import CooldownCache, CooldownGuard, resolve_last_request_at
from petbnb.services.care_requests import care_request_message

T0 = datetime(2026, 3, 10, 9, 0, 0)


class BrokenChat:
    async def get_or_create_owner_conversation(self, owner_id, sitter_id):
        return {"id": str(ObjectId())}

    async def send_message(self, *args, **kwargs):
        raise MessageDeliveryError("chat caído")


def test_resolve_prefers_latest():
    later = T0 + timedelta(minutes=4)
    assert resolve_last_request_at(T0, later) == later
    assert resolve_last_request_at(later, T0) == later
    assert resolve_last_request_at(T0, None) == T0
    assert resolve_last_request_at(None, later) == later
    assert resolve_last_request_at(None, None) is None


def test_message_templates():
    assert care_request_message(CareRequestType.walk) == "Could you please share a photo of the walk?"
    assert care_request_message(CareRequestType.feed) == "Could you please share a photo of feeding time?"
    assert care_request_message(CareRequestType.play) == "Could you please share a photo of playtime?"


@pytest.mark.asyncio
async def test_no_history_means_no_cooldown(guard):
    booking_id = str(ObjectId())
    assert await guard.is_on_cooldown(booking_id, CareRequestType.walk, T0) is False
    assert await guard.remaining_cooldown_minutes(booking_id, CareRequestType.walk, T0) == 0


@pytest.mark.asyncio
async def test_cooldown_window_edges(guard, make_booking, owner_id, clock):
    b = await make_booking()
    t = clock()
    await guard.issue_care_request(b, CareRequestType.walk, owner_id)

    assert await guard.is_on_cooldown(b["id"], "walk", t + timedelta(minutes=14, seconds=59)) is True
    assert await guard.is_on_cooldown(b["id"], "walk", t + timedelta(minutes=15, seconds=1)) is False
    assert await guard.remaining_cooldown_minutes(b["id"], "walk", t + timedelta(minutes=14, seconds=59)) == 1
    assert await guard.remaining_cooldown_minutes(b["id"], "walk", t + timedelta(hours=2)) == 0


@pytest.mark.asyncio
async def test_second_request_blocked_other_type_allowed(guard, make_booking, owner_id, clock):
    b = await make_booking()
    await guard.issue_care_request(b, CareRequestType.walk, owner_id)
    clock.advance(minutes=5)

    with pytest.raises(CareRequestOnCooldown) as exc:
        await guard.issue_care_request(b, CareRequestType.walk, owner_id)
    assert exc.value.remaining_minutes == 10
    assert await guard.remaining_cooldown_minutes(b["id"], CareRequestType.walk) == 10

    assert await guard.is_on_cooldown(b["id"], CareRequestType.feed) is False
    entry = await guard.issue_care_request(b, CareRequestType.feed, owner_id)
    assert entry["request_type"] == "feed"


@pytest.mark.asyncio
async def test_cooldown_is_per_booking(guard, make_booking, owner_id):
    b1 = await make_booking()
    b2 = await make_booking(start_in_days=10)
    await guard.issue_care_request(b1, CareRequestType.play, owner_id)
    assert await guard.is_on_cooldown(b2["id"], CareRequestType.play) is False


@pytest.mark.asyncio
async def test_issue_posts_message_and_logs(guard, chat, make_booking, owner_id, sitter_id, clock):
    b = await make_booking()
    entry = await guard.issue_care_request(b, CareRequestType.walk, owner_id)

    assert entry["booking_id"] == b["id"]
    assert entry["pet_owner_id"] == owner_id
    assert entry["pet_sitter_id"] == sitter_id
    assert entry["created_at"] == clock()

    msgs = await chat.list_messages(entry["conversation_id"])
    assert [m["id"] for m in msgs] == [entry["message_id"]]
    assert msgs[0]["content"] == "Could you please share a photo of the walk?"
    assert msgs[0]["metadata"]["type"] == "care_request"

    conv = await chat.get_conversation(entry["conversation_id"])
    assert conv["pet_owner_id"] == owner_id and conv["pet_sitter_id"] == sitter_id


@pytest.mark.asyncio
async def test_only_owner_can_issue(guard, make_booking, sitter_id, db):
    b = await make_booking()
    with pytest.raises(ActorNotAllowed):
        await guard.issue_care_request(b, CareRequestType.walk, sitter_id)
    assert await db.care_requests.count_documents({}) == 0


@pytest.mark.asyncio
async def test_failed_message_writes_no_log(db, make_booking, owner_id, cooldown_cache, clock):
    b = await make_booking()
    broken = CooldownGuard(CareRequestRepository(db), BrokenChat(), cooldown_cache, clock=clock)

    with pytest.raises(MessageDeliveryError):
        await broken.issue_care_request(b, CareRequestType.walk, owner_id)

    assert await db.care_requests.count_documents({}) == 0
    assert cooldown_cache.get(b["id"], CareRequestType.walk) is None
    assert await broken.is_on_cooldown(b["id"], CareRequestType.walk) is False


@pytest.mark.asyncio
async def test_persisted_log_survives_reload(db, chat, guard, make_booking, owner_id, clock):
    """Una caché nueva (recarga de página) sigue viendo el cooldown guardado"""
    b = await make_booking()
    await guard.issue_care_request(b, CareRequestType.feed, owner_id)
    clock.advance(minutes=3)

    fresh = CooldownGuard(CareRequestRepository(db), chat, CooldownCache(), clock=clock)
    assert await fresh.is_on_cooldown(b["id"], CareRequestType.feed) is True
    assert await fresh.remaining_cooldown_minutes(b["id"], CareRequestType.feed) == 12


@pytest.mark.asyncio
async def test_cache_later_than_log_wins(db, guard, cooldown_cache, make_booking, owner_id, sitter_id):
    """Si la caché tiene una marca posterior a la del registro, manda la caché"""
    b = await make_booking()
    await db.care_requests.insert_one({
        "booking_id": b["id"],
        "pet_owner_id": owner_id,
        "pet_sitter_id": sitter_id,
        "request_type": "play",
        "conversation_id": str(ObjectId()),
        "message_id": str(ObjectId()),
        "created_at": T0,
    })
    cooldown_cache.record(b["id"], CareRequestType.play, T0 + timedelta(minutes=10))

    now = T0 + timedelta(minutes=12)
    # desde el registro quedarían 3 min; desde la caché, 13
    assert await guard.remaining_cooldown_minutes(b["id"], CareRequestType.play, now) == 13


@pytest.mark.asyncio
async def test_cooldown_status_lists_every_type(guard, make_booking, owner_id, clock):
    b = await make_booking()
    await guard.issue_care_request(b, CareRequestType.play, owner_id)
    clock.advance(minutes=1)

    status = {s["request_type"]: s for s in await guard.cooldown_status(b["id"])}

    assert set(status) == set(CareRequestType)
    assert status[CareRequestType.play] == {"request_type": CareRequestType.play, "on_cooldown": True, "remaining_minutes": 14}
    assert status[CareRequestType.walk]["on_cooldown"] is False


@pytest.mark.asyncio
async def test_list_care_requests_newest_first(guard, make_booking, owner_id, clock):
    b = await make_booking()
    await guard.issue_care_request(b, CareRequestType.walk, owner_id)
    clock.advance(minutes=1)
    await guard.issue_care_request(b, CareRequestType.feed, owner_id)

    entries = await guard.list_care_requests(b["id"])
    assert [e["request_type"] for e in entries] == ["feed", "walk"]


def test_cache_keeps_latest():
    cache = CooldownCache()
    cache.record("b1", CareRequestType.walk, T0 + timedelta(minutes=5))
    cache.record("b1", "walk", T0)
    assert cache.get("b1", "walk") == T0 + timedelta(minutes=5)
