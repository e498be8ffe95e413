"""
Configuración de pytest para tests

Mongo en memoria (mongomock-motor) y un reloj congelado que los tests
pueden avanzar, inyectados en los servicios igual que en producción.
"""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from petbnb.db import ensure_indexes
from petbnb.repositories import ActivityRepository, BookingRepository, CareRequestRepository
from petbnb.services import ActivityService, BookingService, ChatService, CooldownCache, CooldownGuard

START = datetime(2026, 3, 10, 9, 0, 0)


class FrozenClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client[f"petbnb_test_{ObjectId()}"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def owner_id():
    return str(ObjectId())


@pytest.fixture
def sitter_id():
    return str(ObjectId())


@pytest_asyncio.fixture
async def listing_id(db):
    res = await db.listings.insert_one({"title": "Cozy Home Boarding", "service_type": ["dog_boarding"]})
    return str(res.inserted_id)


@pytest.fixture
def chat(db, clock):
    return ChatService(db, clock=clock)


@pytest.fixture
def booking_service(db, chat, clock):
    return BookingService(BookingRepository(db), chat, clock=clock)


@pytest.fixture
def cooldown_cache():
    return CooldownCache()


@pytest.fixture
def guard(db, chat, cooldown_cache, clock):
    return CooldownGuard(CareRequestRepository(db), chat, cooldown_cache, clock=clock)


@pytest.fixture
def activity_service(db, clock):
    return ActivityService(ActivityRepository(db), clock=clock)


@pytest.fixture
def make_booking(booking_service, listing_id, owner_id, sitter_id, clock):
    """Crea una reserva pendiente; las fechas son días relativos a hoy"""
    async def _make(start_in_days: int = 2, nights: int = 3, **overrides):
        start = clock().replace(hour=10) + timedelta(days=start_in_days)
        data = dict(
            listing_id=listing_id,
            owner_id=owner_id,
            sitter_id=sitter_id,
            pet_ids=[str(ObjectId())],
            start_date=start,
            end_date=start + timedelta(days=nights),
            special_requests="Luna needs her pills at 8pm",
        )
        data.update(overrides)
        return await booking_service.create_booking(**data)
    return _make


@pytest_asyncio.fixture
async def conversation(chat, owner_id, sitter_id):
    return await chat.get_or_create_owner_conversation(owner_id, sitter_id)


@pytest_asyncio.fixture
async def api(db, clock):
    """Cliente HTTP con la base de datos, el reloj y el usuario sustituidos"""
    from petbnb.main import app
    from petbnb.db import get_db
    from petbnb.dependencies import get_clock
    from petbnb.security import get_current_user

    current = {}

    async def override_db():
        return db

    async def override_user():
        return current

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_user] = override_user
    app.state.limiter = None
    app.state.cooldown_cache = CooldownCache()

    def login(user_id: str):
        current.clear()
        current["id"] = user_id

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.login = login
        yield ac

    app.dependency_overrides.clear()
