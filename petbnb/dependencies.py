"""
Construcción de los servicios por petición.

Nada de instancias globales: cada servicio recibe su base de datos, su
reloj y (para el cooldown) la caché que vive en ``app.state``. Los tests
sustituyen ``get_db``/``get_clock`` con ``app.dependency_overrides``.
"""
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from .db import get_db
from .repositories import ActivityRepository, BookingRepository, CareRequestRepository
from .services import ActivityService, BookingService, ChatService, CooldownCache, CooldownGuard
from .utils import Clock, utcnow


def get_clock() -> Clock:
    return utcnow


def get_chat_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ChatService:
    return ChatService(db, clock=clock)


def get_booking_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    chat: ChatService = Depends(get_chat_service),
    clock: Clock = Depends(get_clock),
) -> BookingService:
    return BookingService(BookingRepository(db), chat, clock=clock)


def get_cooldown_cache(request: Request) -> CooldownCache:
    cache = getattr(request.app.state, "cooldown_cache", None)
    if cache is None:
        cache = request.app.state.cooldown_cache = CooldownCache()
    return cache


def get_cooldown_guard(
    db: AsyncIOMotorDatabase = Depends(get_db),
    chat: ChatService = Depends(get_chat_service),
    cache: CooldownCache = Depends(get_cooldown_cache),
    clock: Clock = Depends(get_clock),
) -> CooldownGuard:
    return CooldownGuard(CareRequestRepository(db), chat, cache, clock=clock)


def get_activity_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ActivityService:
    return ActivityService(ActivityRepository(db), clock=clock)
