"""
Rate limiting por endpoint usando el limiter de slowapi guardado en app.state
"""
from typing import Optional

from fastapi import Request, HTTPException
from limits import parse
from slowapi.util import get_remote_address


def apply_rate_limit(request: Request, limit: str, scope: str, user_id: Optional[str] = None):
    """
    Aplica rate limiting a un endpoint específico.
    Uso: apply_rate_limit(request, "5/minute", "bookings:create", current["id"])

    La clave es el usuario autenticado si se conoce; si no, la IP.
    Si el limiter no está configurado (por ejemplo, en tests), no hace nada.
    """
    limiter = getattr(request.app.state, "limiter", None)
    if limiter is None:
        return

    key = user_id or get_remote_address(request)
    if not limiter.limiter.hit(parse(limit), scope, key):
        raise HTTPException(
            status_code=429,
            detail=f"Demasiadas solicitudes. Límite: {limit}. Intenta más tarde."
        )
