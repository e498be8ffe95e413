from datetime import datetime, timedelta
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId

from .config import get_settings
from .db import get_db
from .utils import to_id, utcnow

settings = get_settings()
ALGO = "HS256"
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.auth_token_url)


def create_access_token(user_id: str, expires_hours: Optional[int] = None) -> str:
    expire: datetime = utcnow() + timedelta(hours=expires_hours or settings.jwt_expires_hours)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
        sub = payload.get("sub")
        if not sub:
            raise HTTPException(status_code=401, detail="Token inválido")
        return str(sub)
    except JWTError:
        raise HTTPException(status_code=401, detail="Token inválido")


# Los perfiles (colección users) los escribe el servicio de autenticación; aquí solo se leen
async def get_current_user(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not ObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Token inválido")
    doc = await db.users.find_one({"_id": ObjectId(user_id)})
    if not doc:
        raise HTTPException(status_code=401, detail="Usuario no encontrado")
    return to_id(doc)
