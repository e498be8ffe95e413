# petbnb/utils.py
from typing import Any, Callable, Dict, Optional
from bson import ObjectId
from datetime import date, datetime, timezone

from .errors import NotFoundError

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Hora UTC naive, igual que la devuelve Mongo al leer."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_id(doc: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Convierte _id -> id (str) y todos los ObjectIds a strings.
    Si doc es None, devuelve {}.
    Los datetime se mantienen como datetime para que la lógica de
    fechas (pestañas, cooldown) pueda operar sobre ellos.
    """
    if doc is None:
        return {}
    d = dict(doc)

    # Convertir _id a id
    if "_id" in d:
        d["id"] = str(d.pop("_id"))

    for key, value in d.items():
        if isinstance(value, ObjectId):
            d[key] = str(value)
        elif isinstance(value, dict):
            d[key] = to_id(value)
        elif isinstance(value, list):
            d[key] = [
                str(item) if isinstance(item, ObjectId)
                else to_id(item) if isinstance(item, dict)
                else item
                for item in value
            ]

    return d


def to_object_id(value: str, field_name: str = "id") -> ObjectId:
    """
    Convierte un string a ObjectId con validación.
    Un id mal formado nunca puede existir, así que se trata como no encontrado.
    """
    if not ObjectId.is_valid(value):
        raise NotFoundError(f"Invalid {field_name}: {value}")
    return ObjectId(value)


def format_day(value: date | datetime) -> str:
    return value.strftime("%b %d, %Y")


def format_date_range(start: date | datetime, end: date | datetime) -> str:
    return f"{format_day(start)} - {format_day(end)}"
