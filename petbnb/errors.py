"""
Errores de dominio de PetBNB.

Los servicios lanzan estas excepciones tipadas en lugar de HTTPException;
la capa HTTP las traduce en una respuesta JSON con su ``status_code``
(ver ``main.py``). Los fallos de persistencia (PyMongoError) no se
envuelven: se propagan tal cual al llamador.
"""


class PetBNBError(Exception):
    status_code: int = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(PetBNBError):
    status_code = 404


class BookingNotFound(NotFoundError):
    pass


class ConversationNotFound(NotFoundError):
    pass


class ActorNotAllowed(PetBNBError):
    status_code = 403


class InvalidBooking(PetBNBError):
    status_code = 400


class InvalidTransition(PetBNBError):
    status_code = 409


class CareRequestOnCooldown(PetBNBError):
    status_code = 429

    def __init__(self, detail: str, remaining_minutes: int):
        super().__init__(detail)
        self.remaining_minutes = remaining_minutes


class MessageDeliveryError(PetBNBError):
    status_code = 502


class ActivityNotFound(NotFoundError):
    pass
