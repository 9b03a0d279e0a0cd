"""
Error types raised by the reservation flow.

Every ``FestaError`` carries the HTTP status and the user-facing message the
API returns as ``{"error": message}``. ``DatastoreError`` marks a failure of
the remote database and is turned into the route's generic 500 message.
"""

from typing import Optional

MISSING_IDENTITY_MESSAGE = "Nome e telefone são obrigatórios"


class FestaError(Exception):
    """Base class for errors reported back to the client."""

    status_code: int = 400
    default_message: str = "Requisição inválida"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingIdentityError(FestaError):
    default_message = MISSING_IDENTITY_MESSAGE


class IdentityConflictError(FestaError):
    """Name/phone pair clashes with an existing user."""


class NotAuthenticatedError(FestaError):
    default_message = "Usuário não autenticado corretamente"


class FoodNotFoundError(FestaError):
    default_message = "Comida não encontrada"


class SoldOutError(FestaError):
    default_message = "Comida esgotada"


class AlreadyReservedError(FestaError):
    default_message = "Você já reservou esta comida"


class ReservationNotFoundError(FestaError):
    default_message = "Reserva não encontrada"


class ReservationConflictError(FestaError):
    """Conditional update kept losing against concurrent requests."""

    status_code = 409
    default_message = "Muitas reservas simultâneas, tente novamente"


class ServerError(FestaError):
    status_code = 500
    default_message = "Erro interno do servidor"


# =============================================================================
# DATASTORE ERRORS
# =============================================================================

class DatastoreError(Exception):
    """
    Remote datastore call failed.

    Attributes:
        status_code: HTTP status returned by the datastore, if any
        detail: Response body or transport error text
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class DuplicateRowError(DatastoreError):
    """Insert violated a unique constraint."""
