"""
Pydantic Schemas for Request/Response Validation

Field names follow the remote tables (Portuguese) so the JSON the frontend
sends and receives matches the rows it already knows.

Version: 1.0.0
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class IdentityRequest(BaseModel):
    """
    Name + phone pair sent with every call.

    Both fields are optional at the schema level so a missing value is
    reported with the app's own 400 message instead of a 422.
    """
    model_config = ConfigDict(extra="ignore")

    nome: Optional[str] = Field(None, examples=["Maria Silva"])
    telefone: Optional[str] = Field(None, examples=["11999990000"])

    @field_validator("nome", "telefone", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str):
            return v
        return v if v.strip() else None

    @property
    def is_complete(self) -> bool:
        return bool(self.nome) and bool(self.telefone)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class UsuarioResponse(BaseModel):
    id: Any
    nome: str
    telefone: str


class RegisterResponse(BaseModel):
    """Response after registering or logging in."""
    success: bool = True
    usuario: UsuarioResponse


class ComidaUsuario(BaseModel):
    """A food row annotated for the caller. Extra table columns pass through."""
    model_config = ConfigDict(extra="allow")

    id: Any
    nome: str
    quantidade: int
    reservados: List[str]
    reservado: bool


class ComidasResponse(BaseModel):
    comidas: List[ComidaUsuario]


class ReservaResponse(BaseModel):
    id: Any
    usuario_id: Any
    comida_id: Any
    quantidade: int
    data_reserva: Optional[str] = None


class ComidaResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Any
    nome: str
    quantidade: int


class ReserveResponse(BaseModel):
    """Response after reserving one unit."""
    success: bool = True
    reserva: ReservaResponse
    comida: ComidaResponse


class CancelResponse(BaseModel):
    """Response after cancelling a reservation."""
    success: bool = True
    comida: ComidaResponse


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    datastore: str
    redis: str
    timestamp: datetime
