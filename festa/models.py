"""
Row Models

Typed views of the three remote tables the party app uses:
    - usuarios_festa: guests identified by name + phone
    - comidas_festa: dishes with the number of units still available
    - reservas_festa: one unit of a dish held by one guest

Rows come back from the datastore as plain dicts; these dataclasses parse
them and turn them back into JSON-ready dicts. Unknown columns on a food row
are kept in ``extra`` so the API passes them through untouched.

Version: 1.0.0
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

USERS_TABLE = "usuarios_festa"
FOODS_TABLE = "comidas_festa"
RESERVATIONS_TABLE = "reservas_festa"

RESERVATION_UNITS = 1


def first_name(full_name: Optional[str]) -> str:
    """Text before the first space, as shown on the food list."""
    return (full_name or "").split(" ")[0]


@dataclass
class Usuario:
    """A guest row."""
    id: Any
    nome: str
    telefone: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Usuario":
        return cls(
            id=row.get("id"),
            nome=row.get("nome") or "",
            telefone=row.get("telefone") or "",
        )

    def matches_name(self, nome: str) -> bool:
        """Case-insensitive name comparison used for login."""
        return bool(self.nome) and self.nome.lower() == nome.lower()

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "nome": self.nome, "telefone": self.telefone}


@dataclass
class Comida:
    """
    A food row.

    Attributes:
        id: Row id (may be missing on malformed rows)
        nome: Dish name
        quantidade: Units still available for reservation
        extra: Any other columns the table carries
    """
    id: Any
    nome: str
    quantidade: int
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Comida":
        extra = {k: v for k, v in row.items() if k not in ("id", "nome", "quantidade")}
        return cls(
            id=row.get("id"),
            nome=row.get("nome") or "",
            quantidade=int(row.get("quantidade") or 0),
            extra=extra,
        )

    @property
    def is_available(self) -> bool:
        return self.quantidade > 0

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "id": self.id, "nome": self.nome, "quantidade": self.quantidade}


@dataclass
class Reserva:
    """A reservation row linking one guest to one unit of one dish."""
    id: Any
    usuario_id: Any
    comida_id: Any
    quantidade: int = RESERVATION_UNITS
    data_reserva: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Reserva":
        return cls(
            id=row.get("id"),
            usuario_id=row.get("usuario_id"),
            comida_id=row.get("comida_id"),
            quantidade=int(row.get("quantidade") or RESERVATION_UNITS),
            data_reserva=row.get("data_reserva"),
        )

    @staticmethod
    def new_row(usuario_id: Any, comida_id: Any) -> dict[str, Any]:
        """Insert payload for a fresh reservation."""
        return {
            "usuario_id": usuario_id,
            "comida_id": comida_id,
            "quantidade": RESERVATION_UNITS,
            "data_reserva": datetime.now(timezone.utc).isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "usuario_id": self.usuario_id,
            "comida_id": self.comida_id,
            "quantidade": self.quantidade,
            "data_reserva": self.data_reserva,
        }
