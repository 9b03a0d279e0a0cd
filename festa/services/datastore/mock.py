"""
Mock Datastore Implementation

In-memory stand-in for the Supabase tables.
Used in development mode (ENV_MODE=development) and in the test suite.

Behavior:
    - Seeds a party menu unless ``foods`` is given
    - Enforces the same unique constraints as the real schema
      (one user per phone, one reservation per guest and dish)
    - Optional simulated latency (0 by default) so concurrency bugs
      surface the same way they would over the network
    - Returns copies, never live references, like rows off the wire

Version: 1.0.0
"""

import asyncio
import copy
import itertools
import logging
import random
from typing import Any, Optional

from festa.core.exceptions import DuplicateRowError
from festa.models import Comida, Reserva, Usuario
from festa.services.datastore.base import BaseDatastore

logger = logging.getLogger(__name__)

DEFAULT_FOODS = [
    {"nome": "Bolo de chocolate", "quantidade": 2},
    {"nome": "Brigadeiro", "quantidade": 5},
    {"nome": "Coxinha", "quantidade": 4},
    {"nome": "Pão de queijo", "quantidade": 3},
    {"nome": "Refrigerante", "quantidade": 6},
    {"nome": "Salada de frutas", "quantidade": 1},
]


class MockDatastore(BaseDatastore):
    """
    In-memory implementation of the party datastore.

    Attributes:
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> store = MockDatastore(foods=[{"nome": "Coxinha", "quantidade": 2}])
        >>> [c.nome for c in await store.list_foods()]
        ['Coxinha']
    """

    def __init__(
        self,
        foods: Optional[list[dict[str, Any]]] = None,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.min_latency = min_latency
        self.max_latency = max_latency

        self._ids = itertools.count(1)
        self._users: dict[int, dict[str, Any]] = {}
        self._foods: dict[Any, dict[str, Any]] = {}
        self._reservations: dict[int, dict[str, Any]] = {}

        for food in DEFAULT_FOODS if foods is None else foods:
            row = dict(food)
            row.setdefault("id", next(self._ids))
            self._foods[row["id"]] = row

        logger.info(f"MockDatastore initialized ({len(self._foods)} foods)")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency <= 0:
            # Still yield so concurrent callers interleave.
            await asyncio.sleep(0)
            return
        await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    # =========================================================================
    # USERS
    # =========================================================================

    async def find_users_by_phone(self, telefone: str) -> list[Usuario]:
        await self._simulate_latency()
        return [
            Usuario.from_row(copy.deepcopy(row))
            for row in self._users.values()
            if row["telefone"] == telefone
        ]

    async def find_users_by_name(self, nome: str) -> list[Usuario]:
        await self._simulate_latency()
        return [
            Usuario.from_row(copy.deepcopy(row))
            for row in self._users.values()
            if row["nome"] == nome
        ]

    async def create_user(self, nome: str, telefone: str) -> Usuario:
        await self._simulate_latency()
        if any(row["telefone"] == telefone for row in self._users.values()):
            raise DuplicateRowError(
                "duplicate key value violates unique constraint",
                status_code=409,
                detail=f"telefone={telefone}",
            )
        row = {"id": next(self._ids), "nome": nome, "telefone": telefone}
        self._users[row["id"]] = row
        logger.debug(f"Mock: user #{row['id']} created")
        return Usuario.from_row(dict(row))

    async def list_users(self) -> list[Usuario]:
        await self._simulate_latency()
        return [Usuario.from_row(dict(row)) for row in self._users.values()]

    # =========================================================================
    # FOODS
    # =========================================================================

    async def list_foods(self) -> list[Comida]:
        await self._simulate_latency()
        rows = sorted(self._foods.values(), key=lambda r: r.get("nome") or "")
        return [Comida.from_row(copy.deepcopy(row)) for row in rows]

    async def get_food(self, comida_id: Any) -> Optional[Comida]:
        await self._simulate_latency()
        row = self._foods.get(self._coerce_id(comida_id))
        return Comida.from_row(copy.deepcopy(row)) if row else None

    async def compare_and_set_quantity(
        self,
        comida_id: Any,
        expected: int,
        new_quantity: int,
    ) -> Optional[Comida]:
        await self._simulate_latency()
        row = self._foods.get(self._coerce_id(comida_id))
        # Check and write happen without awaiting in between.
        if row is None or int(row.get("quantidade") or 0) != expected:
            return None
        row["quantidade"] = new_quantity
        return Comida.from_row(copy.deepcopy(row))

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    async def list_reservations(self) -> list[Reserva]:
        await self._simulate_latency()
        return [Reserva.from_row(dict(row)) for row in self._reservations.values()]

    async def find_reservation(
        self,
        usuario_id: Any,
        comida_id: Any,
    ) -> Optional[Reserva]:
        await self._simulate_latency()
        for row in self._reservations.values():
            if row["usuario_id"] == usuario_id and row["comida_id"] == self._coerce_id(comida_id):
                return Reserva.from_row(dict(row))
        return None

    async def create_reservation(self, usuario_id: Any, comida_id: Any) -> Reserva:
        await self._simulate_latency()
        comida_id = self._coerce_id(comida_id)
        for row in self._reservations.values():
            if row["usuario_id"] == usuario_id and row["comida_id"] == comida_id:
                raise DuplicateRowError(
                    "duplicate key value violates unique constraint",
                    status_code=409,
                    detail=f"usuario_id={usuario_id}, comida_id={comida_id}",
                )
        row = {"id": next(self._ids), **Reserva.new_row(usuario_id, comida_id)}
        self._reservations[row["id"]] = row
        return Reserva.from_row(dict(row))

    async def delete_reservation(self, reserva_id: Any) -> Optional[Reserva]:
        await self._simulate_latency()
        row = self._reservations.pop(reserva_id, None)
        return Reserva.from_row(row) if row else None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: datastore health check passed")
        return True

    def _coerce_id(self, comida_id: Any) -> Any:
        """Path ids arrive as strings; seeded ids are ints."""
        if comida_id in self._foods:
            return comida_id
        try:
            as_int = int(comida_id)
        except (TypeError, ValueError):
            return comida_id
        return as_int
