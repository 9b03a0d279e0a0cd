"""
Reservation Service

Business rules of the party food list:
    - Guests register or log in with name + phone
    - The food list shows who reserved each dish (first names) and whether
      the caller holds it
    - A guest reserves at most one unit of each dish
    - A dish is never reserved beyond its available quantity

The datastore has no transactions, so quantity changes go through a
conditional update (``compare_and_set_quantity``) that is retried against
fresh reads, and a reservation insert that fails after the decrement gives
the unit back. Calls on the same dish inside this process are also
serialized with a per-dish ``asyncio.Lock``.

Version: 1.0.0
"""

import asyncio
import logging
import weakref
from functools import lru_cache
from typing import Any, Optional

from kombu.exceptions import OperationalError

from festa.core.config import get_settings
from festa.core.exceptions import (
    AlreadyReservedError,
    DatastoreError,
    DuplicateRowError,
    FoodNotFoundError,
    IdentityConflictError,
    NotAuthenticatedError,
    ReservationConflictError,
    ReservationNotFoundError,
    SoldOutError,
)
from festa.models import Comida, Reserva, Usuario, first_name
from festa.services.datastore import BaseDatastore, get_datastore
from festa.services.excel_manager import STATUS_CANCELLED, STATUS_RESERVED

logger = logging.getLogger(__name__)


class ReservationService:
    """
    Registration, listing, reservation and cancellation on top of a datastore.

    Attributes:
        datastore: Remote tables (mock or Supabase)
        max_retries: Conditional-update attempts before answering 409
        export_enabled: Queue reservation sheet updates after each change
    """

    def __init__(
        self,
        datastore: BaseDatastore,
        max_retries: int = 5,
        export_enabled: bool = False,
    ):
        self.datastore = datastore
        self.max_retries = max_retries
        self.export_enabled = export_enabled
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, comida_id: Any) -> asyncio.Lock:
        """Lock of an existing food, dropped once no request holds or awaits it."""
        key = str(comida_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # =========================================================================
    # IDENTITY
    # =========================================================================

    async def register(self, nome: str, telefone: str) -> Usuario:
        """
        Register a guest, or log in an existing one.

        Raises:
            IdentityConflictError: Phone taken under another name, or name
                taken under another phone
        """
        by_phone = await self.datastore.find_users_by_phone(telefone)
        by_name = await self.datastore.find_users_by_name(nome)

        if by_phone:
            return self._login(by_phone[0], nome, telefone)

        if by_name:
            raise IdentityConflictError(
                "Já existe um usuário com este nome, mas usando outro telefone."
            )

        try:
            usuario = await self.datastore.create_user(nome, telefone)
        except DuplicateRowError:
            # Another request registered this phone between our read and insert.
            logger.info(f"Registration race on phone {telefone}, re-reading")
            by_phone = await self.datastore.find_users_by_phone(telefone)
            if not by_phone:
                raise
            return self._login(by_phone[0], nome, telefone)

        logger.info(f"User #{usuario.id} registered: {usuario.nome}")
        return usuario

    def _login(self, usuario: Usuario, nome: str, telefone: str) -> Usuario:
        if not usuario.matches_name(nome):
            raise IdentityConflictError(
                f"Já existe um usuário com este telefone ({telefone}), mas nome diferente."
            )
        logger.info(f"User #{usuario.id} logged in")
        return usuario

    async def authenticate(self, nome: str, telefone: str) -> Usuario:
        """
        Resolve the caller from name + phone.

        Raises:
            NotAuthenticatedError: Unknown phone or name mismatch
        """
        logger.debug(f"Looking up user with phone {telefone}")
        usuarios = await self.datastore.find_users_by_phone(telefone)

        if not usuarios:
            logger.info("User not found")
            raise NotAuthenticatedError()

        usuario = usuarios[0]
        if not usuario.matches_name(nome):
            logger.info("User name does not match")
            raise NotAuthenticatedError()

        logger.debug(f"Authenticated user: {usuario.nome} (id {usuario.id})")
        return usuario

    # =========================================================================
    # FOOD LIST
    # =========================================================================

    async def list_foods_for(self, usuario: Usuario) -> list[dict[str, Any]]:
        """
        Foods ordered by name, each annotated with:
            reservados: first names of the guests holding it
            reservado: whether ``usuario`` holds it
        """
        comidas, reservas, usuarios = await asyncio.gather(
            self.datastore.list_foods(),
            self.datastore.list_reservations(),
            self.datastore.list_users(),
        )

        nomes = {u.id: u.nome for u in usuarios if u.id is not None and u.nome}

        result = []
        for comida in comidas:
            if comida.id is None:
                logger.warning(f"Food without id: {comida.to_dict()}")
                continue
            da_comida = [r for r in reservas if r.comida_id == comida.id]
            result.append({
                **comida.to_dict(),
                "reservados": [first_name(nomes.get(r.usuario_id)) for r in da_comida],
                "reservado": any(r.usuario_id == usuario.id for r in da_comida),
            })
        return result

    # =========================================================================
    # RESERVE / CANCEL
    # =========================================================================

    async def reserve(self, usuario: Usuario, comida_id: Any) -> tuple[Reserva, Comida]:
        """
        Reserve one unit of a food for ``usuario``.

        Returns:
            The new reservation and the food after the decrement

        Raises:
            FoodNotFoundError, AlreadyReservedError, SoldOutError,
            ReservationConflictError, DatastoreError
        """
        comida = await self._get_food(comida_id)

        async with self._lock_for(comida.id):
            comida = await self._get_food(comida.id)

            if await self.datastore.find_reservation(usuario.id, comida.id):
                raise AlreadyReservedError()

            if not comida.is_available:
                raise SoldOutError()

            updated = await self._adjust_quantity(comida, -1)

            try:
                reserva = await self.datastore.create_reservation(usuario.id, comida.id)
            except DuplicateRowError:
                updated = await self._give_back(updated)
                raise AlreadyReservedError()
            except DatastoreError:
                await self._give_back(updated)
                raise

        logger.info(
            f"User #{usuario.id} reserved food #{comida.id} "
            f"({updated.quantidade} left)"
        )
        self._queue_export(STATUS_RESERVED, usuario, updated, reserva)
        return reserva, updated

    async def cancel(self, usuario: Usuario, comida_id: Any) -> Comida:
        """
        Cancel the caller's reservation of a food.

        The reservation row is deleted first; the unit is returned only if
        this call actually removed it. When the unit cannot be returned the
        reservation is inserted again and the error propagates.

        Returns:
            The food after the increment

        Raises:
            FoodNotFoundError, ReservationNotFoundError,
            ReservationConflictError, DatastoreError
        """
        comida = await self._get_food(comida_id)

        async with self._lock_for(comida.id):
            comida = await self._get_food(comida.id)

            reserva = await self.datastore.find_reservation(usuario.id, comida.id)
            if reserva is None:
                raise ReservationNotFoundError()

            removed = await self.datastore.delete_reservation(reserva.id)
            if removed is None:
                raise ReservationNotFoundError()

            try:
                updated = await self._adjust_quantity(comida, removed.quantidade)
            except (DatastoreError, ReservationConflictError, FoodNotFoundError):
                await self._restore_reservation(removed)
                raise

        logger.info(
            f"User #{usuario.id} cancelled food #{comida.id} "
            f"({updated.quantidade} left)"
        )
        self._queue_export(STATUS_CANCELLED, usuario, updated, removed)
        return updated

    async def _get_food(self, comida_id: Any) -> Comida:
        comida = await self.datastore.get_food(comida_id)
        if comida is None:
            raise FoodNotFoundError()
        return comida

    async def _adjust_quantity(self, comida: Comida, delta: int) -> Comida:
        """
        Apply ``delta`` to a food's quantity with a conditional update.

        Re-reads and retries when another request changed the row first.

        Raises:
            SoldOutError: If the change would take the quantity below zero
            FoodNotFoundError: If the food disappeared meanwhile
            ReservationConflictError: If every attempt lost the race
        """
        current = comida
        for attempt in range(1, self.max_retries + 1):
            new_quantity = current.quantidade + delta
            if new_quantity < 0:
                raise SoldOutError()

            updated = await self.datastore.compare_and_set_quantity(
                current.id, current.quantidade, new_quantity
            )
            if updated is not None:
                return updated

            logger.info(
                f"Quantity of food #{current.id} changed concurrently "
                f"(attempt {attempt}/{self.max_retries})"
            )
            refreshed = await self.datastore.get_food(current.id)
            if refreshed is None:
                raise FoodNotFoundError()
            current = refreshed

        raise ReservationConflictError()

    async def _give_back(self, comida: Comida) -> Comida:
        """Return the unit taken by a reservation whose insert failed."""
        try:
            return await self._adjust_quantity(comida, 1)
        except (DatastoreError, ReservationConflictError, FoodNotFoundError):
            logger.exception(f"Could not give back unit of food #{comida.id}")
            raise

    async def _restore_reservation(self, reserva: Reserva) -> None:
        """Insert again a cancelled reservation whose unit could not be returned."""
        try:
            await self.datastore.create_reservation(reserva.usuario_id, reserva.comida_id)
        except DatastoreError:
            logger.exception(f"Could not restore reservation #{reserva.id}")
            raise
        logger.warning(f"Cancellation of reservation #{reserva.id} rolled back")

    # =========================================================================
    # EXPORT
    # =========================================================================

    def _queue_export(
        self,
        status: str,
        usuario: Usuario,
        comida: Comida,
        reserva: Optional[Reserva],
    ) -> None:
        if not self.export_enabled or reserva is None:
            return

        # Imported here so the Celery app is only built when exports are on.
        from festa.tasks import export_reservation_to_excel, remove_reservation_from_excel

        payload = {
            "reserva_id": reserva.id,
            "usuario_id": usuario.id,
            "usuario_nome": usuario.nome,
            "telefone": usuario.telefone,
            "comida_id": comida.id,
            "comida_nome": comida.nome,
            "quantidade": reserva.quantidade,
            "data_reserva": reserva.data_reserva,
            "quantidade_restante": comida.quantidade,
            "status": status,
        }
        task = export_reservation_to_excel if status == STATUS_RESERVED else remove_reservation_from_excel

        try:
            task.delay(payload)
        except OperationalError as e:
            # The reservation is already stored; only the sheet lags behind.
            logger.warning(f"Could not queue sheet update for reservation #{reserva.id}: {e}")


@lru_cache()
def get_reservation_service() -> ReservationService:
    """Process-wide service bound to the configured datastore."""
    settings = get_settings()
    return ReservationService(
        datastore=get_datastore(),
        max_retries=settings.reservation_max_retries,
        export_enabled=settings.excel_export_enabled,
    )
