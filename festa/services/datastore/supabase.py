"""
Supabase Datastore Implementation

Production implementation over the Supabase PostgREST API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - SUPABASE_URL and SUPABASE_KEY must be set in environment
    - Tables usuarios_festa, comidas_festa and reservas_festa must exist;
      unique constraints on usuarios_festa(telefone) and
      reservas_festa(usuario_id, comida_id) turn races into HTTP 409

API Documentation:
    https://postgrest.org/en/stable/references/api/tables_views.html

Version: 1.0.0
"""

import logging
from typing import Any, Optional

import httpx

from festa.core.config import get_settings
from festa.core.exceptions import DatastoreError, DuplicateRowError
from festa.models import (
    FOODS_TABLE,
    RESERVATIONS_TABLE,
    USERS_TABLE,
    Comida,
    Reserva,
    Usuario,
)
from festa.services.datastore.base import BaseDatastore

logger = logging.getLogger(__name__)

RETURN_REPRESENTATION = {"Prefer": "return=representation"}

# Postgres "invalid_text_representation", e.g. "abc" compared with a bigint id
INVALID_TEXT_REPRESENTATION = "22P02"


def eq(value: Any) -> str:
    """PostgREST equality filter."""
    return f"eq.{value}"


class SupabaseDatastore(BaseDatastore):
    """
    Supabase REST datastore.

    Every method is one HTTP round trip filtered on the remote table.
    Writes ask for ``return=representation`` so the affected rows come back
    in the response body; an empty list means the filter matched nothing.

    Example:
        >>> store = SupabaseDatastore()
        >>> foods = await store.list_foods()
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the REST client.

        Args:
            client: Pre-built client (tests pass one with a mock transport)

        Raises:
            ValueError: If SUPABASE_URL or SUPABASE_KEY is not configured
        """
        settings = get_settings()

        if client is None:
            if not settings.supabase_url or not settings.supabase_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_KEY are required outside development mode. "
                    "Set them in your .env file or environment variables."
                )
            client = httpx.AsyncClient(
                base_url=settings.supabase_rest_url,
                headers={
                    "apikey": settings.supabase_key,
                    "Authorization": f"Bearer {settings.supabase_key}",
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=settings.supabase_timeout_seconds,
            )

        self._client = client
        logger.info("SupabaseDatastore initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "supabase"

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> list[dict[str, Any]]:
        """
        Send one request to a table and return the decoded rows.

        Raises:
            DuplicateRowError: On HTTP 409 (unique constraint)
            DatastoreError: On any other HTTP or transport failure
        """
        logger.debug(f"Supabase: {method} {table} {params or ''}")

        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.error(f"Supabase: {method} {table} failed ({e.response.status_code}) - {detail}")
            if e.response.status_code == 409:
                raise DuplicateRowError(
                    f"{table}: unique constraint violated",
                    status_code=409,
                    detail=detail,
                ) from e
            raise DatastoreError(
                f"{table}: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                detail=detail,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Supabase: transport error on {method} {table} - {e}")
            raise DatastoreError(f"{table}: {e.__class__.__name__}", detail=str(e)) from e

        if not response.content:
            return []

        try:
            data = response.json()
        except ValueError as e:
            raise DatastoreError(f"{table}: invalid JSON response", detail=response.text) from e

        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        return data

    # =========================================================================
    # USERS
    # =========================================================================

    async def find_users_by_phone(self, telefone: str) -> list[Usuario]:
        rows = await self._request("GET", USERS_TABLE, params={"telefone": eq(telefone)})
        return [Usuario.from_row(row) for row in rows]

    async def find_users_by_name(self, nome: str) -> list[Usuario]:
        rows = await self._request("GET", USERS_TABLE, params={"nome": eq(nome)})
        return [Usuario.from_row(row) for row in rows]

    async def create_user(self, nome: str, telefone: str) -> Usuario:
        rows = await self._request(
            "POST",
            USERS_TABLE,
            json=[{"nome": nome, "telefone": telefone}],
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise DatastoreError(f"{USERS_TABLE}: insert returned no row")
        return Usuario.from_row(rows[0])

    async def list_users(self) -> list[Usuario]:
        rows = await self._request("GET", USERS_TABLE)
        return [Usuario.from_row(row) for row in rows]

    # =========================================================================
    # FOODS
    # =========================================================================

    async def list_foods(self) -> list[Comida]:
        rows = await self._request("GET", FOODS_TABLE, params={"order": "nome.asc"})
        return [Comida.from_row(row) for row in rows]

    async def get_food(self, comida_id: Any) -> Optional[Comida]:
        try:
            rows = await self._request("GET", FOODS_TABLE, params={"id": eq(comida_id)})
        except DatastoreError as e:
            if e.status_code == 400 and INVALID_TEXT_REPRESENTATION in (e.detail or ""):
                logger.info(f"Supabase: food id {comida_id!r} is not a valid id")
                return None
            raise
        return Comida.from_row(rows[0]) if rows else None

    async def compare_and_set_quantity(
        self,
        comida_id: Any,
        expected: int,
        new_quantity: int,
    ) -> Optional[Comida]:
        # The quantity filter makes the PATCH a single conditional update.
        rows = await self._request(
            "PATCH",
            FOODS_TABLE,
            params={"id": eq(comida_id), "quantidade": eq(expected)},
            json={"quantidade": new_quantity},
            headers=RETURN_REPRESENTATION,
        )
        return Comida.from_row(rows[0]) if rows else None

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    async def list_reservations(self) -> list[Reserva]:
        rows = await self._request("GET", RESERVATIONS_TABLE)
        return [Reserva.from_row(row) for row in rows]

    async def find_reservation(
        self,
        usuario_id: Any,
        comida_id: Any,
    ) -> Optional[Reserva]:
        rows = await self._request(
            "GET",
            RESERVATIONS_TABLE,
            params={"usuario_id": eq(usuario_id), "comida_id": eq(comida_id), "limit": 1},
        )
        return Reserva.from_row(rows[0]) if rows else None

    async def create_reservation(self, usuario_id: Any, comida_id: Any) -> Reserva:
        rows = await self._request(
            "POST",
            RESERVATIONS_TABLE,
            json=[Reserva.new_row(usuario_id, comida_id)],
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise DatastoreError(f"{RESERVATIONS_TABLE}: insert returned no row")
        return Reserva.from_row(rows[0])

    async def delete_reservation(self, reserva_id: Any) -> Optional[Reserva]:
        rows = await self._request(
            "DELETE",
            RESERVATIONS_TABLE,
            params={"id": eq(reserva_id)},
            headers=RETURN_REPRESENTATION,
        )
        return Reserva.from_row(rows[0]) if rows else None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Verify Supabase connectivity.

        Reads a single food row to check credentials and reachability.
        """
        try:
            await self._request("GET", FOODS_TABLE, params={"select": "id", "limit": 1})
            logger.debug("Supabase: Health check passed")
            return True
        except DatastoreError as e:
            logger.error(f"Supabase: Health check failed - {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
