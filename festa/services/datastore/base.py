"""
Datastore Abstract Base Class

Defines the interface contract for the remote party database.
Both MockDatastore and SupabaseDatastore must implement these methods,
so the reservation service behaves identically against either one.

The remote store owns all state. Implementations translate each call into
row filters on the three tables and never cache rows between calls.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from festa.models import Comida, Reserva, Usuario


class BaseDatastore(ABC):
    """
    Abstract base class for the party datastore.

    Consistency contract:
        - ``compare_and_set_quantity`` applies only when the stored quantity
          still equals ``expected``; it returns None otherwise.
        - ``create_user`` raises DuplicateRowError on a taken phone.
        - ``create_reservation`` raises DuplicateRowError when the guest
          already holds the dish.
        - ``delete_reservation`` returns the removed row, or None if another
          request removed it first.

    Example:
        >>> store = get_datastore()
        >>> users = await store.find_users_by_phone("11999990000")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the datastore provider.

        Returns:
            str: Provider name (e.g., "mock", "supabase")
        """
        pass

    # =========================================================================
    # USERS
    # =========================================================================

    @abstractmethod
    async def find_users_by_phone(self, telefone: str) -> list[Usuario]:
        """Users whose phone equals ``telefone`` exactly."""
        pass

    @abstractmethod
    async def find_users_by_name(self, nome: str) -> list[Usuario]:
        """Users whose name equals ``nome`` exactly."""
        pass

    @abstractmethod
    async def create_user(self, nome: str, telefone: str) -> Usuario:
        """
        Insert a new user.

        Raises:
            DuplicateRowError: If the phone is already registered
        """
        pass

    @abstractmethod
    async def list_users(self) -> list[Usuario]:
        pass

    # =========================================================================
    # FOODS
    # =========================================================================

    @abstractmethod
    async def list_foods(self) -> list[Comida]:
        """All foods ordered by name ascending."""
        pass

    @abstractmethod
    async def get_food(self, comida_id: Any) -> Optional[Comida]:
        pass

    @abstractmethod
    async def compare_and_set_quantity(
        self,
        comida_id: Any,
        expected: int,
        new_quantity: int,
    ) -> Optional[Comida]:
        """
        Conditionally update a food's quantity.

        Args:
            comida_id: Food to update
            expected: Quantity the caller read
            new_quantity: Quantity to store

        Returns:
            The updated food, or None if the stored quantity was no
            longer ``expected`` (or the food vanished)
        """
        pass

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    @abstractmethod
    async def list_reservations(self) -> list[Reserva]:
        pass

    @abstractmethod
    async def find_reservation(
        self,
        usuario_id: Any,
        comida_id: Any,
    ) -> Optional[Reserva]:
        pass

    @abstractmethod
    async def create_reservation(self, usuario_id: Any, comida_id: Any) -> Reserva:
        """
        Insert a one-unit reservation.

        Raises:
            DuplicateRowError: If the guest already holds this food
        """
        pass

    @abstractmethod
    async def delete_reservation(self, reserva_id: Any) -> Optional[Reserva]:
        pass

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the datastore.

        Returns:
            bool: True if the datastore answers
        """
        pass

    async def close(self) -> None:
        """Release network resources. No-op by default."""
        return None
