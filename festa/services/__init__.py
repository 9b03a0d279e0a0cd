"""
                        Services Module

Business logic on top of the hybrid datastore architecture.
The datastore has a Mock (development) and a Supabase (production)
implementation.

Services:
    - datastore: Remote party tables (mock or Supabase REST)
    - reservations: Registration, food list, reserve and cancel
    - excel_manager: File-locked reservation sheet
"""

from festa.services.excel_manager import ExcelManager
from festa.services.reservations import ReservationService, get_reservation_service

__all__ = ["ExcelManager", "ReservationService", "get_reservation_service"]
