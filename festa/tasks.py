"""
Celery Tasks
Background updates of the reservation sheet.
"""

import logging
import time

from festa.celery_worker import celery_app
from festa.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True
)
def export_reservation_to_excel(self, reservation_data: dict) -> dict:
    """
    Add a reservation to the sheet.

    Args:
        reservation_data: Reservation, guest and food fields

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    reserva_id = reservation_data.get("reserva_id", "unknown")

    logger.info(f"Task {task_id}: exporting reservation #{reserva_id}")
    start_time = time.time()

    result = ExcelManager().export_reservation(reservation_data)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"Task {task_id}: reservation #{reserva_id} exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: reservation #{reserva_id} failed - {result['message']}")

    return result


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True
)
def remove_reservation_from_excel(self, reservation_data: dict) -> dict:
    """Mark a cancelled reservation in the sheet."""
    task_id = self.request.id
    reserva_id = reservation_data.get("reserva_id", "unknown")

    result = ExcelManager().remove_reservation(reservation_data)
    result["task_id"] = task_id

    if not result["success"]:
        logger.warning(f"Task {task_id}: removing reservation #{reserva_id} failed - {result['message']}")

    return result
