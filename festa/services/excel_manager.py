"""
Excel File Manager with Concurrency Control

Process-safe reservation sheet for the party host:
- One row per reservation (who brings/takes what)
- Cancelled reservations stay as rows with status "cancelada"

Celery workers may run in parallel and retry, so an export can reach the
sheet after the cancellation of the same reservation. The cancelled row is
kept as a tombstone and later exports of that reserva_id are ignored.
Every read-modify-write of the sheet happens under a file lock.

Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from festa.core.config import get_settings

logger = logging.getLogger(__name__)

STATUS_RESERVED = "reservada"
STATUS_CANCELLED = "cancelada"


class ExcelManager:
    """File-locked reservation sheet."""

    RESERVATION_COLUMNS = [
        "reserva_id",
        "status",
        "data_reserva",
        "usuario_id",
        "usuario_nome",
        "telefone",
        "comida_id",
        "comida_nome",
        "quantidade",
        "quantidade_restante",
        "exported_at",
    ]

    def __init__(self, file_path: Optional[Path] = None, lock_timeout: Optional[int] = None):
        settings = get_settings()
        self.file_path = Path(file_path or settings.excel_path)
        self.lock_path = self.file_path.with_name(self.file_path.name + ".lock")
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.excel_lock_timeout

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        data_dir = self.file_path.parent
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    def _load_or_create_df(self) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if self.file_path.exists():
            try:
                df = pd.read_excel(self.file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {self.file_path}: {e}")
                return pd.DataFrame(columns=self.RESERVATION_COLUMNS)
            if "status" not in df.columns:
                df["status"] = STATUS_RESERVED
            return df
        return pd.DataFrame(columns=self.RESERVATION_COLUMNS)

    def _save(self, df: pd.DataFrame) -> None:
        df.to_excel(str(self.file_path), index=False, engine="openpyxl")

    @staticmethod
    def _rows_of(df: pd.DataFrame, reserva_id: Any) -> pd.Series:
        return df["reserva_id"].astype(str) == str(reserva_id)

    def _append(self, df: pd.DataFrame, row: dict[str, Any]) -> pd.DataFrame:
        new_df = pd.DataFrame([row], columns=self.RESERVATION_COLUMNS)
        return new_df if df.empty else pd.concat([df, new_df], ignore_index=True)

    def export_reservation(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Write a reservation row. A row with the same reserva_id is replaced,
        unless that reservation was already cancelled.
        """
        self._ensure_data_dir()

        reserva_id = data.get("reserva_id")
        result = {
            "success": False,
            "message": "",
            "reserva_id": reserva_id,
            "exported_at": None,
            "skipped": False,
        }

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                logger.debug(f"Lock acquired for Reservation #{reserva_id}")

                df = self._load_or_create_df()
                existing = df[self._rows_of(df, reserva_id)]

                if (existing["status"] == STATUS_CANCELLED).any():
                    logger.info(f"Reservation #{reserva_id} already cancelled, export skipped")
                    result["success"] = True
                    result["skipped"] = True
                    result["message"] = f"Reservation #{reserva_id} already cancelled"
                    return result

                export_time = datetime.now().isoformat()
                df = self._append(df[~self._rows_of(df, reserva_id)], {
                    "reserva_id": reserva_id,
                    "status": STATUS_RESERVED,
                    "data_reserva": data.get("data_reserva", export_time),
                    "usuario_id": data.get("usuario_id"),
                    "usuario_nome": data.get("usuario_nome"),
                    "telefone": data.get("telefone"),
                    "comida_id": data.get("comida_id"),
                    "comida_nome": data.get("comida_nome"),
                    "quantidade": data.get("quantidade", 1),
                    "quantidade_restante": data.get("quantidade_restante"),
                    "exported_at": export_time,
                })
                self._save(df)

                logger.info(f"Reservation #{reserva_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Reservation #{reserva_id} exported"
                result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for Reservation #{reserva_id}")

        return result

    def remove_reservation(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Mark a reservation as cancelled.

        When the export has not arrived yet, a tombstone row is written so
        the late export is ignored.
        """
        self._ensure_data_dir()

        reserva_id = data.get("reserva_id")
        result = {
            "success": False,
            "message": "",
            "reserva_id": reserva_id,
            "removed": 0,
        }

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                df = self._load_or_create_df()
                matches = self._rows_of(df, reserva_id)
                removed = int((matches & (df["status"] != STATUS_CANCELLED)).sum())

                if matches.any():
                    df.loc[matches, "status"] = STATUS_CANCELLED
                    df.loc[matches, "quantidade_restante"] = data.get("quantidade_restante")
                else:
                    df = self._append(df, {
                        "reserva_id": reserva_id,
                        "status": STATUS_CANCELLED,
                        "data_reserva": data.get("data_reserva"),
                        "usuario_id": data.get("usuario_id"),
                        "usuario_nome": data.get("usuario_nome"),
                        "telefone": data.get("telefone"),
                        "comida_id": data.get("comida_id"),
                        "comida_nome": data.get("comida_nome"),
                        "quantidade": data.get("quantidade", 1),
                        "quantidade_restante": data.get("quantidade_restante"),
                        "exported_at": datetime.now().isoformat(),
                    })
                self._save(df)

                logger.info(f"Reservation #{reserva_id} cancelled in Excel ({removed} active rows)")

                result["success"] = True
                result["removed"] = removed
                result["message"] = f"Reservation #{reserva_id} cancelled"

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for Reservation #{reserva_id}")

        return result

    def get_all_reservations(self, include_cancelled: bool = False) -> list[dict[str, Any]]:
        """Get reservation rows from Excel, active ones unless asked otherwise."""
        if not self.file_path.exists():
            return []
        df = self._load_or_create_df()
        if not include_cancelled:
            df = df[df["status"] != STATUS_CANCELLED]
        return df.to_dict("records")

    def clear_all(self) -> bool:
        """Delete the sheet and its lock file."""
        for f in [self.file_path, self.lock_path]:
            if f.exists():
                f.unlink()
        logger.info("Reservation sheet cleared")
        return True
