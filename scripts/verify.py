"""
Reservation Sheet Verification Script

Checks the exported reservation sheet for duplicate reservations.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import sys
from datetime import datetime

import pandas as pd

from festa.core.config import get_settings
from festa.services.excel_manager import STATUS_CANCELLED


def verify_excel() -> bool:
    """Verify the reservation sheet after a party rush."""
    excel_file = get_settings().excel_path

    print("=" * 60)
    print("RESERVATION SHEET REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {excel_file}")
    print("=" * 60)

    if not excel_file.exists():
        print("\nSheet not found!")
        print("   Start a Celery worker and make a reservation first.")
        return False

    df = pd.read_excel(excel_file, engine="openpyxl")
    print(f"\nRows: {len(df)}")

    if "status" in df.columns:
        cancelled = df["status"] == STATUS_CANCELLED
        print(f"Cancelled: {int(cancelled.sum())}")
        df = df[~cancelled]
    print(f"Active reservations: {len(df)}")

    required = ["reserva_id", "usuario_id", "comida_id", "comida_nome"]
    missing = [col for col in required if col not in df.columns]
    if missing:
        print(f"\nMissing Columns: {missing}")
        return False

    ok = True

    duplicated_ids = int(df["reserva_id"].duplicated().sum())
    if duplicated_ids:
        print(f"\n{duplicated_ids} duplicate reservation IDs found!")
        ok = False
    else:
        print("No duplicate reservation IDs")

    doubles = df[df.duplicated(["usuario_id", "comida_id"], keep=False)]
    if not doubles.empty:
        print(f"\n{len(doubles)} rows where a guest holds a dish twice:")
        print(doubles[["usuario_nome", "comida_nome"]].to_string(index=False))
        ok = False
    else:
        print("One unit per guest and dish")

    print("\nPER DISH:")
    print("-" * 60)
    if len(df) > 0:
        summary = df.groupby("comida_nome")["usuario_nome"].apply(
            lambda names: ", ".join(str(n).split(" ")[0] for n in names)
        )
        print(summary.to_string())

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE" if ok else "VERIFICATION FAILED")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
