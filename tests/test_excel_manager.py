import pytest
from filelock import FileLock

from festa.services.excel_manager import ExcelManager


@pytest.fixture
def manager(tmp_path):
    return ExcelManager(file_path=tmp_path / "sheets" / "reservas.xlsx", lock_timeout=1)


def reservation(reserva_id, comida="Coxinha"):
    return {
        "reserva_id": reserva_id,
        "usuario_id": 1,
        "usuario_nome": "Maria Silva",
        "telefone": "11999990000",
        "comida_id": 1,
        "comida_nome": comida,
        "quantidade": 1,
        "data_reserva": "2026-10-19T20:00:00+00:00",
        "quantidade_restante": 3,
    }


def test_export_creates_sheet(manager):
    result = manager.export_reservation(reservation(10))

    assert result["success"] is True
    rows = manager.get_all_reservations()
    assert len(rows) == 1
    assert rows[0]["comida_nome"] == "Coxinha"
    assert rows[0]["reserva_id"] == 10


def test_export_same_reservation_twice_keeps_one_row(manager):
    manager.export_reservation(reservation(10))
    manager.export_reservation(reservation(10, comida="Coxinha assada"))
    manager.export_reservation(reservation(11, comida="Bolo"))

    rows = manager.get_all_reservations()

    assert sorted(r["reserva_id"] for r in rows) == [10, 11]
    assert {r["comida_nome"] for r in rows} == {"Coxinha assada", "Bolo"}


def test_remove_reservation(manager):
    manager.export_reservation(reservation(10))
    manager.export_reservation(reservation(11))

    result = manager.remove_reservation({"reserva_id": 10, "quantidade_restante": 4})

    assert result["removed"] == 1
    assert [r["reserva_id"] for r in manager.get_all_reservations()] == [11]
    cancelled = [r for r in manager.get_all_reservations(include_cancelled=True) if r["reserva_id"] == 10]
    assert cancelled[0]["status"] == "cancelada"


def test_remove_unknown_reservation_leaves_tombstone(manager):
    result = manager.remove_reservation({"reserva_id": 99})

    assert result["success"] is True
    assert result["removed"] == 0
    assert manager.get_all_reservations() == []
    assert len(manager.get_all_reservations(include_cancelled=True)) == 1


def test_export_arriving_after_cancel_is_ignored(manager):
    manager.remove_reservation(reservation(10))

    result = manager.export_reservation(reservation(10))

    assert result["success"] is True
    assert result["skipped"] is True
    assert manager.get_all_reservations() == []
    rows = manager.get_all_reservations(include_cancelled=True)
    assert [(r["reserva_id"], r["status"]) for r in rows] == [(10, "cancelada")]


def test_lock_timeout_is_reported(manager):
    manager.file_path.parent.mkdir(parents=True, exist_ok=True)

    with FileLock(str(manager.lock_path)):
        result = ExcelManager(file_path=manager.file_path, lock_timeout=0.1).export_reservation(reservation(10))

    assert result["success"] is False
    assert "Lock timeout" in result["message"]


def test_clear_all(manager):
    manager.export_reservation(reservation(10))

    assert manager.clear_all() is True
    assert manager.get_all_reservations() == []
