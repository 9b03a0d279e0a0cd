import pytest

from festa.core.exceptions import DatastoreError
from festa.services.datastore import MockDatastore
from festa.services.reservations import ReservationService, get_reservation_service


class BrokenDatastore(MockDatastore):
    async def find_users_by_phone(self, telefone):
        raise DatastoreError("usuarios_festa: HTTP 500", status_code=500)


@pytest.fixture
def broken_client():
    from fastapi.testclient import TestClient
    from festa.main import app

    service = ReservationService(BrokenDatastore())
    app.dependency_overrides[get_reservation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, user):
    response = client.post("/usuarios", json=user)
    assert response.status_code == 200
    return response.json()["usuario"]


# =============================================================================
# ROOT / HEALTH
# =============================================================================

def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["environment"] == "development"


def test_health_reports_datastore(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["datastore"] == "healthy"
    assert data["status"] in ("operational", "degraded")


def test_cors_preflight(client):
    response = client.options(
        "/usuarios",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


# =============================================================================
# /usuarios
# =============================================================================

@pytest.mark.parametrize("body", [{}, {"nome": "Maria"}, {"telefone": "1"}, {"nome": "  ", "telefone": "1"}])
def test_register_requires_name_and_phone(client, body):
    response = client.post("/usuarios", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Nome e telefone são obrigatórios"}


def test_register_without_body(client):
    response = client.post("/usuarios")

    assert response.status_code == 400
    assert response.json()["error"] == "Nome e telefone são obrigatórios"


def test_register_and_login(client, maria):
    created = register(client, maria)

    response = client.post("/usuarios", json={"nome": "maria silva", "telefone": maria["telefone"]})

    assert response.json() == {"success": True, "usuario": created}


def test_register_accepts_numeric_phone(client):
    usuario = register(client, {"nome": "Maria", "telefone": 11999990000})

    assert usuario["telefone"] == "11999990000"


def test_register_stores_fields_as_sent(client):
    usuario = register(client, {"nome": "Maria Silva ", "telefone": " 11999990000"})

    assert usuario["nome"] == "Maria Silva "
    assert usuario["telefone"] == " 11999990000"


def test_register_conflicts(client, maria):
    register(client, maria)

    other_name = client.post("/usuarios", json={"nome": "Ana", "telefone": maria["telefone"]})
    other_phone = client.post("/usuarios", json={"nome": maria["nome"], "telefone": "000"})

    assert other_name.status_code == 400
    assert "nome diferente" in other_name.json()["error"]
    assert other_phone.status_code == 400
    assert "outro telefone" in other_phone.json()["error"]


def test_register_remote_failure(broken_client, maria):
    response = broken_client.post("/usuarios", json=maria)

    assert response.status_code == 500
    assert response.json() == {"error": "Erro ao validar ou registrar usuário"}


# =============================================================================
# /comidas-usuario
# =============================================================================

def test_food_list_requires_registered_user(client, maria):
    response = client.post("/comidas-usuario", json=maria)

    assert response.status_code == 400
    assert response.json() == {"error": "Usuário não autenticado corretamente"}


def test_food_list_annotations(client, maria, joao):
    register(client, maria)
    register(client, joao)
    client.post("/comidas/1/reservar", json=joao)

    response = client.post("/comidas-usuario", json=maria)

    assert response.status_code == 200
    comidas = {c["nome"]: c for c in response.json()["comidas"]}
    assert comidas["Coxinha"]["reservados"] == ["João"]
    assert comidas["Coxinha"]["reservado"] is False
    assert comidas["Coxinha"]["quantidade"] == 1
    assert comidas["Refrigerante"]["categoria"] == "bebida"


def test_food_list_remote_failure(broken_client, maria):
    response = broken_client.post("/comidas-usuario", json=maria)

    assert response.status_code == 500
    assert response.json() == {"error": "Erro ao buscar comidas e reservas"}


# =============================================================================
# /comidas/{id}/reservar
# =============================================================================

def test_reserve(client, maria):
    usuario = register(client, maria)

    response = client.post("/comidas/1/reservar", json=maria)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["reserva"]["usuario_id"] == usuario["id"]
    assert data["reserva"]["quantidade"] == 1
    assert data["comida"]["quantidade"] == 1


def test_reserve_twice(client, maria):
    register(client, maria)
    client.post("/comidas/1/reservar", json=maria)

    response = client.post("/comidas/1/reservar", json=maria)

    assert response.status_code == 400
    assert response.json() == {"error": "Você já reservou esta comida"}


def test_reserve_sold_out(client, maria):
    register(client, maria)

    response = client.post("/comidas/3/reservar", json=maria)

    assert response.status_code == 400
    assert response.json() == {"error": "Comida esgotada"}


def test_reserve_unknown_food(client, maria):
    register(client, maria)

    response = client.post("/comidas/999/reservar", json=maria)

    assert response.status_code == 400
    assert response.json() == {"error": "Comida não encontrada"}


@pytest.mark.parametrize("action", ["reservar", "cancelar"])
def test_non_numeric_food_id_is_not_found(client, maria, action):
    register(client, maria)

    response = client.post(f"/comidas/abc/{action}", json=maria)

    assert response.status_code == 400
    assert response.json() == {"error": "Comida não encontrada"}


def test_reserve_with_wrong_name(client, maria):
    register(client, maria)

    response = client.post("/comidas/1/reservar", json={**maria, "nome": "Impostor"})

    assert response.status_code == 400
    assert response.json() == {"error": "Usuário não autenticado corretamente"}


def test_reserve_remote_failure(broken_client, maria):
    response = broken_client.post("/comidas/1/reservar", json=maria)

    assert response.status_code == 500
    assert response.json() == {"error": "Erro ao reservar comida"}


# =============================================================================
# /comidas/{id}/cancelar
# =============================================================================

def test_cancel(client, maria):
    register(client, maria)
    client.post("/comidas/2/reservar", json=maria)

    response = client.post("/comidas/2/cancelar", json=maria)

    assert response.status_code == 200
    assert response.json()["comida"]["quantidade"] == 1

    listing = client.post("/comidas-usuario", json=maria).json()["comidas"]
    bolo = next(c for c in listing if c["id"] == 2)
    assert bolo["reservado"] is False
    assert bolo["reservados"] == []


def test_cancel_without_reservation(client, maria):
    register(client, maria)

    response = client.post("/comidas/1/cancelar", json=maria)

    assert response.status_code == 400
    assert response.json() == {"error": "Reserva não encontrada"}


def test_cancel_requires_fields(client):
    response = client.post("/comidas/1/cancelar", json={"nome": "Maria"})

    assert response.status_code == 400


def test_cancel_remote_failure(broken_client, maria):
    response = broken_client.post("/comidas/1/cancelar", json=maria)

    assert response.status_code == 500
    assert response.json() == {"error": "Erro ao cancelar reserva"}
