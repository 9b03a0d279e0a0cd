from festa.models import Comida, Reserva, Usuario, first_name


def test_first_name_takes_text_before_first_space():
    assert first_name("Maria Silva Santos") == "Maria"
    assert first_name("Ana") == "Ana"
    assert first_name(None) == ""
    assert first_name("") == ""


def test_user_name_match_ignores_case():
    usuario = Usuario(id=1, nome="Maria Silva", telefone="1")
    assert usuario.matches_name("maria silva")
    assert usuario.matches_name("MARIA SILVA")
    assert not usuario.matches_name("Maria")


def test_user_without_name_never_matches():
    assert not Usuario.from_row({"id": 1, "telefone": "1"}).matches_name("")


def test_food_keeps_extra_columns():
    comida = Comida.from_row({"id": 3, "nome": "Suco", "quantidade": "4", "categoria": "bebida"})

    assert comida.quantidade == 4
    assert comida.is_available
    assert comida.to_dict() == {"id": 3, "nome": "Suco", "quantidade": 4, "categoria": "bebida"}


def test_food_with_null_quantity_is_unavailable():
    assert not Comida.from_row({"id": 1, "nome": "Pudim", "quantidade": None}).is_available


def test_new_reservation_row_is_one_unit_with_timestamp():
    row = Reserva.new_row(usuario_id=7, comida_id=2)

    assert row["usuario_id"] == 7
    assert row["comida_id"] == 2
    assert row["quantidade"] == 1
    assert row["data_reserva"].endswith("+00:00")
