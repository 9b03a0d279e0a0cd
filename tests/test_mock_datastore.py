import pytest

from festa.core.exceptions import DuplicateRowError
from festa.services.datastore import MockDatastore
from festa.services.datastore.mock import DEFAULT_FOODS


async def test_seeds_default_menu_sorted_by_name():
    store = MockDatastore()

    foods = await store.list_foods()

    assert len(foods) == len(DEFAULT_FOODS)
    assert [f.nome for f in foods] == sorted(f["nome"] for f in DEFAULT_FOODS)


async def test_phone_is_unique(datastore):
    await datastore.create_user("Maria", "123")

    with pytest.raises(DuplicateRowError):
        await datastore.create_user("Outra Maria", "123")


async def test_find_users_by_exact_name(datastore):
    await datastore.create_user("Maria", "123")

    assert len(await datastore.find_users_by_name("Maria")) == 1
    assert await datastore.find_users_by_name("maria") == []


async def test_get_food_accepts_string_ids(datastore):
    comida = await datastore.get_food("1")

    assert comida is not None
    assert comida.nome == "Coxinha"
    assert await datastore.get_food("999") is None


async def test_compare_and_set_applies_only_on_expected_quantity(datastore):
    assert await datastore.compare_and_set_quantity(1, expected=5, new_quantity=4) is None
    assert (await datastore.get_food(1)).quantidade == 2

    updated = await datastore.compare_and_set_quantity(1, expected=2, new_quantity=1)

    assert updated.quantidade == 1
    assert (await datastore.get_food(1)).quantidade == 1


async def test_returned_rows_are_copies(datastore):
    comida = await datastore.get_food(1)
    comida.quantidade = 100

    assert (await datastore.get_food(1)).quantidade == 2


async def test_one_reservation_per_user_and_food(datastore):
    usuario = await datastore.create_user("Maria", "123")
    await datastore.create_reservation(usuario.id, 1)

    with pytest.raises(DuplicateRowError):
        await datastore.create_reservation(usuario.id, "1")

    reserva = await datastore.find_reservation(usuario.id, 1)
    assert reserva.quantidade == 1


async def test_delete_reservation_only_once(datastore):
    usuario = await datastore.create_user("Maria", "123")
    reserva = await datastore.create_reservation(usuario.id, 1)

    assert (await datastore.delete_reservation(reserva.id)).id == reserva.id
    assert await datastore.delete_reservation(reserva.id) is None
    assert await datastore.list_reservations() == []
