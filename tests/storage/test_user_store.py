# tests/storage/test_user_store.py
from __future__ import annotations

import pytest

from seedkey_backend.core.errors import ConflictError, KeyExistsError
from seedkey_backend.storage import SeedKeyStores
from seedkey_backend.storage.records import KeyMetadata


def test_create_sets_ids_and_timestamps(stores: SeedKeyStores, clock) -> None:
    user = stores.users.create("pk-one", KeyMetadata(device_name="laptop"))

    assert user.id.startswith("user_")
    assert user.public_key.id.startswith("key_")
    assert user.public_key.public_key == "pk-one"
    assert user.public_key.device_name == "laptop"
    assert user.created_at == user.last_login == clock()
    assert user.public_key.added_at == user.public_key.last_used == clock()


def test_lookup_by_id_and_key(stores: SeedKeyStores) -> None:
    user = stores.users.create("pk-one")

    assert stores.users.find_by_id(user.id) == user
    assert stores.users.find_by_public_key("pk-one") == user
    assert stores.users.find_by_id("user_missing") is None
    assert stores.users.find_by_public_key("pk-missing") is None


def test_duplicate_key_raises_key_exists(stores: SeedKeyStores) -> None:
    stores.users.create("pk-one")

    with pytest.raises(KeyExistsError) as excinfo:
        stores.users.create("pk-one")

    assert isinstance(excinfo.value, ConflictError)
    assert excinfo.value.error_code == "USER_EXISTS"
    assert excinfo.value.status_code == 409


def test_public_key_exists(stores: SeedKeyStores) -> None:
    assert stores.users.public_key_exists("pk-one") is False
    stores.users.create("pk-one")
    assert stores.users.public_key_exists("pk-one") is True


def test_update_last_login_touches_user_and_key(stores: SeedKeyStores, clock) -> None:
    user = stores.users.create("pk-one")
    clock.advance(5_000)

    stores.users.update_last_login(user.id, "pk-one")

    updated = stores.users.find_by_id(user.id)
    assert updated is not None
    assert updated.last_login == clock()
    assert updated.public_key.last_used == clock()
    assert updated.created_at == user.created_at


def test_update_last_login_with_foreign_key_is_noop(stores: SeedKeyStores, clock) -> None:
    user = stores.users.create("pk-one")
    stores.users.create("pk-two")
    clock.advance(5_000)

    stores.users.update_last_login(user.id, "pk-two")

    assert stores.users.find_by_id(user.id) == user


def test_replace_public_key_swaps_key_with_new_id(stores: SeedKeyStores, clock) -> None:
    user = stores.users.create("pk-old")
    clock.advance(1_000)

    new_key = stores.users.replace_public_key(user.id, "pk-new", KeyMetadata(device_name="phone"))

    assert new_key is not None
    assert new_key.id != user.public_key.id
    assert new_key.public_key == "pk-new"
    assert new_key.device_name == "phone"
    assert new_key.added_at == clock()
    assert stores.users.find_by_public_key("pk-old") is None
    assert stores.users.public_key_exists("pk-old") is False
    found = stores.users.find_by_public_key("pk-new")
    assert found is not None and found.id == user.id
    # The old key can now be registered by someone else.
    assert stores.users.create("pk-old").id != user.id


def test_replace_public_key_for_unknown_user_returns_none(stores: SeedKeyStores) -> None:
    assert stores.users.replace_public_key("user_missing", "pk-new") is None
    assert stores.users.public_key_exists("pk-new") is False


def test_replace_with_key_owned_by_other_user_keeps_old_key(stores: SeedKeyStores) -> None:
    user = stores.users.create("pk-mine")
    stores.users.create("pk-theirs")

    with pytest.raises(KeyExistsError):
        stores.users.replace_public_key(user.id, "pk-theirs")

    still = stores.users.find_by_id(user.id)
    assert still is not None
    assert still.public_key == user.public_key
