# tests/storage/test_challenge_store.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from threading import Barrier

import pytest

from seedkey_backend.db.session import build_engine, build_session_factory, create_tables
from seedkey_backend.storage import SeedKeyStores, create_sql_stores
from seedkey_backend.storage.records import StoredChallenge
from seedkey_backend.utils.ids import ID_PREFIX_CHALLENGE, generate_id, generate_nonce


def _challenge(now: int, *, ttl_ms: int = 60_000, used: bool = False) -> StoredChallenge:
    return StoredChallenge(
        id=generate_id(ID_PREFIX_CHALLENGE),
        nonce=generate_nonce(),
        timestamp=now,
        domain="example.com",
        action="login",
        expires_at=now + ttl_ms,
        created_at=now,
        used=used,
    )


def test_save_and_find_round_trips_fields(stores: SeedKeyStores, clock) -> None:
    challenge = _challenge(clock())
    stores.challenges.save(challenge)

    found = stores.challenges.find_by_id(challenge.id)
    assert found == challenge


def test_find_unknown_challenge_returns_none(stores: SeedKeyStores) -> None:
    assert stores.challenges.find_by_id("chl_missing") is None


def test_bound_public_key_is_persisted(stores: SeedKeyStores, clock) -> None:
    challenge = replace(_challenge(clock()), public_key="pk-abc")
    stores.challenges.save(challenge)

    found = stores.challenges.find_by_id(challenge.id)
    assert found is not None
    assert found.public_key == "pk-abc"
    assert found.payload.to_wire()["publicKey"] == "pk-abc"


def test_mark_as_used_succeeds_exactly_once(stores: SeedKeyStores, clock) -> None:
    challenge = _challenge(clock())
    stores.challenges.save(challenge)

    assert stores.challenges.mark_as_used(challenge.id) is True
    assert stores.challenges.mark_as_used(challenge.id) is False
    found = stores.challenges.find_by_id(challenge.id)
    assert found is not None and found.used is True


def test_mark_as_used_on_unknown_id_is_false(stores: SeedKeyStores) -> None:
    assert stores.challenges.mark_as_used("chl_missing") is False


def test_save_is_upsert_and_never_resets_used(stores: SeedKeyStores, clock) -> None:
    challenge = _challenge(clock())
    stores.challenges.save(challenge)
    stores.challenges.mark_as_used(challenge.id)

    # Saving the stale unused copy again must not revive the challenge.
    stores.challenges.save(challenge)

    found = stores.challenges.find_by_id(challenge.id)
    assert found is not None and found.used is True
    assert stores.challenges.mark_as_used(challenge.id) is False


def test_save_existing_id_with_used_flag_marks_it_used(stores: SeedKeyStores, clock) -> None:
    challenge = _challenge(clock())
    stores.challenges.save(challenge)
    stores.challenges.save(replace(challenge, used=True))

    assert stores.challenges.is_nonce_used(challenge.nonce) is True


def test_is_nonce_used_tracks_only_claimed_challenges(stores: SeedKeyStores, clock) -> None:
    challenge = _challenge(clock())
    stores.challenges.save(challenge)

    assert stores.challenges.is_nonce_used(challenge.nonce) is False
    stores.challenges.mark_as_used(challenge.id)
    assert stores.challenges.is_nonce_used(challenge.nonce) is True
    assert stores.challenges.is_nonce_used(generate_nonce()) is False


def test_delete_removes_challenge(stores: SeedKeyStores, clock) -> None:
    challenge = _challenge(clock())
    stores.challenges.save(challenge)
    stores.challenges.delete(challenge.id)

    assert stores.challenges.find_by_id(challenge.id) is None
    # Deleting twice is harmless.
    stores.challenges.delete(challenge.id)


def test_cleanup_removes_only_expired(stores: SeedKeyStores, clock) -> None:
    short = _challenge(clock(), ttl_ms=1_000)
    long = _challenge(clock(), ttl_ms=600_000)
    stores.challenges.save(short)
    stores.challenges.save(long)

    clock.advance(1_000)
    # expires_at == now is not yet swept.
    assert stores.challenges.cleanup() == 0

    clock.advance(1)
    assert stores.challenges.cleanup() == 1
    assert stores.challenges.find_by_id(short.id) is None
    assert stores.challenges.find_by_id(long.id) is not None
    assert stores.challenges.cleanup() == 0


def test_expiry_boundary_is_inclusive(clock) -> None:
    challenge = _challenge(clock(), ttl_ms=10)
    assert challenge.is_expired(clock() + 9) is False
    assert challenge.is_expired(clock() + 10) is True


@pytest.mark.parametrize("workers", [8, 32])
def test_concurrent_claims_have_single_winner(
    memory_stores: SeedKeyStores, clock, workers: int
) -> None:
    challenge = _challenge(clock())
    memory_stores.challenges.save(challenge)
    barrier = Barrier(workers)

    def claim() -> bool:
        barrier.wait()
        return memory_stores.challenges.mark_as_used(challenge.id)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: claim(), range(workers)))

    assert results.count(True) == 1
    assert results.count(False) == workers - 1


def test_concurrent_sql_claims_have_single_winner(tmp_path, clock) -> None:
    # A file database gives every worker its own connection, unlike ``sqlite://``.
    engine = build_engine(f"sqlite:///{tmp_path / 'claims.db'}")
    create_tables(engine)
    stores = create_sql_stores(build_session_factory(engine), clock)
    challenge = _challenge(clock())
    stores.challenges.save(challenge)
    workers = 16
    barrier = Barrier(workers)

    def claim() -> bool:
        barrier.wait()
        return stores.challenges.mark_as_used(challenge.id)

    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda _: claim(), range(workers)))
    finally:
        engine.dispose()

    assert results.count(True) == 1
    assert results.count(False) == workers - 1
