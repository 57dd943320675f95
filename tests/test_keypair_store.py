# tests/test_keypair_store.py
"""Tests for KeypairStore and its storage backends."""

import asyncio
import json
import os
import stat

import pytest

from fhevm_coord.engine import Keypair, MockEngine
from fhevm_coord.errors import EngineNotReadyError, ProtocolError
from fhevm_coord.registry import JSONFileStorage, KeypairStore, MemoryStorage


class CountingEngine(MockEngine):
    """MockEngine that counts keypair generations."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.generated = 0

    def generate_keypair(self) -> Keypair:
        self.generated += 1
        return super().generate_keypair()


class RecordingStorage(MemoryStorage):
    """MemoryStorage that counts writes."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)


@pytest.fixture
def counting_engine(parameters, coprocessor, clock):
    return CountingEngine(31337, parameters, coprocessor, clock=clock)


class TestKeypair:

    def test_json_format(self):
        kp = Keypair(public_key="0xaa", private_key="0xbb")
        assert json.loads(kp.to_json()) == {"publicKey": "0xaa", "privateKey": "0xbb"}
        assert Keypair.from_json(kp.to_json()) == kp

    def test_repr_hides_private_key(self):
        kp = Keypair(public_key="0x" + "aa" * 32, private_key="0x" + "bb" * 32)
        assert "bb" not in repr(kp)

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"publicKey": "0xaa"}'])
    def test_from_json_rejects(self, raw):
        with pytest.raises(ProtocolError):
            Keypair.from_json(raw)


class TestKeypairStore:

    def test_load_empty(self):
        assert KeypairStore().load() is None

    def test_generates_once(self, counting_engine):
        store = KeypairStore()

        async def run():
            first = await store.ensure_keypair(counting_engine)
            second = await store.ensure_keypair(counting_engine)
            return first, second

        first, second = asyncio.run(run())
        assert first == second
        assert counting_engine.generated == 1
        assert store.load() == first

    def test_stored_under_fixed_key(self, engine):
        storage = MemoryStorage()
        keypair = asyncio.run(KeypairStore(storage).ensure_keypair(engine))
        assert Keypair.from_json(storage.get("fhevm-keypair")) == keypair

    def test_concurrent_first_callers(self, counting_engine):
        storage = RecordingStorage()
        store = KeypairStore(storage)

        async def run():
            return await asyncio.gather(
                *(store.ensure_keypair(counting_engine) for _ in range(5))
            )

        results = asyncio.run(run())
        assert len(set(results)) == 1
        assert counting_engine.generated == 1
        assert storage.writes == 1

    def test_existing_keypair_needs_no_engine(self, engine):
        storage = MemoryStorage()
        keypair = asyncio.run(KeypairStore(storage).ensure_keypair(engine))
        assert asyncio.run(KeypairStore(storage).ensure_keypair(None)) == keypair

    def test_no_engine(self):
        with pytest.raises(EngineNotReadyError):
            asyncio.run(KeypairStore().ensure_keypair(None))

    def test_clear(self, counting_engine):
        store = KeypairStore()
        first = asyncio.run(store.ensure_keypair(counting_engine))
        store.clear()
        assert store.load() is None
        second = asyncio.run(store.ensure_keypair(counting_engine))
        assert second != first
        assert counting_engine.generated == 2

    def test_corrupt_value_not_regenerated(self, engine):
        storage = MemoryStorage()
        storage.set("fhevm-keypair", "{corrupt")
        with pytest.raises(ProtocolError):
            asyncio.run(KeypairStore(storage).ensure_keypair(engine))
        assert storage.get("fhevm-keypair") == "{corrupt"


class TestJSONFileStorage:

    def test_survives_restart(self, tmp_path, engine):
        path = tmp_path / "profile" / "keys.json"
        keypair = asyncio.run(KeypairStore(JSONFileStorage(path)).ensure_keypair(engine))

        reopened = KeypairStore(JSONFileStorage(path))
        assert reopened.load() == keypair

    def test_file_permissions(self, tmp_path):
        path = tmp_path / "keys.json"
        JSONFileStorage(path).set("k", "v")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_keeps_other_keys(self, tmp_path):
        storage = JSONFileStorage(tmp_path / "keys.json")
        storage.set("a", "1")
        storage.set("b", "2")
        storage.delete("a")
        assert storage.get("a") is None
        assert storage.get("b") == "2"

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text("not json")
        with pytest.raises(ProtocolError, match="not JSON"):
            JSONFileStorage(path).get("fhevm-keypair")
