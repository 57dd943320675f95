# tests/conftest.py
"""Shared fixtures for fhevm_coord tests."""

import pytest
from web3 import Web3

from fhevm_coord.adapters import LocalAccountSigner
from fhevm_coord.config import CoordinatorConfig
from fhevm_coord.coordinator import LifecycleController
from fhevm_coord.engine import MockCoprocessor, MockEngine, mock_engine_factory
from fhevm_coord.registry import KeypairStore, NetworkParameterResolver, NetworkParameters
from fhevm_coord.transport import MockHTTPTransport


START = 1_700_000_000


class FakeClock:
    """Settable time source."""

    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metadata():
    return {
        "ACLAddress": "0x" + "a1" * 20,
        "InputVerifierAddress": "0x" + "b2" * 20,
        "KMSVerifierAddress": "0x" + "d3" * 20,
    }


@pytest.fixture
def metadata_response(metadata):
    return {"jsonrpc": "2.0", "id": 1, "result": metadata}


@pytest.fixture
def parameters(metadata):
    return NetworkParameters.from_metadata(metadata)


@pytest.fixture
def contract():
    return Web3.to_checksum_address("0x" + "c0" * 20)


@pytest.fixture
def other_contract():
    return Web3.to_checksum_address("0x" + "c1" * 20)


@pytest.fixture
def coprocessor(parameters):
    return MockCoprocessor(31337, parameters)


@pytest.fixture
def engine(parameters, coprocessor, clock):
    return MockEngine(31337, parameters, coprocessor, clock=clock)


@pytest.fixture
def keypair_store():
    return KeypairStore()


@pytest.fixture
def signer():
    return LocalAccountSigner.create()


@pytest.fixture
def transport():
    return MockHTTPTransport()


@pytest.fixture
def make_controller(transport, coprocessor, keypair_store, clock):
    """Build a controller wired to the mock transport and coprocessor."""

    def _make(config=None, resolver=None, engine_factory=None):
        return LifecycleController(
            config or CoordinatorConfig(),
            resolver=resolver or NetworkParameterResolver(transport),
            engine_factory=engine_factory or mock_engine_factory(coprocessor, clock=clock),
            keypair_store=keypair_store,
            clock=clock,
        )

    return _make
