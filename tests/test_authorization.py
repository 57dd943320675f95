# tests/test_authorization.py
"""Tests for AuthorizationBuilder and the typed message it produces."""

import asyncio

import pytest
from eth_account import Account

from fhevm_coord.coordinator import AuthorizationBuilder, duration_to_days
from fhevm_coord.engine.eip712 import PRIMARY_TYPE
from fhevm_coord.errors import EngineNotReadyError, InvalidAddressError, ProtocolError


DAY = 86_400


@pytest.fixture
def builder(engine, keypair_store, clock):
    return AuthorizationBuilder(engine, keypair_store, clock=clock)


class TestDurationToDays:

    def test_default_window(self):
        assert duration_to_days(31_536_000) == 365

    @pytest.mark.parametrize("seconds", [0, -DAY, DAY + 1, 3600])
    def test_rejects(self, seconds):
        with pytest.raises(ProtocolError, match="whole number of days"):
            duration_to_days(seconds)


class TestAuthorizationBuilder:

    def test_scoped_to_one_contract(self, builder, contract, clock):
        artifact = asyncio.run(builder.build(contract))
        message = artifact.typed_message["message"]

        assert artifact.typed_message["primaryType"] == PRIMARY_TYPE
        assert message["contractAddresses"] == [contract]
        assert message["startTimestamp"] == int(clock.now)
        assert message["durationDays"] == 365
        assert artifact.contract_address == contract

    def test_window(self, builder, contract, clock):
        artifact = asyncio.run(builder.build(contract))
        assert artifact.start_timestamp == int(clock.now)
        assert artifact.duration_seconds == 31_536_000
        assert artifact.duration_days == 365
        assert artifact.expires_at == artifact.start_timestamp + 31_536_000
        assert artifact.is_valid_at(clock.now)
        assert not artifact.is_valid_at(artifact.expires_at)
        assert not artifact.is_valid_at(clock.now - 1)

    def test_domain(self, builder, contract, parameters):
        domain = asyncio.run(builder.build(contract)).typed_message["domain"]
        assert domain["chainId"] == 31337
        assert domain["verifyingContract"] == parameters.kms_verifier_address

    def test_deterministic(self, builder, contract):
        first = asyncio.run(builder.build(contract))
        second = asyncio.run(builder.build(contract))
        assert first.message_bytes() == second.message_bytes()
        assert first == second

    def test_differs_per_contract(self, builder, contract, other_contract):
        first = asyncio.run(builder.build(contract))
        second = asyncio.run(builder.build(other_contract))
        assert first.message_bytes() != second.message_bytes()

    def test_uses_stored_public_key(self, builder, contract, keypair_store):
        artifact = asyncio.run(builder.build(contract))
        stored = keypair_store.load()
        assert artifact.public_key == stored.public_key
        assert artifact.typed_message["message"]["publicKey"] == stored.public_key

    def test_explicit_start(self, builder, contract):
        artifact = asyncio.run(builder.build(contract, start_timestamp=1_600_000_000))
        assert artifact.typed_message["message"]["startTimestamp"] == 1_600_000_000

    def test_custom_duration(self, engine, keypair_store, clock, contract):
        builder = AuthorizationBuilder(engine, keypair_store, duration_seconds=7 * DAY, clock=clock)
        artifact = asyncio.run(builder.build(contract))
        assert artifact.typed_message["message"]["durationDays"] == 7

    def test_signable(self, builder, contract):
        artifact = asyncio.run(builder.build(contract))
        account = Account.create()
        signed = account.sign_message(artifact.signable_message())
        recovered = Account.recover_message(
            artifact.signable_message(), signature=signed.signature,
        )
        assert recovered == account.address

    def test_invalid_contract(self, builder):
        with pytest.raises(InvalidAddressError):
            asyncio.run(builder.build("0x1234"))

    def test_no_engine(self, keypair_store, contract):
        with pytest.raises(EngineNotReadyError):
            asyncio.run(AuthorizationBuilder(None, keypair_store).build(contract))

    def test_rejects_partial_day_policy(self, engine, keypair_store):
        with pytest.raises(ProtocolError):
            AuthorizationBuilder(engine, keypair_store, duration_seconds=DAY + 1)


class TestRefresh:

    def test_valid_artifact_kept(self, builder, contract, clock):
        artifact = asyncio.run(builder.build(contract))
        clock.advance(DAY)
        assert asyncio.run(builder.refresh(artifact)) is artifact

    def test_expired_rebuilt(self, builder, contract, clock):
        artifact = asyncio.run(builder.build(contract))
        clock.advance(365 * DAY)
        fresh = asyncio.run(builder.refresh(artifact))
        assert fresh.start_timestamp == int(clock.now)
        assert fresh.contract_address == contract
        assert fresh.public_key == artifact.public_key

    def test_rotated_keypair_rebuilt(self, builder, contract, keypair_store):
        artifact = asyncio.run(builder.build(contract))
        keypair_store.clear()
        fresh = asyncio.run(builder.refresh(artifact))
        assert fresh.public_key != artifact.public_key
        assert fresh.public_key == keypair_store.load().public_key
