# tests/test_encrypt.py
"""Tests for InputEncryptor and chain-side input binding."""

import pytest

from fhevm_coord.coordinator import InputEncryptor, check_value
from fhevm_coord.errors import (
    EngineNotReadyError,
    InputVerificationError,
    InvalidAddressError,
    ValueOutOfRangeError,
)


USER = "0x" + "e1" * 20
OTHER_USER = "0x" + "e2" * 20


class TestCheckValue:

    @pytest.mark.parametrize("value", [0, 7, 2**32 - 1])
    def test_accepts(self, value):
        assert check_value(value, 32) == value

    @pytest.mark.parametrize("value", [-1, 2**32, True, 7.0, "7", None])
    def test_rejects(self, value):
        with pytest.raises(ValueOutOfRangeError):
            check_value(value, 32)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError, match="uint8"):
            check_value(256, 8)


class TestInputEncryptor:

    def test_two_handles(self, engine, contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        assert len(enc.handles) == 2
        assert all(len(h) == 32 for h in enc.handles)
        assert enc.handles[0] != enc.handles[1]
        assert enc.input_proof
        assert enc.contract_address == contract

    def test_call_args(self, engine, contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        args = enc.to_call_args()
        assert args[:2] == enc.handle_hexes
        assert args[2] == enc.proof_hex
        assert all(a.startswith("0x") for a in args)

    def test_handle_layout(self, engine, contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        for index, handle in enumerate(enc.handles):
            assert handle[21] == index
            assert int.from_bytes(handle[22:30], "big") == 31337
            assert handle[30] == 4  # euint32
            assert handle[31] == 0

    def test_not_deterministic(self, engine, contract):
        encryptor = InputEncryptor(engine)
        first = encryptor.encrypt(contract, USER, 7)
        second = encryptor.encrypt(contract, USER, 7)
        assert first.handles != second.handles

    def test_boundary_values(self, engine, contract):
        encryptor = InputEncryptor(engine)
        encryptor.encrypt(contract, USER, 0)
        encryptor.encrypt(contract, USER, 2**32 - 1)

    @pytest.mark.parametrize("value", [2**32, -1, True])
    def test_out_of_range(self, engine, contract, value):
        with pytest.raises(ValueOutOfRangeError):
            InputEncryptor(engine).encrypt(contract, USER, value)

    def test_invalid_contract(self, engine):
        with pytest.raises(InvalidAddressError, match="contract address"):
            InputEncryptor(engine).encrypt("0xContract", USER, 7)

    def test_invalid_user(self, engine, contract):
        with pytest.raises(InvalidAddressError, match="user address"):
            InputEncryptor(engine).encrypt(contract, "alice", 7)

    def test_no_engine(self, contract):
        with pytest.raises(EngineNotReadyError, match="FHEVM instance not ready"):
            InputEncryptor(None).encrypt(contract, USER, 7)

    def test_encrypt_values(self, engine, contract, coprocessor):
        enc = InputEncryptor(engine).encrypt_values(contract, USER, [3, 4, 5])
        assert len(enc.handles) == 3
        for handle in enc.handles:
            coprocessor.verify_input(handle, enc.input_proof, contract, USER)


class TestInputBinding:

    def test_verifies_for_bound_pair(self, engine, coprocessor, contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        for handle in enc.handles:
            handle_hex = coprocessor.verify_input(handle, enc.input_proof, contract, USER)
            assert handle_hex in coprocessor

    def test_rejects_other_contract(self, engine, coprocessor, contract, other_contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        with pytest.raises(InputVerificationError, match="another contract"):
            coprocessor.verify_input(enc.handles[0], enc.input_proof, other_contract, USER)

    def test_rejects_other_user(self, engine, coprocessor, contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        with pytest.raises(InputVerificationError, match="another user"):
            coprocessor.verify_input(enc.handles[0], enc.input_proof, contract, OTHER_USER)

    def test_rejects_foreign_proof(self, engine, coprocessor, contract):
        encryptor = InputEncryptor(engine)
        first = encryptor.encrypt(contract, USER, 7)
        second = encryptor.encrypt(contract, USER, 7)
        with pytest.raises(InputVerificationError, match="not covered"):
            coprocessor.verify_input(first.handles[0], second.input_proof, contract, USER)

    def test_rejects_truncated_proof(self, engine, coprocessor, contract):
        enc = InputEncryptor(engine).encrypt(contract, USER, 7)
        with pytest.raises(InputVerificationError):
            coprocessor.verify_input(enc.handles[0], enc.input_proof[:10], contract, USER)
