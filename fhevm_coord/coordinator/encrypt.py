# fhevm_coord/coordinator/encrypt.py
"""
fhevm_coord Coordinator: Input Encryption

Turns plaintext integers into ciphertext handles bound to a
(contract, user) pair, ready for a transaction argument list.

The binding is enforced chain-side by the input verifier; here only input
well-formedness is checked. No network call.

Usage:
    encryptor = InputEncryptor(engine)
    enc = encryptor.encrypt(contract, user, 7)   # fields: 7, 1
    contract.submit(*enc.to_call_args())
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..addresses import normalize_address
from ..config import AUX_INCREMENT, INPUT_BIT_WIDTH, get_logger
from ..engine.base import EncryptedInput, EngineHandle
from ..errors import EngineNotReadyError, ValueOutOfRangeError


logger = get_logger("encrypt")


def check_value(value, bit_width: int = INPUT_BIT_WIDTH) -> int:
    """
    Validate an unsigned integer for the declared bit width.

    Raises:
        ValueOutOfRangeError: Not an int, negative, or >= 2**bit_width
    """
    # bool is an int subclass but never a valid payload
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueOutOfRangeError(value, bit_width)
    if not 0 <= value < (1 << bit_width):
        raise ValueOutOfRangeError(value, bit_width)
    return value


class InputEncryptor:
    """Encrypts integer payloads through an EngineHandle."""

    def __init__(
        self,
        engine: Optional[EngineHandle],
        bit_width: int = INPUT_BIT_WIDTH,
        aux_increment: int = AUX_INCREMENT,
    ):
        """
        Args:
            engine: Engine handle (None while not READY)
            bit_width: Declared bit width of every field
            aux_increment: Constant sent alongside each value
        """
        self._engine = engine
        self._bit_width = bit_width
        self._aux_increment = aux_increment

    def _require_engine(self) -> EngineHandle:
        if self._engine is None:
            raise EngineNotReadyError()
        return self._engine

    def encrypt(self, contract_address: str, user_address: str, value: int) -> EncryptedInput:
        """
        Encrypt a value plus the auxiliary increment as two fields.

        Args:
            contract_address: Contract that will consume the input
            user_address: Account submitting the transaction
            value: Plaintext in [0, 2**bit_width)

        Returns:
            EncryptedInput with two handles (value, increment)

        Raises:
            EngineNotReadyError: No engine
            InvalidAddressError: Malformed address
            ValueOutOfRangeError: Value does not fit the bit width
        """
        return self.encrypt_values(
            contract_address, user_address, [value, self._aux_increment],
        )

    def encrypt_values(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[int],
    ) -> EncryptedInput:
        """Encrypt an arbitrary list of fields into one bound input."""
        engine = self._require_engine()
        contract = normalize_address(contract_address, "contract address")
        user = normalize_address(user_address, "user address")
        checked = [check_value(v, self._bit_width) for v in values]

        encrypted = engine.encrypt_input(contract, user, checked, self._bit_width)
        logger.debug(
            f"Encrypted {len(checked)} field(s) for contract={contract} user={user}"
        )
        return encrypted
