# fhevm_coord/survey.py
"""
fhevm_coord: Satisfaction Survey Facade

Thin client for a survey contract that keeps encrypted running totals:
each submission carries (score, 1), the contract adds both into global
and per-department aggregates, and authorized readers decrypt the
(total, count) pair to compute an average.

Usage:
    survey = SurveyClient(controller)
    enc = survey.prepare_submission(contract, user, score=8)
    # contract.submit(dept, *enc.to_call_args())
    agg = await survey.decrypt_aggregates(
        contract, user, signature, artifact, total_handle, count_handle,
    )
    print(agg.average)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .addresses import handle_to_hex, normalize_address
from .config import get_logger
from .coordinator.authorization import AuthorizationArtifact
from .coordinator.lifecycle import LifecycleController
from .engine.base import EncryptedInput
from .errors import ProtocolError


logger = get_logger("survey")


MIN_SCORE = 1
MAX_SCORE = 10


class InvalidSurveyInputError(ProtocolError, ValueError):
    """Score or department id out of range."""
    pass


def validate_score(score) -> int:
    """Scores are integers in [1, 10]."""
    if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidSurveyInputError(
            f"Value must be an integer between {MIN_SCORE} and {MAX_SCORE}, got {score!r}"
        )
    return score


def validate_department(dept) -> int:
    """Department ids are non-negative integers."""
    if isinstance(dept, bool) or not isinstance(dept, int) or dept < 0:
        raise InvalidSurveyInputError(
            f"Department id must be a non-negative integer, got {dept!r}"
        )
    return dept


@dataclass(frozen=True)
class SurveyAggregate:
    """Decrypted running totals."""
    total: int
    count: int

    @property
    def average(self) -> Optional[float]:
        if self.count == 0:
            return None
        return self.total / self.count


class SurveyClient:
    """Survey operations on top of a LifecycleController."""

    def __init__(self, controller: LifecycleController):
        self._controller = controller

    def prepare_submission(self, contract_address: str, user_address: str, score: int) -> EncryptedInput:
        """Encrypt (score, 1) for submission by user_address."""
        validate_score(score)
        return self._controller.encrypt_inputs(contract_address, user_address, score)

    async def decrypt_aggregates(
        self,
        contract_address: str,
        user_address: str,
        signature: str,
        artifact: AuthorizationArtifact,
        total_handle: Union[str, bytes],
        count_handle: Union[str, bytes],
    ) -> SurveyAggregate:
        """
        Decrypt a (total, count) pair with the window of a signed artifact.

        Raises:
            InvalidAddressError: Malformed contract address
            ProtocolError: Artifact scoped to another contract
        """
        contract = normalize_address(contract_address, "contract address")
        if contract != artifact.contract_address:
            raise ProtocolError(
                f"Authorization is scoped to {artifact.contract_address}, not {contract}"
            )
        total_hex, count_hex = handle_to_hex(total_handle), handle_to_hex(count_handle)
        values = await self._controller.decrypt_handles(
            contract, user_address, signature, [total_hex, count_hex],
            start_timestamp=artifact.start_timestamp,
            duration_seconds=artifact.duration_seconds,
        )
        aggregate = SurveyAggregate(total=values[total_hex], count=values[count_hex])
        logger.info(f"Decrypted aggregate: count={aggregate.count}")
        return aggregate
