# fhevm_coord/engine/eip712.py
"""
fhevm_coord Engine: EIP-712 User-Decryption Message

Typed-data schema for a user-decryption authorization. The message grants
the holder of `publicKey` the right to decrypt values of the listed
contracts over [startTimestamp, startTimestamp + durationDays).

Building is a pure function of its inputs, so identical inputs give
byte-identical messages (see canonical_bytes).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from eth_account.messages import SignableMessage, encode_typed_data


PRIMARY_TYPE = "UserDecryptRequestVerification"

DOMAIN_NAME = "Decryption"
DOMAIN_VERSION = "1"

EIP712_DOMAIN_FIELDS: List[Dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

USER_DECRYPT_FIELDS: List[Dict[str, str]] = [
    {"name": "publicKey", "type": "bytes"},
    {"name": "contractAddresses", "type": "address[]"},
    {"name": "startTimestamp", "type": "uint256"},
    {"name": "durationDays", "type": "uint256"},
]


@dataclass(frozen=True)
class EIP712Domain:
    """EIP-712 domain separator."""
    name: str
    version: str
    chain_id: int
    verifying_contract: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to EIP-712 format."""
        domain: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
        }
        if self.verifying_contract:
            domain["verifyingContract"] = self.verifying_contract
        return domain


def build_user_decrypt_message(
    domain: EIP712Domain,
    public_key: str,
    contract_addresses: Sequence[str],
    start_timestamp: int,
    duration_days: int,
) -> Dict[str, Any]:
    """Assemble the full typed-data document for eth_signTypedData_v4."""
    domain_dict = domain.to_dict()
    return {
        "types": {
            # Domain type lists exactly the fields present
            "EIP712Domain": [
                dict(f) for f in EIP712_DOMAIN_FIELDS if f["name"] in domain_dict
            ],
            PRIMARY_TYPE: [dict(f) for f in USER_DECRYPT_FIELDS],
        },
        "primaryType": PRIMARY_TYPE,
        "domain": domain_dict,
        "message": {
            "publicKey": public_key,
            "contractAddresses": list(contract_addresses),
            "startTimestamp": int(start_timestamp),
            "durationDays": int(duration_days),
        },
    }


def canonical_bytes(typed_message: Dict[str, Any]) -> bytes:
    """Deterministic serialization (sorted keys, no whitespace)."""
    return json.dumps(typed_message, sort_keys=True, separators=(",", ":")).encode("utf-8")


def signable(typed_message: Dict[str, Any]) -> SignableMessage:
    """EIP-712 signable form, ready for eth_account signing or recovery."""
    return encode_typed_data(full_message=typed_message)
