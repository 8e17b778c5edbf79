"""Message-passing decrypting trustee: proxy and guardian-side service."""

import logging
from typing import List, Optional, Sequence

from egcrypto.elgamal import ElGamalCiphertext
from egcrypto.errors import Result, TransportError
from egcrypto.group import GroupContext
from egcrypto.wire import (
    Channel,
    LoopbackChannel,
    Message,
    MessageService,
    element_from_wire,
    element_to_wire,
    scalar_from_wire,
    scalar_to_wire,
)
from zk.proofs import ChaumPedersenProof

from .shares import DecryptionProofRecovery, DecryptionProofTuple
from .trustee import DecryptingTrustee, DecryptingTrusteeIF

logger = logging.getLogger(__name__)


# ============================================================================
# RECORD CODEC
# ============================================================================


def ciphertext_to_wire(group: GroupContext, text: ElGamalCiphertext) -> Message:
    return {"pad": element_to_wire(group, text.pad), "data": element_to_wire(group, text.data)}


def ciphertext_from_wire(group: GroupContext, message: Message) -> ElGamalCiphertext:
    return ElGamalCiphertext(element_from_wire(group, message["pad"]), element_from_wire(group, message["data"]))


def chaum_pedersen_to_wire(group: GroupContext, proof: ChaumPedersenProof) -> Message:
    return {
        "pad": element_to_wire(group, proof.pad),
        "data": element_to_wire(group, proof.data),
        "challenge": scalar_to_wire(group, proof.challenge),
        "response": scalar_to_wire(group, proof.response),
    }


def chaum_pedersen_from_wire(group: GroupContext, message: Message) -> ChaumPedersenProof:
    return ChaumPedersenProof(
        pad=element_from_wire(group, message["pad"]),
        data=element_from_wire(group, message["data"]),
        challenge=scalar_from_wire(group, message["challenge"]),
        response=scalar_from_wire(group, message["response"]),
    )


def _optional_scalar(group: GroupContext, value: Optional[int]) -> Optional[str]:
    return None if value is None else scalar_to_wire(group, value)


def _optional_scalar_from(group: GroupContext, text: Optional[str]) -> Optional[int]:
    return None if text is None else scalar_from_wire(group, text)


# ============================================================================
# PROXY
# ============================================================================


class RemoteDecryptingTrustee(DecryptingTrusteeIF):
    """Orchestrator-side handle for a decrypting trustee behind a Channel"""

    def __init__(self, group: GroupContext, guardian_id: str, x_coordinate: int,
                 election_public_key: int, channel: Channel):
        self.group = group
        self._id = guardian_id
        self._x_coordinate = x_coordinate
        self._election_public_key = election_public_key
        self.channel = channel

    @property
    def id(self) -> str:
        return self._id

    @property
    def x_coordinate(self) -> int:
        return self._x_coordinate

    @property
    def election_public_key(self) -> int:
        return self._election_public_key

    def _call(self, method: str, request: Message, decode):
        response = self.channel.call(method, request)
        try:
            if response["error"] is not None:
                return Result.failure(response["error"])
            return Result.ok(decode(response))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransportError(f"Trustee {self._id}: malformed {method} response: {e}") from e

    def partial_decrypt(self, texts: Sequence[ElGamalCiphertext], extended_base_hash: int,
                        nonce_seed: Optional[int] = None) -> Result[List[DecryptionProofTuple]]:
        request = {
            "texts": [ciphertext_to_wire(self.group, t) for t in texts],
            "extended_base_hash": scalar_to_wire(self.group, extended_base_hash),
            "nonce_seed": _optional_scalar(self.group, nonce_seed),
        }
        return self._call("partial_decrypt", request, lambda r: [
            DecryptionProofTuple(
                element_from_wire(self.group, item["partial_decryption"]),
                chaum_pedersen_from_wire(self.group, item["proof"]),
            )
            for item in r["results"]
        ])

    def compensated_decrypt(self, missing_guardian_id: str, texts: Sequence[ElGamalCiphertext],
                            extended_base_hash: int,
                            nonce_seed: Optional[int] = None) -> Result[List[DecryptionProofRecovery]]:
        request = {
            "missing_guardian_id": missing_guardian_id,
            "texts": [ciphertext_to_wire(self.group, t) for t in texts],
            "extended_base_hash": scalar_to_wire(self.group, extended_base_hash),
            "nonce_seed": _optional_scalar(self.group, nonce_seed),
        }
        return self._call("compensated_decrypt", request, lambda r: [
            DecryptionProofRecovery(
                element_from_wire(self.group, item["partial_decryption"]),
                chaum_pedersen_from_wire(self.group, item["proof"]),
                element_from_wire(self.group, item["recovery_public_key"]),
            )
            for item in r["results"]
        ])

    def recover_public_key(self, missing_guardian_id: str) -> Result[int]:
        return self._call("recover_public_key", {"missing_guardian_id": missing_guardian_id},
                          lambda r: element_from_wire(self.group, r["recovery_public_key"]))


# ============================================================================
# SERVICE
# ============================================================================


class DecryptingTrusteeService(MessageService):
    """Guardian-side endpoint exposing a local DecryptingTrustee"""

    def __init__(self, trustee: DecryptingTrustee):
        super().__init__(f"DecryptingTrusteeService[{trustee.id}]")
        self.trustee = trustee
        self.group = trustee.group
        self.register("partial_decrypt", self._partial_decrypt)
        self.register("compensated_decrypt", self._compensated_decrypt)
        self.register("recover_public_key", self._recover_public_key)

    def _texts(self, request: Message) -> List[ElGamalCiphertext]:
        return [ciphertext_from_wire(self.group, t) for t in request["texts"]]

    def _partial_decrypt(self, request: Message) -> Message:
        result = self.trustee.partial_decrypt(
            self._texts(request),
            scalar_from_wire(self.group, request["extended_base_hash"]),
            _optional_scalar_from(self.group, request["nonce_seed"]),
        )
        if not result.is_ok:
            return {"error": result.error}
        return {"error": None, "results": [
            {
                "partial_decryption": element_to_wire(self.group, item.partial_decryption),
                "proof": chaum_pedersen_to_wire(self.group, item.proof),
            }
            for item in result.value
        ]}

    def _compensated_decrypt(self, request: Message) -> Message:
        result = self.trustee.compensated_decrypt(
            request["missing_guardian_id"],
            self._texts(request),
            scalar_from_wire(self.group, request["extended_base_hash"]),
            _optional_scalar_from(self.group, request["nonce_seed"]),
        )
        if not result.is_ok:
            return {"error": result.error}
        return {"error": None, "results": [
            {
                "partial_decryption": element_to_wire(self.group, item.partial_decryption),
                "proof": chaum_pedersen_to_wire(self.group, item.proof),
                "recovery_public_key": element_to_wire(self.group, item.recovery_public_key),
            }
            for item in result.value
        ]}

    def _recover_public_key(self, request: Message) -> Message:
        result = self.trustee.recover_public_key(request["missing_guardian_id"])
        if not result.is_ok:
            return {"error": result.error}
        return {"error": None, "recovery_public_key": element_to_wire(self.group, result.value)}


def connect_remote_decrypting_trustee(trustee: DecryptingTrustee) -> RemoteDecryptingTrustee:
    """Wrap a local decrypting trustee behind a loopback channel"""
    channel = LoopbackChannel(DecryptingTrusteeService(trustee))
    return RemoteDecryptingTrustee(
        trustee.group, trustee.id, trustee.x_coordinate, trustee.election_public_key, channel)
