"""
Decrypting trustee: a guardian after the key ceremony, holding its election
secret key and the backups other guardians sent it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from egcrypto.elgamal import ElGamalCiphertext, ElGamalKeyPair
from egcrypto.errors import Result
from egcrypto.group import GroupContext
from keyceremony.polynomial import compute_g_p_coordinate
from zk.proofs import make_chaum_pedersen

from .shares import DecryptionProofRecovery, DecryptionProofTuple

logger = logging.getLogger(__name__)


class DecryptingTrusteeIF(ABC):
    """What decryption orchestration may ask of a guardian"""

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @property
    @abstractmethod
    def x_coordinate(self) -> int:
        ...

    @property
    @abstractmethod
    def election_public_key(self) -> int:
        ...

    @abstractmethod
    def partial_decrypt(
        self,
        texts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> Result[List[DecryptionProofTuple]]:
        ...

    @abstractmethod
    def compensated_decrypt(
        self,
        missing_guardian_id: str,
        texts: Sequence[ElGamalCiphertext],
        extended_base_hash: int,
        nonce_seed: Optional[int] = None,
    ) -> Result[List[DecryptionProofRecovery]]:
        ...

    @abstractmethod
    def recover_public_key(self, missing_guardian_id: str) -> Result[int]:
        ...


class DecryptingTrustee(DecryptingTrusteeIF):

    def __init__(
        self,
        group: GroupContext,
        guardian_id: str,
        x_coordinate: int,
        election_keypair: ElGamalKeyPair,
        partial_key_backups: Dict[str, int],
        guardian_commitments: Dict[str, List[int]],
    ):
        self.group = group
        self._id = guardian_id
        self._x_coordinate = x_coordinate
        self._election_keypair = election_keypair
        # generating guardian id -> P_generator(our x)
        self._partial_key_backups = dict(partial_key_backups)
        self.guardian_commitments = dict(guardian_commitments)

    @property
    def id(self) -> str:
        return self._id

    @property
    def x_coordinate(self) -> int:
        return self._x_coordinate

    @property
    def election_public_key(self) -> int:
        return self._election_keypair.public_key

    def partial_decrypt(self, texts, extended_base_hash, nonce_seed=None):
        """pad^s for each ciphertext, with a Chaum-Pedersen proof against our public key"""
        secret = self._election_keypair.secret_key
        results = []
        for text in texts:
            partial = text.partial_decrypt(self.group, secret)
            proof = make_chaum_pedersen(self.group, text, secret, partial, extended_base_hash, nonce_seed)
            results.append(DecryptionProofTuple(partial, proof))
        return Result.ok(results)

    def compensated_decrypt(self, missing_guardian_id, texts, extended_base_hash, nonce_seed=None):
        """pad^P_missing(our x) for each ciphertext, proved against the recovery public key"""
        coordinate = self._partial_key_backups.get(missing_guardian_id)
        if coordinate is None:
            message = f"Trustee '{self._id}' has no backup from missing guardian '{missing_guardian_id}'"
            logger.error(message)
            return Result.failure(message)

        recovery_key = self.recover_public_key(missing_guardian_id)
        if not recovery_key.is_ok:
            return Result.failure(recovery_key.error)

        results = []
        for text in texts:
            partial = text.partial_decrypt(self.group, coordinate)
            proof = make_chaum_pedersen(self.group, text, coordinate, partial, extended_base_hash, nonce_seed)
            results.append(DecryptionProofRecovery(partial, proof, recovery_key.value))
        return Result.ok(results)

    def recover_public_key(self, missing_guardian_id):
        """g^P_missing(our x), computed from the missing guardian's commitments"""
        commitments = self.guardian_commitments.get(missing_guardian_id)
        if commitments is None:
            return Result.failure(f"Trustee '{self._id}' has no commitments for '{missing_guardian_id}'")
        return Result.ok(compute_g_p_coordinate(self.group, self._x_coordinate, commitments))
