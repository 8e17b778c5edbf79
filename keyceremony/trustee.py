"""
Key ceremony guardian.

A KeyCeremonyTrustee owns its secrets and is reached only through the
KeyCeremonyTrusteeIF methods, whether it runs in-process or behind a
RemoteKeyCeremonyTrustee proxy.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, Set

from egcrypto.auxiliary import (
    DEFAULT_AUXILIARY_KEY_SIZE,
    auxiliary_decrypt,
    auxiliary_encrypt,
    generate_auxiliary_key_pair,
)
from egcrypto.elgamal import ElGamalKeyPair, elgamal_combine_public_keys
from egcrypto.group import GroupContext
from zk.proofs import make_schnorr_proof

from .polynomial import (
    MAX_X_COORDINATE,
    compute_polynomial_coordinate,
    generate_polynomial,
    verify_polynomial_coordinate,
)
from .records import (
    PartialKeyBackup,
    PartialKeyChallengeResponse,
    PartialKeyVerification,
    PublicKeySet,
)

logger = logging.getLogger(__name__)


class TrusteeState(Enum):
    """Key ceremony progress of one guardian; only ever moves forward"""
    CREATED = 0
    KEYS_SHARED = 1
    BACKUPS_GENERATED = 2
    BACKUPS_EXCHANGED = 3
    VERIFIED = 4
    JOINT_KEY_PUBLISHED = 5


def backup_associated_data(generating_guardian_id: str, designated_guardian_id: str) -> bytes:
    """Binds an encrypted backup to its sender and recipient"""
    return f"{generating_guardian_id}|{designated_guardian_id}".encode("utf-8")


# ============================================================================
# TRUSTEE INTERFACE
# ============================================================================


class KeyCeremonyTrusteeIF(ABC):
    """What the mediator may ask of a guardian"""

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @property
    @abstractmethod
    def x_coordinate(self) -> int:
        ...

    @abstractmethod
    def send_public_keys(self) -> PublicKeySet:
        ...

    @abstractmethod
    def receive_public_keys(self, keys: PublicKeySet) -> bool:
        ...

    @abstractmethod
    def send_partial_key_backup(self, target_guardian_id: str) -> PartialKeyBackup:
        ...

    @abstractmethod
    def verify_partial_key_backup(self, backup: PartialKeyBackup) -> PartialKeyVerification:
        ...

    @abstractmethod
    def send_backup_challenge_response(self, target_guardian_id: str) -> PartialKeyChallengeResponse:
        ...

    @abstractmethod
    def send_joint_public_key(self) -> int:
        ...


# ============================================================================
# LOCAL TRUSTEE
# ============================================================================


class KeyCeremonyTrustee(KeyCeremonyTrusteeIF):
    """A guardian holding its polynomial, election key and auxiliary key"""

    def __init__(
        self,
        group: GroupContext,
        guardian_id: str,
        x_coordinate: int,
        quorum: int,
        nonce_seed: Optional[int] = None,
        auxiliary_key_size: int = DEFAULT_AUXILIARY_KEY_SIZE,
    ):
        if not guardian_id:
            raise ValueError("Guardian id must be non-empty")
        if not 0 < x_coordinate < MAX_X_COORDINATE:
            raise ValueError(f"x coordinate {x_coordinate} must be in [1, {MAX_X_COORDINATE})")
        if quorum < 1:
            raise ValueError(f"Quorum must be positive, got {quorum}")

        self.group = group
        self._id = guardian_id
        self._x_coordinate = x_coordinate
        self.quorum = quorum
        self.state = TrusteeState.CREATED

        self._polynomial = generate_polynomial(group, quorum, nonce_seed)
        secret_key = self._polynomial.coefficients[0]
        self._election_keypair = ElGamalKeyPair(secret_key, self._polynomial.coefficient_commitments[0])
        self.election_key_proof = make_schnorr_proof(group, self._election_keypair, group.rand_q())
        self._auxiliary_keypair = generate_auxiliary_key_pair(auxiliary_key_size)

        # Other guardians' public keys, including our own
        self.all_guardian_public_keys: Dict[str, PublicKeySet] = {}
        # Backups we generated, keyed by designated guardian
        self.my_partial_key_backups: Dict[str, PartialKeyBackup] = {}
        # Backups we received, keyed by generating guardian
        self.other_guardian_partial_key_backups: Dict[str, PartialKeyBackup] = {}
        self._verified_generators: Set[str] = set()

        self.all_guardian_public_keys[guardian_id] = self.share_public_keys()
        logger.debug(f"Created trustee {guardian_id} at x={x_coordinate}")

    @property
    def id(self) -> str:
        return self._id

    @property
    def x_coordinate(self) -> int:
        return self._x_coordinate

    @property
    def election_public_key(self) -> int:
        return self._election_keypair.public_key

    def _advance(self, state: TrusteeState):
        if state.value > self.state.value:
            self.state = state

    # ---- round 1 ----

    def share_public_keys(self) -> PublicKeySet:
        return PublicKeySet(
            owner_id=self._id,
            x_coordinate=self._x_coordinate,
            auxiliary_public_key=self._auxiliary_keypair.public_key_pem,
            coefficient_proofs=list(self._polynomial.coefficient_proofs),
        )

    def send_public_keys(self) -> PublicKeySet:
        self._advance(TrusteeState.KEYS_SHARED)
        return self.share_public_keys()

    def receive_public_keys(self, keys: PublicKeySet) -> bool:
        """Store another guardian's keys; False for our own id, a bad or taken x, or invalid proofs"""
        if keys.owner_id == self._id:
            logger.warning(f"Trustee {self._id} received its own public keys")
            return False
        if not 0 < keys.x_coordinate < MAX_X_COORDINATE:
            logger.warning(f"Trustee {self._id} received keys from {keys.owner_id} "
                           f"with x coordinate {keys.x_coordinate} out of range")
            return False
        for owner_id, known in self.all_guardian_public_keys.items():
            if owner_id != keys.owner_id and known.x_coordinate == keys.x_coordinate:
                logger.warning(f"Trustee {self._id} received keys from {keys.owner_id} "
                               f"at x={keys.x_coordinate}, already used by {owner_id}")
                return False
        if not keys.is_valid(self.group):
            logger.warning(f"Trustee {self._id} received invalid public keys from {keys.owner_id}")
            return False
        self.all_guardian_public_keys[keys.owner_id] = keys
        return True

    # ---- round 2 ----

    def send_partial_key_backup(self, target_guardian_id: str) -> PartialKeyBackup:
        """Encrypted P(x_target) for the target guardian; cached once generated"""
        if target_guardian_id == self._id:
            return PartialKeyBackup(self._id, target_guardian_id, 0,
                                    error=f"Trustee '{self._id}' cannot send backup to itself")

        cached = self.my_partial_key_backups.get(target_guardian_id)
        if cached is not None:
            return cached

        target_keys = self.all_guardian_public_keys.get(target_guardian_id)
        if target_keys is None:
            return PartialKeyBackup(self._id, target_guardian_id, 0,
                                    error=f"Trustee '{self._id}' does not have public key for '{target_guardian_id}'")

        coordinate = compute_polynomial_coordinate(self.group, target_keys.x_coordinate, self._polynomial)
        encrypted = auxiliary_encrypt(
            self.group.scalar_to_bytes(coordinate),
            target_keys.auxiliary_public_key,
            backup_associated_data(self._id, target_guardian_id),
        )
        if encrypted is None:
            return PartialKeyBackup(self._id, target_guardian_id, target_keys.x_coordinate,
                                    error=f"Trustee '{self._id}' could not encrypt backup for '{target_guardian_id}'")

        backup = PartialKeyBackup(self._id, target_guardian_id, target_keys.x_coordinate, encrypted)
        self.my_partial_key_backups[target_guardian_id] = backup
        self._advance(TrusteeState.BACKUPS_GENERATED)
        return backup

    def verify_partial_key_backup(self, backup: PartialKeyBackup) -> PartialKeyVerification:
        """Decrypt a backup addressed to us and check it against the generator's commitments"""
        generator_id = backup.generating_guardian_id

        def failure(message: str) -> PartialKeyVerification:
            logger.warning(f"Trustee {self._id}: {message}")
            return PartialKeyVerification(generator_id, backup.designated_guardian_id, message)

        if backup.designated_guardian_id != self._id:
            return failure(f"Sent backup to wrong trustee '{self._id}', should be '{backup.designated_guardian_id}'")

        self.other_guardian_partial_key_backups[generator_id] = backup
        if len(self.other_guardian_partial_key_backups) >= len(self.all_guardian_public_keys) - 1:
            self._advance(TrusteeState.BACKUPS_EXCHANGED)

        if backup.error:
            return failure(f"Backup from '{generator_id}' has error: {backup.error}")

        generator_keys = self.all_guardian_public_keys.get(generator_id)
        if generator_keys is None:
            return failure(f"No public keys for generating guardian '{generator_id}'")

        decrypted = auxiliary_decrypt(
            backup.encrypted_coordinate,
            self._auxiliary_keypair.private_key,
            backup_associated_data(generator_id, self._id),
        )
        if decrypted is None:
            return failure(f"Could not decrypt backup from '{generator_id}'")

        try:
            coordinate = self.group.scalar_from_bytes(decrypted)
        except ValueError as e:
            return failure(f"Backup from '{generator_id}' is not a valid scalar: {e}")

        if not verify_polynomial_coordinate(self.group, coordinate, self._x_coordinate,
                                            generator_keys.coefficient_commitments):
            return failure(f"Backup from '{generator_id}' does not match its commitments")

        self._verified_generators.add(generator_id)
        if len(self._verified_generators) >= len(self.all_guardian_public_keys) - 1:
            self._advance(TrusteeState.VERIFIED)
        return PartialKeyVerification(generator_id, self._id)

    # ---- round 3 ----

    def send_backup_challenge_response(self, target_guardian_id: str) -> PartialKeyChallengeResponse:
        """Publish the unencrypted coordinate of the backup we sent to target"""
        backup = self.my_partial_key_backups.get(target_guardian_id)
        if backup is None:
            return PartialKeyChallengeResponse(self._id, target_guardian_id, 0,
                                               error=f"Trustee '{self._id}' has no backup for '{target_guardian_id}'")
        if backup.generating_guardian_id != self._id or backup.designated_guardian_id != target_guardian_id:
            return PartialKeyChallengeResponse(self._id, target_guardian_id, backup.designated_guardian_x_coordinate,
                                               error=f"Trustee '{self._id}' backup for '{target_guardian_id}' is inconsistent")

        coordinate = compute_polynomial_coordinate(
            self.group, backup.designated_guardian_x_coordinate, self._polynomial)
        return PartialKeyChallengeResponse(
            self._id, target_guardian_id, backup.designated_guardian_x_coordinate, coordinate)

    # ---- round 4 ----

    def publish_joint_key(self) -> int:
        """Product of every election public key this trustee knows"""
        keys = [k.election_public_key for _, k in sorted(self.all_guardian_public_keys.items())]
        self._advance(TrusteeState.JOINT_KEY_PUBLISHED)
        return elgamal_combine_public_keys(self.group, keys)

    def send_joint_public_key(self) -> int:
        return self.publish_joint_key()

    # ---- export ----

    def export_decrypting_trustee(self):
        """
        Hand the secrets needed for decryption to a DecryptingTrustee.

        Backups that no longer decrypt are left out; compensating for their
        generator will then fail loudly at decryption time.
        """
        from decrypting.trustee import DecryptingTrustee

        backups: Dict[str, int] = {}
        for generator_id, backup in sorted(self.other_guardian_partial_key_backups.items()):
            if backup.encrypted_coordinate is None:
                continue
            decrypted = auxiliary_decrypt(
                backup.encrypted_coordinate,
                self._auxiliary_keypair.private_key,
                backup_associated_data(generator_id, self._id),
            )
            if decrypted is None:
                logger.warning(f"Trustee {self._id} cannot export backup from '{generator_id}'")
                continue
            try:
                backups[generator_id] = self.group.scalar_from_bytes(decrypted)
            except ValueError as e:
                logger.warning(f"Trustee {self._id} cannot export backup from '{generator_id}': {e}")

        commitments = {
            guardian_id: keys.coefficient_commitments
            for guardian_id, keys in self.all_guardian_public_keys.items()
        }
        return DecryptingTrustee(
            group=self.group,
            guardian_id=self._id,
            x_coordinate=self._x_coordinate,
            election_keypair=self._election_keypair,
            partial_key_backups=backups,
            guardian_commitments=commitments,
        )
