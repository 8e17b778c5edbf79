"""Messages exchanged between guardians during the key ceremony."""

from dataclasses import dataclass, field
from typing import List, Optional

from egcrypto.group import GroupContext
from zk.proofs import SchnorrProof


@dataclass(frozen=True)
class PublicKeySet:
    """Everything a guardian publishes in round 1"""
    owner_id: str
    x_coordinate: int
    auxiliary_public_key: bytes = field(repr=False)
    coefficient_proofs: List[SchnorrProof]

    @property
    def coefficient_commitments(self) -> List[int]:
        return [proof.public_key for proof in self.coefficient_proofs]

    @property
    def election_public_key(self) -> int:
        return self.coefficient_proofs[0].public_key

    def is_valid(self, group: GroupContext) -> bool:
        return bool(self.coefficient_proofs) and all(p.is_valid(group) for p in self.coefficient_proofs)


@dataclass(frozen=True)
class PartialKeyBackup:
    """P_generator(x_designated), encrypted for the designated guardian"""
    generating_guardian_id: str
    designated_guardian_id: str
    designated_guardian_x_coordinate: int
    encrypted_coordinate: Optional[bytes] = field(default=None, repr=False)
    error: Optional[str] = None

    def __post_init__(self):
        if (self.encrypted_coordinate is None) == (self.error is None):
            raise ValueError("PartialKeyBackup needs exactly one of encrypted_coordinate or error")


@dataclass(frozen=True)
class PartialKeyVerification:
    generating_guardian_id: str
    designated_guardian_id: str
    error: Optional[str] = None

    @property
    def verified(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class PartialKeyChallengeResponse:
    """Unencrypted re-publication of a disputed backup's coordinate"""
    generating_guardian_id: str
    designated_guardian_id: str
    designated_guardian_x_coordinate: int
    coordinate: Optional[int] = field(default=None, repr=False)
    error: Optional[str] = None

    def __post_init__(self):
        if (self.coordinate is None) == (self.error is None):
            raise ValueError("PartialKeyChallengeResponse needs exactly one of coordinate or error")


@dataclass(frozen=True)
class GuardianRecord:
    """Published public record of one guardian after the ceremony"""
    guardian_id: str
    x_coordinate: int
    election_public_key: int
    coefficient_commitments: List[int]
    coefficient_proofs: List[SchnorrProof]

    @classmethod
    def from_public_keys(cls, keys: PublicKeySet) -> "GuardianRecord":
        return cls(
            guardian_id=keys.owner_id,
            x_coordinate=keys.x_coordinate,
            election_public_key=keys.election_public_key,
            coefficient_commitments=keys.coefficient_commitments,
            coefficient_proofs=list(keys.coefficient_proofs),
        )
