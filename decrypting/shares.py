"""Decryption share records produced by guardians and consumed when combining."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from zk.proofs import ChaumPedersenProof


@dataclass(frozen=True)
class DecryptionProofTuple:
    """A guardian's partial decryption pad^s with its proof"""
    partial_decryption: int
    proof: ChaumPedersenProof


@dataclass(frozen=True)
class DecryptionProofRecovery:
    """Partial decryption on behalf of a missing guardian, proved against the recovery key"""
    partial_decryption: int
    proof: ChaumPedersenProof
    recovery_public_key: int


@dataclass(frozen=True)
class CiphertextCompensatedDecryptionSelection:
    object_id: str
    guardian_id: str
    missing_guardian_id: str
    share: int
    recovery_key: int
    proof: ChaumPedersenProof


@dataclass(frozen=True)
class CiphertextDecryptionSelection:
    """
    One guardian's share for one selection.

    A present guardian's share carries a proof; a reconstructed share instead
    carries the compensated parts it was built from, keyed by available guardian.
    """
    object_id: str
    guardian_id: str
    share: int
    proof: Optional[ChaumPedersenProof] = None
    recovered_parts: Optional[Dict[str, CiphertextCompensatedDecryptionSelection]] = None

    def __post_init__(self):
        if (self.proof is None) == (self.recovered_parts is None):
            raise ValueError("Decryption selection needs exactly one of proof or recovered_parts")


@dataclass
class CiphertextDecryptionContest:
    object_id: str
    guardian_id: str
    selections: Dict[str, CiphertextDecryptionSelection] = field(default_factory=dict)


@dataclass
class CiphertextCompensatedDecryptionContest:
    object_id: str
    guardian_id: str
    missing_guardian_id: str
    selections: Dict[str, CiphertextCompensatedDecryptionSelection] = field(default_factory=dict)


@dataclass
class DecryptionShare:
    """All of one guardian's shares for a tally or ballot"""
    object_id: str
    guardian_id: str
    public_key: int
    contests: Dict[str, CiphertextDecryptionContest] = field(default_factory=dict)


@dataclass
class CompensatedDecryptionShare:
    """An available guardian's shares on behalf of a missing guardian"""
    object_id: str
    guardian_id: str
    missing_guardian_id: str
    public_key: int
    contests: Dict[str, CiphertextCompensatedDecryptionContest] = field(default_factory=dict)
