"""Ciphertext and plaintext structures consumed and produced by decryption."""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

from .elgamal import ElGamalCiphertext


@dataclass(frozen=True)
class CiphertextSelection:
    object_id: str
    ciphertext: ElGamalCiphertext
    is_placeholder: bool = False


@dataclass(frozen=True)
class CiphertextContest:
    object_id: str
    selections: Dict[str, CiphertextSelection] = field(default_factory=dict)


@dataclass(frozen=True)
class CiphertextTally:
    """Homomorphic accumulation of all cast ballots, one ciphertext per selection"""
    object_id: str
    contests: Dict[str, CiphertextContest] = field(default_factory=dict)

    def selections(self) -> Iterator[Tuple[str, CiphertextSelection]]:
        for contest_id, contest in self.contests.items():
            for selection in contest.selections.values():
                yield contest_id, selection


@dataclass(frozen=True)
class CiphertextBallot(CiphertextTally):
    """A single encrypted ballot, e.g. one marked for individual decryption"""
    style_id: str = ""


@dataclass
class PlaintextSelection:
    object_id: str
    tally: int
    value: int
    message: ElGamalCiphertext
    share_count: int = 0


@dataclass
class PlaintextContest:
    object_id: str
    selections: Dict[str, PlaintextSelection] = field(default_factory=dict)


@dataclass
class PlaintextTally:
    object_id: str
    contests: Dict[str, PlaintextContest] = field(default_factory=dict)

    def counts(self) -> Dict[str, Dict[str, int]]:
        """contest id -> selection id -> decoded count"""
        return {
            contest_id: {sid: s.tally for sid, s in contest.selections.items()}
            for contest_id, contest in self.contests.items()
        }
