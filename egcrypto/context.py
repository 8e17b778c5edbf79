"""Election-wide cryptographic parameters fixed by the key ceremony."""

from dataclasses import dataclass

from .group import GroupContext


@dataclass(frozen=True)
class ElectionContext:
    group: GroupContext
    number_of_guardians: int
    quorum: int
    joint_public_key: int
    commitment_hash: int
    manifest_hash: str
    crypto_base_hash: int
    crypto_extended_base_hash: int


def make_election_context(
    group: GroupContext,
    number_of_guardians: int,
    quorum: int,
    joint_public_key: int,
    commitment_hash: int,
    manifest_hash: str = "",
) -> ElectionContext:
    if not 1 <= quorum <= number_of_guardians:
        raise ValueError(f"Quorum {quorum} must be in [1, {number_of_guardians}]")

    base_hash = group.hash_elems(group.p, group.q, group.g, number_of_guardians, quorum, manifest_hash)
    extended_base_hash = group.hash_elems(base_hash, commitment_hash)
    return ElectionContext(
        group=group,
        number_of_guardians=number_of_guardians,
        quorum=quorum,
        joint_public_key=joint_public_key,
        commitment_hash=commitment_hash,
        manifest_hash=manifest_hash,
        crypto_base_hash=base_hash,
        crypto_extended_base_hash=extended_base_hash,
    )
