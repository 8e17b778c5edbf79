"""
Decryption Orchestration
========================
Builds decryption shares for a tally or ballots from available guardians,
compensated shares on behalf of missing guardians, and reconstructs a
missing guardian's share from compensated shares with Lagrange coefficients.

Within a contest, one task per selection runs on a bounded thread pool and
the calling thread waits for all of them before moving to the next contest.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Mapping, Optional, Sequence

from egcrypto.ballot import CiphertextBallot, CiphertextSelection, CiphertextTally
from egcrypto.context import ElectionContext
from egcrypto.errors import Result, TransportError
from egcrypto.group import GroupContext
from keyceremony.polynomial import compute_g_p_coordinate, compute_lagrange_coefficient

from .shares import (
    CiphertextCompensatedDecryptionContest,
    CiphertextCompensatedDecryptionSelection,
    CiphertextDecryptionContest,
    CiphertextDecryptionSelection,
    CompensatedDecryptionShare,
    DecryptionShare,
)
from .trustee import DecryptingTrusteeIF

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


# ============================================================================
# DIRECT SHARES
# ============================================================================


def _decrypt_selection(
    trustee: DecryptingTrusteeIF,
    public_key: int,
    selection: CiphertextSelection,
    context: ElectionContext,
    nonce_seed: Optional[int],
) -> Result[CiphertextDecryptionSelection]:
    group = context.group
    try:
        decrypted = trustee.partial_decrypt([selection.ciphertext], context.crypto_extended_base_hash, nonce_seed)
    except TransportError as e:
        return Result.failure(f"Trustee {trustee.id} unreachable for selection {selection.object_id}: {e}")
    if not decrypted.is_ok:
        return Result.failure(decrypted.error)
    if len(decrypted.value) != 1:
        return Result.failure(f"Trustee {trustee.id} returned {len(decrypted.value)} results for one selection")

    result = decrypted.value[0]
    if not result.proof.is_valid(group, selection.ciphertext, public_key,
                                 result.partial_decryption, context.crypto_extended_base_hash):
        return Result.failure(f"Trustee {trustee.id} gave an invalid proof for selection {selection.object_id}")

    return Result.ok(CiphertextDecryptionSelection(
        selection.object_id, trustee.id, result.partial_decryption, proof=result.proof))


def compute_decryption_share(
    trustee: DecryptingTrusteeIF,
    tally: CiphertextTally,
    context: ElectionContext,
    max_workers: int = DEFAULT_MAX_WORKERS,
    nonce_seed: Optional[int] = None,
) -> Result[DecryptionShare]:
    """All of a present guardian's shares for a tally; any failed selection fails the share"""
    try:
        public_key = trustee.election_public_key
    except TransportError as e:
        return Result.failure(f"Trustee {trustee.id} unreachable: {e}")

    contests: Dict[str, CiphertextDecryptionContest] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for contest_id, contest in tally.contests.items():
            selections = list(contest.selections.values())
            results = list(executor.map(
                lambda s: _decrypt_selection(trustee, public_key, s, context, nonce_seed), selections))

            failures = [r.error for r in results if not r.is_ok]
            if failures:
                logger.error(f"Decryption share of {trustee.id} for {tally.object_id} failed: {failures[0]}")
                return Result.failure(failures[0])

            contests[contest_id] = CiphertextDecryptionContest(
                contest_id, trustee.id, {r.value.object_id: r.value for r in results})

    return Result.ok(DecryptionShare(tally.object_id, trustee.id, public_key, contests))


def compute_decryption_share_for_ballot(
    trustee: DecryptingTrusteeIF,
    ballot: CiphertextBallot,
    context: ElectionContext,
    max_workers: int = DEFAULT_MAX_WORKERS,
    nonce_seed: Optional[int] = None,
) -> Result[DecryptionShare]:
    return compute_decryption_share(trustee, ballot, context, max_workers, nonce_seed)


def compute_decryption_share_for_ballots(
    trustee: DecryptingTrusteeIF,
    ballots: Sequence[CiphertextBallot],
    context: ElectionContext,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Result[Dict[str, DecryptionShare]]:
    """Shares for every ballot, keyed by ballot id; one failed ballot fails them all"""
    shares = {}
    for ballot in ballots:
        share = compute_decryption_share_for_ballot(trustee, ballot, context, max_workers)
        if not share.is_ok:
            return Result.failure(share.error)
        shares[ballot.object_id] = share.value
    return Result.ok(shares)


# ============================================================================
# COMPENSATED SHARES
# ============================================================================


def _compensate_selection(
    trustee: DecryptingTrusteeIF,
    missing_guardian_id: str,
    selection: CiphertextSelection,
    context: ElectionContext,
    expected_recovery_key: int,
    nonce_seed: Optional[int],
) -> Result[CiphertextCompensatedDecryptionSelection]:
    group = context.group
    try:
        decrypted = trustee.compensated_decrypt(
            missing_guardian_id, [selection.ciphertext], context.crypto_extended_base_hash, nonce_seed)
    except TransportError as e:
        return Result.failure(f"Trustee {trustee.id} unreachable for selection {selection.object_id}: {e}")
    if not decrypted.is_ok:
        return Result.failure(decrypted.error)
    if len(decrypted.value) != 1:
        return Result.failure(f"Trustee {trustee.id} returned {len(decrypted.value)} results for one selection")

    result = decrypted.value[0]
    if result.recovery_public_key != expected_recovery_key:
        return Result.failure(
            f"Trustee {trustee.id} used the wrong recovery key for missing guardian {missing_guardian_id}")
    if not result.proof.is_valid(group, selection.ciphertext, result.recovery_public_key,
                                 result.partial_decryption, context.crypto_extended_base_hash):
        return Result.failure(
            f"Trustee {trustee.id} gave an invalid compensated proof for selection {selection.object_id}")

    return Result.ok(CiphertextCompensatedDecryptionSelection(
        object_id=selection.object_id,
        guardian_id=trustee.id,
        missing_guardian_id=missing_guardian_id,
        share=result.partial_decryption,
        recovery_key=result.recovery_public_key,
        proof=result.proof,
    ))


def compute_compensated_decryption_share(
    trustee: DecryptingTrusteeIF,
    missing_guardian_id: str,
    tally: CiphertextTally,
    context: ElectionContext,
    missing_guardian_commitments: Sequence[int],
    max_workers: int = DEFAULT_MAX_WORKERS,
    nonce_seed: Optional[int] = None,
) -> Result[CompensatedDecryptionShare]:
    """
    An available guardian's shares on behalf of a missing one.

    Every recovery key the trustee reports must equal the one the missing
    guardian's published commitments imply for this trustee's x coordinate.
    """
    try:
        public_key = trustee.election_public_key
        x_coordinate = trustee.x_coordinate
    except TransportError as e:
        return Result.failure(f"Trustee {trustee.id} unreachable: {e}")

    expected_recovery_key = compute_g_p_coordinate(context.group, x_coordinate, missing_guardian_commitments)

    contests: Dict[str, CiphertextCompensatedDecryptionContest] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for contest_id, contest in tally.contests.items():
            selections = list(contest.selections.values())
            results = list(executor.map(
                lambda s: _compensate_selection(
                    trustee, missing_guardian_id, s, context, expected_recovery_key, nonce_seed),
                selections))

            failures = [r.error for r in results if not r.is_ok]
            if failures:
                logger.error(f"Compensated share of {trustee.id} for {missing_guardian_id} failed: {failures[0]}")
                return Result.failure(failures[0])

            contests[contest_id] = CiphertextCompensatedDecryptionContest(
                contest_id, trustee.id, missing_guardian_id, {r.value.object_id: r.value for r in results})

    return Result.ok(CompensatedDecryptionShare(
        tally.object_id, trustee.id, missing_guardian_id, public_key, contests))


def compute_compensated_decryption_share_for_ballot(
    trustee: DecryptingTrusteeIF,
    missing_guardian_id: str,
    ballot: CiphertextBallot,
    context: ElectionContext,
    missing_guardian_commitments: Sequence[int],
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Result[CompensatedDecryptionShare]:
    return compute_compensated_decryption_share(
        trustee, missing_guardian_id, ballot, context, missing_guardian_commitments, max_workers)


def compute_compensated_decryption_share_for_ballots(
    trustee: DecryptingTrusteeIF,
    missing_guardian_id: str,
    ballots: Sequence[CiphertextBallot],
    context: ElectionContext,
    missing_guardian_commitments: Sequence[int],
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Result[Dict[str, CompensatedDecryptionShare]]:
    shares = {}
    for ballot in ballots:
        share = compute_compensated_decryption_share_for_ballot(
            trustee, missing_guardian_id, ballot, context, missing_guardian_commitments, max_workers)
        if not share.is_ok:
            return Result.failure(share.error)
        shares[ballot.object_id] = share.value
    return Result.ok(shares)


# ============================================================================
# RECONSTRUCTION
# ============================================================================


def compute_lagrange_coefficients_for_guardians(
    group: GroupContext,
    available_guardians: Mapping[str, int],
) -> Dict[str, int]:
    """Lagrange coefficient for each available guardian id, over their x coordinates"""
    coefficients = {}
    for guardian_id, x_coordinate in available_guardians.items():
        others = [x for other_id, x in available_guardians.items() if other_id != guardian_id]
        coefficients[guardian_id] = compute_lagrange_coefficient(group, x_coordinate, others)
    return coefficients


def reconstruct_decryption_share(
    group: GroupContext,
    missing_guardian_id: str,
    missing_public_key: int,
    tally: CiphertextTally,
    shares: Mapping[str, CompensatedDecryptionShare],
    lagrange_coefficients: Mapping[str, int],
) -> DecryptionShare:
    """
    The missing guardian's share: prod_l M_l ^ w_l over the available guardians.

    Raises ValueError when a compensated share lacks a selection of the tally
    or an available guardian has no Lagrange coefficient.
    """
    missing_coefficients = set(shares) - set(lagrange_coefficients)
    if missing_coefficients:
        raise ValueError(f"No Lagrange coefficient for {sorted(missing_coefficients)}")

    contests: Dict[str, CiphertextDecryptionContest] = {}
    for contest_id, contest in tally.contests.items():
        selections: Dict[str, CiphertextDecryptionSelection] = {}
        for selection_id in contest.selections:
            parts: Dict[str, CiphertextCompensatedDecryptionSelection] = {}
            for available_id, compensated in sorted(shares.items()):
                try:
                    parts[available_id] = compensated.contests[contest_id].selections[selection_id]
                except KeyError:
                    raise ValueError(
                        f"Compensated share from {available_id} has no {contest_id}/{selection_id}") from None

            share = group.mult_p(*(
                group.pow_p(part.share, lagrange_coefficients[available_id])
                for available_id, part in parts.items()
            ))
            selections[selection_id] = CiphertextDecryptionSelection(
                selection_id, missing_guardian_id, share, recovered_parts=parts)
        contests[contest_id] = CiphertextDecryptionContest(contest_id, missing_guardian_id, selections)

    logger.info(f"Reconstructed share of {missing_guardian_id} from {len(shares)} guardians")
    return DecryptionShare(tally.object_id, missing_guardian_id, missing_public_key, contests)


def reconstruct_decryption_share_for_ballot(
    group: GroupContext,
    missing_guardian_id: str,
    missing_public_key: int,
    ballot: CiphertextBallot,
    shares: Mapping[str, CompensatedDecryptionShare],
    lagrange_coefficients: Mapping[str, int],
) -> DecryptionShare:
    return reconstruct_decryption_share(
        group, missing_guardian_id, missing_public_key, ballot, shares, lagrange_coefficients)


def reconstruct_decryption_shares_for_ballots(
    group: GroupContext,
    missing_guardian_id: str,
    missing_public_key: int,
    ballots: Sequence[CiphertextBallot],
    shares: Mapping[str, Mapping[str, CompensatedDecryptionShare]],
    lagrange_coefficients: Mapping[str, int],
) -> Dict[str, DecryptionShare]:
    """shares maps ballot id -> available guardian id -> compensated share"""
    reconstructed: Dict[str, DecryptionShare] = {}
    for ballot in ballots:
        if ballot.object_id not in shares:
            raise ValueError(f"No compensated shares for ballot {ballot.object_id}")
        reconstructed[ballot.object_id] = reconstruct_decryption_share_for_ballot(
            group, missing_guardian_id, missing_public_key, ballot, shares[ballot.object_id], lagrange_coefficients)
    return reconstructed
