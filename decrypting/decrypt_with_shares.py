"""Combine every guardian's decryption share into plaintext counts."""

import logging
from typing import Dict, Mapping, Sequence

from egcrypto.ballot import (
    CiphertextBallot,
    CiphertextSelection,
    CiphertextTally,
    PlaintextContest,
    PlaintextSelection,
    PlaintextTally,
)
from egcrypto.context import ElectionContext
from egcrypto.elgamal import DEFAULT_DISCRETE_LOG_MAX, DiscreteLog
from egcrypto.errors import DiscreteLogError, Result
from keyceremony.polynomial import compute_g_p_coordinate
from keyceremony.records import GuardianRecord

from .shares import CiphertextDecryptionSelection, DecryptionShare

logger = logging.getLogger(__name__)


def recovery_public_keys(
    context: ElectionContext,
    guardian_records: Sequence[GuardianRecord],
    missing_guardian_id: str,
) -> Dict[str, int]:
    """g^P_missing(x_l) for every other guardian l, from the published commitments"""
    records = {r.guardian_id: r for r in guardian_records}
    commitments = records[missing_guardian_id].coefficient_commitments
    return {
        guardian_id: compute_g_p_coordinate(context.group, record.x_coordinate, commitments)
        for guardian_id, record in records.items()
        if guardian_id != missing_guardian_id
    }


def is_valid_share(
    context: ElectionContext,
    share: CiphertextDecryptionSelection,
    public_key: int,
    selection: CiphertextSelection,
    recovery_keys: Mapping[str, int],
) -> bool:
    """
    A direct share is checked against the guardian key. A reconstructed one is
    checked part by part, each against the recovery key derived for its guardian.
    """
    group = context.group
    extended_base_hash = context.crypto_extended_base_hash
    if share.proof is not None:
        return share.proof.is_valid(group, selection.ciphertext, public_key, share.share, extended_base_hash)
    for guardian_id, part in share.recovered_parts.items():
        expected = recovery_keys.get(guardian_id)
        if expected is None or part.recovery_key != expected:
            logger.warning(f"Recovered part from {guardian_id} for {share.guardian_id} has the wrong recovery key")
            return False
        if not part.proof.is_valid(group, selection.ciphertext, expected, part.share, extended_base_hash):
            return False
    return True


def decrypt_selection_with_decryption_shares(
    context: ElectionContext,
    selection: CiphertextSelection,
    shares: Mapping[str, CiphertextDecryptionSelection],
    public_keys: Mapping[str, int],
    recovery_keys: Mapping[str, Mapping[str, int]],
    discrete_log_max: int = DEFAULT_DISCRETE_LOG_MAX,
) -> Result[PlaintextSelection]:
    """recovery_keys maps each reconstructed guardian to its per-guardian recovery keys"""
    group = context.group
    for guardian_id, share in shares.items():
        if not is_valid_share(context, share, public_keys[guardian_id], selection,
                              recovery_keys.get(guardian_id, {})):
            return Result.failure(f"Invalid share from {guardian_id} for selection {selection.object_id}")

    blinding = group.mult_p(*(share.share for _, share in sorted(shares.items())))
    value = selection.ciphertext.decrypt_known_product(group, blinding)
    try:
        count = DiscreteLog(group, discrete_log_max).find(value)
    except DiscreteLogError as e:
        return Result.failure(f"Selection {selection.object_id}: {e}")

    return Result.ok(PlaintextSelection(
        object_id=selection.object_id,
        tally=count,
        value=value,
        message=selection.ciphertext,
        share_count=len(shares),
    ))


def _is_reconstructed(share: DecryptionShare) -> bool:
    return any(selection.proof is None
               for contest in share.contests.values()
               for selection in contest.selections.values())


def decrypt_tally(
    tally: CiphertextTally,
    shares: Mapping[str, DecryptionShare],
    context: ElectionContext,
    guardian_records: Sequence[GuardianRecord],
    discrete_log_max: int = DEFAULT_DISCRETE_LOG_MAX,
) -> Result[PlaintextTally]:
    """
    shares must hold one DecryptionShare per guardian, direct or reconstructed.

    Guardian keys and recovery keys come from the published guardian records,
    never from the shares themselves.
    """
    if len(shares) != context.number_of_guardians:
        return Result.failure(
            f"Need shares from all {context.number_of_guardians} guardians, got {len(shares)}")
    records = {r.guardian_id: r for r in guardian_records}
    if set(shares) != set(records):
        return Result.failure(f"Shares from {sorted(shares)} do not match guardians {sorted(records)}")

    public_keys = {guardian_id: record.election_public_key for guardian_id, record in records.items()}
    for guardian_id, share in shares.items():
        if share.public_key != public_keys[guardian_id]:
            return Result.failure(f"Share for {guardian_id} carries the wrong public key")
    recovery_keys = {
        guardian_id: recovery_public_keys(context, guardian_records, guardian_id)
        for guardian_id, share in shares.items()
        if _is_reconstructed(share)
    }

    contests = {}
    for contest_id, contest in tally.contests.items():
        plaintext_contest = PlaintextContest(contest_id)
        for selection_id, selection in contest.selections.items():
            try:
                selection_shares = {
                    guardian_id: share.contests[contest_id].selections[selection_id]
                    for guardian_id, share in shares.items()
                }
            except KeyError:
                return Result.failure(f"Missing share for {contest_id}/{selection_id}")

            plaintext = decrypt_selection_with_decryption_shares(
                context, selection, selection_shares, public_keys, recovery_keys, discrete_log_max)
            if not plaintext.is_ok:
                logger.error(f"Cannot decrypt {tally.object_id}: {plaintext.error}")
                return Result.failure(plaintext.error)
            plaintext_contest.selections[selection_id] = plaintext.value
        contests[contest_id] = plaintext_contest

    return Result.ok(PlaintextTally(tally.object_id, contests))


def decrypt_ballot(
    ballot: CiphertextBallot,
    shares: Mapping[str, DecryptionShare],
    context: ElectionContext,
    guardian_records: Sequence[GuardianRecord],
    discrete_log_max: int = DEFAULT_DISCRETE_LOG_MAX,
) -> Result[PlaintextTally]:
    return decrypt_tally(ballot, shares, context, guardian_records, discrete_log_max)
