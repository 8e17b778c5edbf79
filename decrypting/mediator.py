"""
Decryption Mediator
===================
Collects the guardians that show up for decryption, computes their shares,
compensates for every missing guardian from all available ones, and combines
the result into plaintext.
"""

import logging
from contextlib import nullcontext
from typing import Dict, List, Sequence

from egcrypto.ballot import CiphertextBallot, CiphertextTally, PlaintextTally
from egcrypto.context import ElectionContext
from egcrypto.elgamal import DEFAULT_DISCRETE_LOG_MAX
from egcrypto.errors import Result, TransportError
from keyceremony.records import GuardianRecord

from .decrypt_with_shares import decrypt_tally
from .decryptions import (
    DEFAULT_MAX_WORKERS,
    compute_compensated_decryption_share,
    compute_decryption_share,
    compute_lagrange_coefficients_for_guardians,
    reconstruct_decryption_share,
)
from .shares import DecryptionShare
from .trustee import DecryptingTrusteeIF

logger = logging.getLogger(__name__)


class DecryptionMediator:

    def __init__(
        self,
        context: ElectionContext,
        guardian_records: Sequence[GuardianRecord],
        max_workers: int = DEFAULT_MAX_WORKERS,
        discrete_log_max: int = DEFAULT_DISCRETE_LOG_MAX,
        monitor=None,
    ):
        if len(guardian_records) != context.number_of_guardians:
            raise ValueError(
                f"Expected {context.number_of_guardians} guardian records, got {len(guardian_records)}")
        self.context = context
        self.guardian_records: Dict[str, GuardianRecord] = {r.guardian_id: r for r in guardian_records}
        self.max_workers = max_workers
        self.discrete_log_max = discrete_log_max
        self.monitor = monitor
        self.available_guardians: Dict[str, DecryptingTrusteeIF] = {}

    def _phase(self, name: str):
        return self.monitor.start_operation(name) if self.monitor else nullcontext()

    def announce(self, trustee: DecryptingTrusteeIF) -> bool:
        """Register a guardian present for decryption; False if unknown, duplicate or mismatched"""
        record = self.guardian_records.get(trustee.id)
        if record is None:
            logger.warning(f"Trustee {trustee.id} is not a guardian of this election")
            return False
        if trustee.id in self.available_guardians:
            logger.warning(f"Trustee {trustee.id} already announced")
            return False
        try:
            matches = (trustee.x_coordinate == record.x_coordinate
                       and trustee.election_public_key == record.election_public_key)
        except TransportError as e:
            logger.error(f"Trustee {trustee.id} unreachable at announce: {e}")
            return False
        if not matches:
            logger.warning(f"Trustee {trustee.id} does not match its published record")
            return False

        self.available_guardians[trustee.id] = trustee
        logger.info(f"Trustee {trustee.id} announced ({len(self.available_guardians)} available)")
        return True

    @property
    def missing_guardians(self) -> List[GuardianRecord]:
        return [r for gid, r in sorted(self.guardian_records.items()) if gid not in self.available_guardians]

    def _compute_shares(self, tally: CiphertextTally) -> Result[Dict[str, DecryptionShare]]:
        if len(self.available_guardians) < self.context.quorum:
            return Result.failure(
                f"Only {len(self.available_guardians)} guardians available, quorum is {self.context.quorum}")

        shares: Dict[str, DecryptionShare] = {}
        with self._phase("decryption_shares"):
            for guardian_id, trustee in sorted(self.available_guardians.items()):
                share = compute_decryption_share(trustee, tally, self.context, self.max_workers)
                if not share.is_ok:
                    return Result.failure(share.error)
                shares[guardian_id] = share.value

        missing = self.missing_guardians
        if not missing:
            return Result.ok(shares)

        available_xs = {gid: self.guardian_records[gid].x_coordinate for gid in self.available_guardians}
        lagrange = compute_lagrange_coefficients_for_guardians(self.context.group, available_xs)

        with self._phase("compensated_shares"):
            for record in missing:
                compensated = {}
                for guardian_id, trustee in sorted(self.available_guardians.items()):
                    share = compute_compensated_decryption_share(
                        trustee, record.guardian_id, tally, self.context,
                        record.coefficient_commitments, self.max_workers)
                    if not share.is_ok:
                        return Result.failure(share.error)
                    compensated[guardian_id] = share.value

                shares[record.guardian_id] = reconstruct_decryption_share(
                    self.context.group, record.guardian_id, record.election_public_key,
                    tally, compensated, lagrange)

        return Result.ok(shares)

    def get_plaintext_tally(self, tally: CiphertextTally) -> Result[PlaintextTally]:
        logger.info(f"Decrypting tally {tally.object_id} with {len(self.available_guardians)} guardians, "
                    f"{len(self.missing_guardians)} missing")
        shares = self._compute_shares(tally)
        if not shares.is_ok:
            logger.error(f"Tally decryption failed: {shares.error}")
            return Result.failure(shares.error)

        with self._phase("combine_shares"):
            return decrypt_tally(tally, shares.value, self.context,
                                list(self.guardian_records.values()), self.discrete_log_max)

    def get_plaintext_ballots(self, ballots: Sequence[CiphertextBallot]) -> Result[Dict[str, PlaintextTally]]:
        """Decrypt individual ballots, e.g. spoiled ones, keyed by ballot id"""
        plaintexts = {}
        for ballot in ballots:
            plaintext = self.get_plaintext_tally(ballot)
            if not plaintext.is_ok:
                return Result.failure(f"Ballot {ballot.object_id}: {plaintext.error}")
            plaintexts[ballot.object_id] = plaintext.value
        return Result.ok(plaintexts)
