"""
Key Ceremony Mediator
=====================
Drives N trustees through the four ceremony rounds:

1. public key exchange
2. partial key backup exchange and verification
3. challenge resolution for disputed backups
4. joint key agreement

then publishes the joint election key and the commitment hash.
"""

import logging
from collections import defaultdict
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from egcrypto.context import ElectionContext, make_election_context
from egcrypto.elgamal import elgamal_combine_public_keys
from egcrypto.errors import Result, TransportError
from egcrypto.group import GroupContext

from .polynomial import verify_polynomial_coordinate
from .records import GuardianRecord, PartialKeyChallengeResponse, PartialKeyVerification, PublicKeySet
from .trustee import KeyCeremonyTrusteeIF

logger = logging.getLogger(__name__)


def verify_partial_key_challenge(
    group: GroupContext,
    response: PartialKeyChallengeResponse,
    commitments: Sequence[int],
    designated_x_coordinate: int,
) -> PartialKeyVerification:
    """
    Check a published coordinate against the generator's commitments.

    The coordinate is evaluated at the x the mediator knows for the designated
    guardian, never at the x the response claims.
    """
    generator_id = response.generating_guardian_id
    designated_id = response.designated_guardian_id
    if response.error:
        return PartialKeyVerification(generator_id, designated_id, response.error)
    if response.designated_guardian_x_coordinate != designated_x_coordinate:
        return PartialKeyVerification(
            generator_id, designated_id,
            f"Challenge response is for x={response.designated_guardian_x_coordinate}, "
            f"expected x={designated_x_coordinate}")
    if not verify_polynomial_coordinate(group, response.coordinate, designated_x_coordinate, commitments):
        return PartialKeyVerification(generator_id, designated_id,
                                      f"Challenge coordinate from '{generator_id}' does not match its commitments")
    return PartialKeyVerification(generator_id, designated_id)


def compute_commitment_hash(group: GroupContext, public_key_sets: Sequence[PublicKeySet]) -> int:
    """Hash of all coefficient commitments, concatenated in guardian id order"""
    commitments: List[int] = []
    for keys in sorted(public_key_sets, key=lambda k: k.owner_id):
        commitments.extend(keys.coefficient_commitments)
    return group.hash_elems(*commitments)


@dataclass
class KeyCeremonyResults:
    group: GroupContext
    quorum: int
    joint_public_key: int
    commitment_hash: int
    guardian_records: List[GuardianRecord]
    resolved_disputes: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def number_of_guardians(self) -> int:
        return len(self.guardian_records)

    def make_election_context(self, manifest_hash: str = "") -> ElectionContext:
        return make_election_context(
            self.group,
            self.number_of_guardians,
            self.quorum,
            self.joint_public_key,
            self.commitment_hash,
            manifest_hash,
        )


class KeyCeremonyMediator:
    """Runs the ceremony over any mix of local and remote trustees"""

    def __init__(self, group: GroupContext, trustees: Sequence[KeyCeremonyTrusteeIF], quorum: int, monitor=None):
        if not 1 <= quorum <= len(trustees):
            raise ValueError(f"Quorum {quorum} must be in [1, {len(trustees)}]")
        ids = [t.id for t in trustees]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Trustee ids must be unique: {ids}")
        xs = [t.x_coordinate for t in trustees]
        if len(set(xs)) != len(xs):
            raise ValueError(f"Trustee x coordinates must be unique: {xs}")

        self.group = group
        self.trustees = list(trustees)
        self.quorum = quorum
        self.monitor = monitor

        self.public_key_sets: Dict[str, PublicKeySet] = {}
        self.disputes: Dict[str, List[str]] = defaultdict(list)
        self.resolved_disputes: List[Tuple[str, str]] = []

    def _phase(self, name: str):
        return self.monitor.start_operation(name) if self.monitor else nullcontext()

    def run(self) -> Result[KeyCeremonyResults]:
        rounds = [
            ("round_1_public_keys", self.round1),
            ("round_2_backups", self.round2),
            ("round_3_challenges", self.round3),
            ("round_4_joint_key", self.round4),
        ]
        for name, run_round in rounds:
            with self._phase(f"key_ceremony_{name}"):
                ok = run_round()
            if not ok:
                logger.error(f"Key ceremony failed at {name}")
                return Result.failure(f"Key ceremony failed at {name}")
            logger.info(f"Key ceremony {name} complete")

        key_sets = sorted(self.public_key_sets.values(), key=lambda k: k.owner_id)
        joint_key = elgamal_combine_public_keys(self.group, (k.election_public_key for k in key_sets))
        results = KeyCeremonyResults(
            group=self.group,
            quorum=self.quorum,
            joint_public_key=joint_key,
            commitment_hash=compute_commitment_hash(self.group, key_sets),
            guardian_records=[GuardianRecord.from_public_keys(k) for k in key_sets],
            resolved_disputes=list(self.resolved_disputes),
        )
        logger.info(f"Key ceremony complete for {len(key_sets)} guardians, quorum {self.quorum}")
        return Result.ok(results)

    # ---- round 1 ----

    def round1(self) -> bool:
        """Collect every trustee's public keys and push them to all the others"""
        ok = True
        for trustee in self.trustees:
            try:
                keys = trustee.send_public_keys()
            except TransportError as e:
                logger.error(f"Round 1: trustee {trustee.id} did not send public keys: {e}")
                return False
            if keys.owner_id != trustee.id:
                logger.error(f"Round 1: trustee {trustee.id} sent keys owned by '{keys.owner_id}'")
                return False
            if keys.x_coordinate != trustee.x_coordinate:
                logger.error(f"Round 1: trustee {trustee.id} at x={trustee.x_coordinate} "
                             f"published keys for x={keys.x_coordinate}")
                return False
            self.public_key_sets[trustee.id] = keys

            for other in self.trustees:
                if other.id == trustee.id:
                    continue
                try:
                    accepted = other.receive_public_keys(keys)
                except TransportError as e:
                    logger.error(f"Round 1: trustee {other.id} unreachable for keys of {trustee.id}: {e}")
                    return False
                if not accepted:
                    logger.error(f"Round 1: trustee {other.id} rejected public keys of {trustee.id}")
                    ok = False
        return ok

    # ---- round 2 ----

    def round2(self) -> bool:
        """Every ordered pair exchanges and verifies a backup; failures become disputes"""
        for generator in self.trustees:
            for designated in self.trustees:
                if generator.id == designated.id:
                    continue
                try:
                    backup = generator.send_partial_key_backup(designated.id)
                    if backup.error:
                        logger.error(f"Round 2: {generator.id} failed to make backup for {designated.id}: {backup.error}")
                        return False
                    verification = designated.verify_partial_key_backup(backup)
                except TransportError as e:
                    logger.error(f"Round 2: transport failure between {generator.id} and {designated.id}: {e}")
                    return False

                if not verification.verified:
                    logger.warning(f"Round 2: {designated.id} disputes backup from {generator.id}: {verification.error}")
                    self.disputes[generator.id].append(designated.id)
        return True

    # ---- round 3 ----

    def round3(self) -> bool:
        """Disputed generators publish the coordinate in the clear; a bad one ends the ceremony"""
        if not self.disputes:
            return True

        by_id = {t.id: t for t in self.trustees}
        for generator_id, designated_ids in self.disputes.items():
            generator = by_id[generator_id]
            commitments = self.public_key_sets[generator_id].coefficient_commitments
            for designated_id in designated_ids:
                try:
                    response = generator.send_backup_challenge_response(designated_id)
                except TransportError as e:
                    logger.error(f"Round 3: trustee {generator_id} unreachable for challenge: {e}")
                    return False

                if (response.generating_guardian_id != generator_id
                        or response.designated_guardian_id != designated_id):
                    logger.error(f"Round 3: {generator_id} answered the challenge by {designated_id} "
                                 f"for ({response.generating_guardian_id}, {response.designated_guardian_id})")
                    return False

                designated_x = self.public_key_sets[designated_id].x_coordinate
                verification = verify_partial_key_challenge(self.group, response, commitments, designated_x)
                if not verification.verified:
                    logger.error(f"Round 3: challenge of {generator_id} by {designated_id} failed: "
                                 f"{verification.error}")
                    return False
                logger.info(f"Round 3: dispute of {generator_id} by {designated_id} dismissed")
                self.resolved_disputes.append((generator_id, designated_id))
        return True

    # ---- round 4 ----

    def round4(self) -> bool:
        """All trustees must publish the same joint key"""
        expected = elgamal_combine_public_keys(
            self.group, (k.election_public_key for _, k in sorted(self.public_key_sets.items())))

        ok = True
        for trustee in self.trustees:
            try:
                joint_key = trustee.send_joint_public_key()
            except TransportError as e:
                logger.error(f"Round 4: trustee {trustee.id} did not send joint key: {e}")
                return False
            if joint_key != expected:
                logger.error(f"Round 4: trustee {trustee.id} published a different joint key")
                ok = False
        return ok
