import argparse
import logging
import random
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

from config.config import SystemConfig, load_config
from decrypting import DecryptionMediator, connect_remote_decrypting_trustee
from egcrypto import (
    CiphertextBallot,
    CiphertextContest,
    CiphertextSelection,
    CiphertextTally,
    ElectionContext,
    KeyCeremonyError,
    elgamal_add,
    elgamal_encrypt,
)
from keyceremony import KeyCeremonyMediator, KeyCeremonyResults, KeyCeremonyTrustee, connect_remote_trustee
from utils.utils import PerformanceMonitor, create_performance_report, save_results, setup_logging

logger = logging.getLogger(__name__)

CONTEST_ID = "contest-0"


class ElectionOrchestrator:
    """Runs a key ceremony, builds a demo tally and decrypts it with some guardians absent"""

    def __init__(self, config: SystemConfig, remote: bool = False):
        self.config = config
        self.remote = remote
        self.group = config.group_config.group()
        self.performance_monitor = PerformanceMonitor() if config.enable_benchmarking else None
        self.trustees: List[KeyCeremonyTrustee] = []
        self.results: Dict = {}

        logger.info(f"Initialized orchestrator on group '{self.group.name}' (remote={remote})")

    def run_key_ceremony(self) -> KeyCeremonyResults:
        ceremony = self.config.ceremony_config
        self.trustees = [
            KeyCeremonyTrustee(self.group, f"guardian-{i}", i, ceremony.quorum,
                               auxiliary_key_size=ceremony.auxiliary_key_size)
            for i in range(1, ceremony.number_of_guardians + 1)
        ]
        handles = [connect_remote_trustee(t) for t in self.trustees] if self.remote else self.trustees

        mediator = KeyCeremonyMediator(self.group, handles, ceremony.quorum, self.performance_monitor)
        result = mediator.run()
        if not result.is_ok:
            raise KeyCeremonyError(result.error)

        results = result.value
        self.results['key_ceremony'] = {
            'number_of_guardians': results.number_of_guardians,
            'quorum': results.quorum,
            'commitment_hash': results.commitment_hash,
            'resolved_disputes': results.resolved_disputes,
        }
        return results

    def encrypt_votes(self, context: ElectionContext, votes: List[int], num_candidates: int) -> CiphertextTally:
        """One ballot per vote, accumulated homomorphically into a tally"""
        ballots: List[CiphertextBallot] = []
        for index, choice in enumerate(votes):
            selections = {}
            for candidate in range(num_candidates):
                selection_id = f"candidate-{candidate}"
                ciphertext = elgamal_encrypt(
                    self.group, int(candidate == choice), self.group.rand_range_q(1), context.joint_public_key)
                selections[selection_id] = CiphertextSelection(selection_id, ciphertext)
            ballots.append(CiphertextBallot(f"ballot-{index}", {CONTEST_ID: CiphertextContest(CONTEST_ID, selections)}))

        tally_selections = {}
        for candidate in range(num_candidates):
            selection_id = f"candidate-{candidate}"
            tally_selections[selection_id] = CiphertextSelection(selection_id, elgamal_add(
                self.group, *(b.contests[CONTEST_ID].selections[selection_id].ciphertext for b in ballots)))
        return CiphertextTally("demo-tally", {CONTEST_ID: CiphertextContest(CONTEST_ID, tally_selections)})

    def decrypt(self, ceremony: KeyCeremonyResults, context: ElectionContext, tally: CiphertextTally,
                missing: int) -> Optional[Dict[str, Dict[str, int]]]:
        decryption = self.config.decryption_config
        mediator = DecryptionMediator(context, ceremony.guardian_records, decryption.max_workers,
                                      decryption.discrete_log_max, self.performance_monitor)

        present = self.trustees[:len(self.trustees) - missing]
        for trustee in present:
            decrypting = trustee.export_decrypting_trustee()
            mediator.announce(connect_remote_decrypting_trustee(decrypting) if self.remote else decrypting)

        self.results['missing_guardians'] = [r.guardian_id for r in mediator.missing_guardians]
        plaintext = mediator.get_plaintext_tally(tally)
        if not plaintext.is_ok:
            logger.error(f"Decryption failed: {plaintext.error}")
            return None
        counts = plaintext.value.counts()
        self.results['tally'] = counts
        return counts


def run_demo(config: SystemConfig, num_voters: int, num_candidates: int, missing: int, remote: bool) -> bool:
    print("=" * 80)
    print("GUARDIAN KEY CEREMONY AND THRESHOLD DECRYPTION DEMO")
    print("=" * 80)

    ceremony_config = config.ceremony_config
    if missing > ceremony_config.number_of_guardians - ceremony_config.quorum:
        print(f"Cannot decrypt with {missing} of {ceremony_config.number_of_guardians} guardians missing "
              f"(quorum {ceremony_config.quorum})")
        return False

    orchestrator = ElectionOrchestrator(config, remote)

    start = time.time()
    try:
        ceremony = orchestrator.run_key_ceremony()
    except KeyCeremonyError as e:
        print(f"\nKey ceremony failed: {e}")
        return False
    context = ceremony.make_election_context(ceremony_config.manifest_hash)
    print(f"\nKey ceremony: {ceremony.number_of_guardians} guardians, quorum {ceremony.quorum} "
          f"({time.time() - start:.2f}s)")

    votes = [random.randrange(num_candidates) for _ in range(num_voters)]
    tally = orchestrator.encrypt_votes(context, votes, num_candidates)

    start = time.time()
    counts = orchestrator.decrypt(ceremony, context, tally, missing)
    if counts is None:
        print("\nDecryption failed")
        return False
    print(f"Decryption with {missing} guardian(s) missing ({time.time() - start:.2f}s)")

    print("\nFinal Tally:")
    for selection_id, count in counts[CONTEST_ID].items():
        expected = votes.count(int(selection_id.split("-")[1]))
        status = "OK" if count == expected else f"MISMATCH (expected {expected})"
        print(f"  {selection_id}: {count} votes {status}")

    report_path = config.results_dir / "demo_report.json"
    save_results(orchestrator.results, report_path)
    if orchestrator.performance_monitor:
        with open(config.results_dir / "performance_report.txt", "w") as f:
            f.write(create_performance_report(orchestrator.performance_monitor))
        orchestrator.performance_monitor.save_metrics(config.results_dir / "performance_metrics.json")

    print(f"\nFull results saved to: {report_path}")
    return all(counts[CONTEST_ID][f"candidate-{c}"] == votes.count(c) for c in range(num_candidates))


def main():
    parser = argparse.ArgumentParser(description='Guardian key ceremony and threshold decryption')
    parser.add_argument('--voters', type=int, default=20, help='Number of voters')
    parser.add_argument('--candidates', type=int, default=3, help='Number of candidates')
    parser.add_argument('--missing', type=int, default=2, help='Guardians absent at decryption')
    parser.add_argument('--config', type=str, default='config.yaml', help='Config file path')
    parser.add_argument('--remote', action='store_true', help='Reach trustees through message channels')

    args = parser.parse_args()

    config = load_config(Path(args.config))
    setup_logging(config.log_level, config.log_dir / "guardians.log")

    success = run_demo(config, args.voters, args.candidates, args.missing, args.remote)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
