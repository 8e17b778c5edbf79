import os
import sys
from types import SimpleNamespace

import pytest

# Ensure repository root is on sys.path for tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from egcrypto.ballot import CiphertextBallot, CiphertextContest, CiphertextSelection, CiphertextTally
from egcrypto.elgamal import elgamal_add, elgamal_encrypt
from egcrypto.group import TEST_GROUP
from keyceremony.mediator import KeyCeremonyMediator
from keyceremony.trustee import KeyCeremonyTrustee

NUMBER_OF_GUARDIANS = 5
QUORUM = 3


@pytest.fixture(scope="session")
def group():
    return TEST_GROUP


@pytest.fixture
def make_trustees(group):
    """Fresh local trustees guardian-1..n at x = 1..n"""
    def _make(n, quorum, cls=KeyCeremonyTrustee):
        return [cls(group, f"guardian-{i}", i, quorum) for i in range(1, n + 1)]
    return _make


@pytest.fixture(scope="session")
def ceremony():
    """A completed 5-guardian, quorum-3 ceremony shared by the decryption tests"""
    trustees = [KeyCeremonyTrustee(TEST_GROUP, f"guardian-{i}", i, QUORUM)
                for i in range(1, NUMBER_OF_GUARDIANS + 1)]
    result = KeyCeremonyMediator(TEST_GROUP, trustees, QUORUM).run()
    assert result.is_ok, result.error
    results = result.value
    return SimpleNamespace(
        trustees=trustees,
        results=results,
        context=results.make_election_context("test-manifest"),
        decrypting={t.id: t.export_decrypting_trustee() for t in trustees},
    )


@pytest.fixture
def make_ballots(group):
    """Encrypt one ballot per vote: a 1 for the chosen candidate, 0 elsewhere"""
    def _make(public_key, votes, num_candidates, contest_id="contest-0"):
        ballots = []
        for index, choice in enumerate(votes):
            selections = {}
            for candidate in range(num_candidates):
                selection_id = f"candidate-{candidate}"
                ciphertext = elgamal_encrypt(group, int(candidate == choice), group.rand_range_q(1), public_key)
                selections[selection_id] = CiphertextSelection(selection_id, ciphertext)
            ballots.append(CiphertextBallot(f"ballot-{index}", {contest_id: CiphertextContest(contest_id, selections)}))
        return ballots
    return _make


@pytest.fixture
def make_tally(group):
    """Homomorphic sum of ballots into a tally"""
    def _make(ballots, object_id="tally"):
        contests = {}
        for contest_id, contest in ballots[0].contests.items():
            selections = {}
            for selection_id in contest.selections:
                ciphertext = elgamal_add(group, *(b.contests[contest_id].selections[selection_id].ciphertext
                                                  for b in ballots))
                selections[selection_id] = CiphertextSelection(selection_id, ciphertext)
            contests[contest_id] = CiphertextContest(contest_id, selections)
        return CiphertextTally(object_id, contests)
    return _make
