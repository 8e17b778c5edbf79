from dataclasses import replace
from itertools import combinations

import pytest

from decrypting.decrypt_with_shares import decrypt_tally
from decrypting.decryptions import (
    compute_compensated_decryption_share,
    compute_decryption_share,
    compute_decryption_share_for_ballots,
    compute_lagrange_coefficients_for_guardians,
    reconstruct_decryption_share,
)
from decrypting.mediator import DecryptionMediator
from decrypting.shares import DecryptionProofTuple
from decrypting.trustee import DecryptingTrustee
from zk.proofs import make_chaum_pedersen
from egcrypto.errors import Result

VOTES = [0, 1, 1, 2, 1, 0, 1]
EXPECTED = {"contest-0": {"candidate-0": 2, "candidate-1": 4, "candidate-2": 1}}


@pytest.fixture
def tally(ceremony, make_ballots, make_tally):
    return make_tally(make_ballots(ceremony.context.joint_public_key, VOTES, 3))


def _mediator(ceremony, present_ids):
    mediator = DecryptionMediator(ceremony.context, ceremony.results.guardian_records)
    for guardian_id in present_ids:
        assert mediator.announce(ceremony.decrypting[guardian_id])
    return mediator


class CheatingTrustee(DecryptingTrustee):
    """Returns a partial decryption that does not match its proof"""

    def partial_decrypt(self, texts, extended_base_hash, nonce_seed=None):
        result = super().partial_decrypt(texts, extended_base_hash, nonce_seed)
        return Result.ok([DecryptionProofTuple(self.group.mult_p(r.partial_decryption, self.group.g), r.proof)
                          for r in result.value])


def test_full_decryption(ceremony, tally):
    mediator = _mediator(ceremony, sorted(ceremony.decrypting))
    plaintext = mediator.get_plaintext_tally(tally)
    assert plaintext.is_ok, plaintext.error
    assert plaintext.value.counts() == EXPECTED


def test_decryption_with_two_missing_guardians_matches_full(ceremony, tally):
    full = _mediator(ceremony, sorted(ceremony.decrypting)).get_plaintext_tally(tally).unwrap()
    partial = _mediator(ceremony, ["guardian-1", "guardian-3", "guardian-5"]).get_plaintext_tally(tally).unwrap()
    assert partial.counts() == full.counts() == EXPECTED
    for contest_id, contest in full.contests.items():
        for selection_id, selection in contest.selections.items():
            assert partial.contests[contest_id].selections[selection_id].value == selection.value


def test_below_quorum_fails(ceremony, tally):
    result = _mediator(ceremony, ["guardian-1", "guardian-2"]).get_plaintext_tally(tally)
    assert not result.is_ok
    assert "quorum" in result.error


def test_announce_rejects_unknown_and_duplicate(ceremony, group):
    mediator = _mediator(ceremony, ["guardian-1"])
    assert not mediator.announce(ceremony.decrypting["guardian-1"])
    outsider = ceremony.decrypting["guardian-2"]
    impostor = DecryptingTrustee(group, "guardian-9", 9, outsider._election_keypair, {}, {})
    assert not mediator.announce(impostor)
    wrong_x = DecryptingTrustee(group, "guardian-2", 9, outsider._election_keypair, {}, {})
    assert not mediator.announce(wrong_x)


def test_reconstructed_share_equals_direct_share_for_any_quorum(ceremony, make_ballots, make_tally, group):
    context = ceremony.context
    small_tally = make_tally(make_ballots(context.joint_public_key, [0, 0, 1], 1))
    records = {r.guardian_id: r for r in ceremony.results.guardian_records}
    direct = {gid: compute_decryption_share(t, small_tally, context).unwrap()
              for gid, t in ceremony.decrypting.items()}

    for available in combinations(sorted(records), 3):
        lagrange = compute_lagrange_coefficients_for_guardians(
            group, {gid: records[gid].x_coordinate for gid in available})
        for missing_id in sorted(set(records) - set(available)):
            compensated = {
                gid: compute_compensated_decryption_share(
                    ceremony.decrypting[gid], missing_id, small_tally, context,
                    records[missing_id].coefficient_commitments).unwrap()
                for gid in available
            }
            rebuilt = reconstruct_decryption_share(
                group, missing_id, records[missing_id].election_public_key, small_tally, compensated, lagrange)
            expected = direct[missing_id].contests["contest-0"].selections["candidate-0"].share
            assert rebuilt.contests["contest-0"].selections["candidate-0"].share == expected


def test_invalid_proof_fails_whole_share(ceremony, tally, group):
    honest = ceremony.decrypting["guardian-1"]
    cheater = CheatingTrustee(group, honest.id, honest.x_coordinate, honest._election_keypair, {},
                              honest.guardian_commitments)
    result = compute_decryption_share(cheater, tally, ceremony.context)
    assert not result.is_ok
    assert "invalid proof" in result.error


def test_compensated_share_needs_backup(ceremony, tally):
    trustee = ceremony.decrypting["guardian-1"]
    records = {r.guardian_id: r for r in ceremony.results.guardian_records}
    result = compute_compensated_decryption_share(
        trustee, "guardian-9", tally, ceremony.context, records["guardian-2"].coefficient_commitments)
    assert not result.is_ok


def test_compensated_share_checks_recovery_key(ceremony, tally):
    records = {r.guardian_id: r for r in ceremony.results.guardian_records}
    result = compute_compensated_decryption_share(
        ceremony.decrypting["guardian-1"], "guardian-2", tally, ceremony.context,
        records["guardian-3"].coefficient_commitments)
    assert not result.is_ok
    assert "recovery key" in result.error


def test_reconstruct_requires_every_selection(ceremony, tally, group):
    records = {r.guardian_id: r for r in ceremony.results.guardian_records}
    available = ["guardian-1", "guardian-2", "guardian-3"]
    compensated = {
        gid: compute_compensated_decryption_share(ceremony.decrypting[gid], "guardian-4", tally, ceremony.context,
                                                  records["guardian-4"].coefficient_commitments).unwrap()
        for gid in available
    }
    lagrange = compute_lagrange_coefficients_for_guardians(group, {gid: records[gid].x_coordinate for gid in available})

    del compensated["guardian-2"].contests["contest-0"].selections["candidate-1"]
    with pytest.raises(ValueError):
        reconstruct_decryption_share(group, "guardian-4", records["guardian-4"].election_public_key,
                                     tally, compensated, lagrange)
    with pytest.raises(ValueError):
        reconstruct_decryption_share(group, "guardian-4", records["guardian-4"].election_public_key,
                                     tally, compensated, {"guardian-1": 1})


def test_decrypt_tally_rejects_tampered_share(ceremony, tally):
    shares = {gid: compute_decryption_share(t, tally, ceremony.context).unwrap()
              for gid, t in ceremony.decrypting.items()}
    selection = shares["guardian-2"].contests["contest-0"].selections["candidate-0"]
    shares["guardian-2"].contests["contest-0"].selections["candidate-0"] = replace(
        selection, share=ceremony.context.group.mult_p(selection.share, ceremony.context.group.g))
    result = decrypt_tally(tally, shares, ceremony.context, ceremony.results.guardian_records)
    assert not result.is_ok


def test_decrypt_tally_needs_every_guardian(ceremony, tally):
    shares = {gid: compute_decryption_share(t, tally, ceremony.context).unwrap()
              for gid, t in list(ceremony.decrypting.items())[:4]}
    assert not decrypt_tally(tally, shares, ceremony.context, ceremony.results.guardian_records).is_ok


def test_spoiled_ballots_decrypt_individually(ceremony, make_ballots):
    ballots = make_ballots(ceremony.context.joint_public_key, [2, 0], 3)
    result = _mediator(ceremony, ["guardian-2", "guardian-4", "guardian-5"]).get_plaintext_ballots(ballots)
    assert result.is_ok, result.error
    assert result.value["ballot-0"].counts() == {"contest-0": {"candidate-0": 0, "candidate-1": 0, "candidate-2": 1}}
    assert result.value["ballot-1"].counts() == {"contest-0": {"candidate-0": 1, "candidate-1": 0, "candidate-2": 0}}


def test_shares_for_ballots_keyed_by_ballot(ceremony, make_ballots):
    ballots = make_ballots(ceremony.context.joint_public_key, [1, 1], 2)
    shares = compute_decryption_share_for_ballots(ceremony.decrypting["guardian-1"], ballots, ceremony.context).unwrap()
    assert sorted(shares) == ["ballot-0", "ballot-1"]
    assert shares["ballot-0"].guardian_id == "guardian-1"


def test_decrypt_tally_checks_recovered_parts_against_commitments(ceremony, tally, group):
    mediator = _mediator(ceremony, ["guardian-1", "guardian-2", "guardian-3"])
    shares = mediator._compute_shares(tally).unwrap()
    records = ceremony.results.guardian_records
    assert decrypt_tally(tally, shares, ceremony.context, records).unwrap().counts() == EXPECTED

    # A part whose proof is consistent with a made-up recovery key
    selection = tally.contests["contest-0"].selections["candidate-0"]
    parts = shares["guardian-4"].contests["contest-0"].selections["candidate-0"].recovered_parts
    fake_secret = group.rand_range_q(2)
    fake_share = selection.ciphertext.partial_decrypt(group, fake_secret)
    fake_proof = make_chaum_pedersen(group, selection.ciphertext, fake_secret, fake_share,
                                     ceremony.context.crypto_extended_base_hash)
    assert fake_proof.is_valid(group, selection.ciphertext, group.g_pow_p(fake_secret), fake_share,
                               ceremony.context.crypto_extended_base_hash)
    parts["guardian-1"] = replace(parts["guardian-1"], share=fake_share,
                                  recovery_key=group.g_pow_p(fake_secret), proof=fake_proof)

    result = decrypt_tally(tally, shares, ceremony.context, records)
    assert not result.is_ok
    assert "guardian-4" in result.error


def test_decrypt_tally_uses_published_public_keys(ceremony, tally, group):
    shares = {gid: compute_decryption_share(t, tally, ceremony.context).unwrap()
              for gid, t in ceremony.decrypting.items()}
    shares["guardian-3"] = replace(shares["guardian-3"], public_key=group.g_pow_p(7))
    result = decrypt_tally(tally, shares, ceremony.context, ceremony.results.guardian_records)
    assert not result.is_ok
    assert "public key" in result.error
