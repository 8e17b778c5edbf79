from dataclasses import replace

import pytest

from egcrypto.errors import TransportError
from egcrypto.wire import LoopbackChannel
from keyceremony.mediator import KeyCeremonyMediator, compute_commitment_hash, verify_partial_key_challenge
from keyceremony.polynomial import compute_polynomial_coordinate
from keyceremony.records import PartialKeyChallengeResponse
from keyceremony.remote import KeyCeremonyTrusteeService, RemoteKeyCeremonyTrustee
from keyceremony.trustee import KeyCeremonyTrustee, TrusteeState


def _flip(backup):
    data = bytearray(backup.encrypted_coordinate)
    data[-1] ^= 0x01
    return replace(backup, encrypted_coordinate=bytes(data))


class FlakyTrustee(KeyCeremonyTrustee):
    """Sends guardian-2 a corrupted copy of an otherwise good backup"""

    def send_partial_key_backup(self, target_guardian_id):
        backup = super().send_partial_key_backup(target_guardian_id)
        return _flip(backup) if target_guardian_id == "guardian-2" else backup


class LyingTrustee(FlakyTrustee):
    """Also publishes a wrong coordinate when challenged"""

    def send_backup_challenge_response(self, target_guardian_id):
        response = super().send_backup_challenge_response(target_guardian_id)
        return replace(response, coordinate=self.group.add_q(response.coordinate, 1))


class WrongXChallenger(FlakyTrustee):
    """Answers the challenge with its true coordinate for a different guardian's x"""

    def send_backup_challenge_response(self, target_guardian_id):
        coordinate = compute_polynomial_coordinate(self.group, 3, self._polynomial)
        return PartialKeyChallengeResponse(self.id, target_guardian_id, 3, coordinate)


class MisaddressedChallenger(FlakyTrustee):
    """Answers the challenge by guardian-2 with the response meant for guardian-3"""

    def send_backup_challenge_response(self, target_guardian_id):
        return super().send_backup_challenge_response("guardian-3")


class DuplicateXTrustee(KeyCeremonyTrustee):
    """Sits at its own x but publishes keys claiming guardian-1's x"""

    def send_public_keys(self):
        return replace(super().send_public_keys(), x_coordinate=1)


class DivergentTrustee(KeyCeremonyTrustee):
    def send_joint_public_key(self):
        return self.group.mult_p(super().send_joint_public_key(), self.group.g)


class FailingChannel(LoopbackChannel):
    def __init__(self, service, failing_method):
        super().__init__(service)
        self.failing_method = failing_method

    def call(self, method, request):
        if method == self.failing_method:
            raise TransportError(f"connection lost during {method}")
        return super().call(method, request)


def test_ceremony_succeeds(make_trustees, group):
    trustees = make_trustees(3, 2)
    result = KeyCeremonyMediator(group, trustees, 2).run()
    assert result.is_ok, result.error

    results = result.value
    expected = group.mult_p(*(t.election_public_key for t in trustees))
    assert results.joint_public_key == expected
    assert all(t.send_joint_public_key() == expected for t in trustees)
    assert all(t.state == TrusteeState.JOINT_KEY_PUBLISHED for t in trustees)
    assert [r.guardian_id for r in results.guardian_records] == ["guardian-1", "guardian-2", "guardian-3"]
    assert results.resolved_disputes == []
    assert all(len(t.other_guardian_partial_key_backups) == 2 for t in trustees)


def test_commitment_hash_ignores_trustee_order(make_trustees, group):
    trustees = make_trustees(3, 2)
    forward = KeyCeremonyMediator(group, trustees, 2).run().unwrap()
    keys = [t.share_public_keys() for t in trustees]
    assert forward.commitment_hash == compute_commitment_hash(group, list(reversed(keys)))

    context = forward.make_election_context("manifest")
    assert context.crypto_extended_base_hash == group.hash_elems(context.crypto_base_hash, forward.commitment_hash)
    assert context.number_of_guardians == 3 and context.quorum == 2


def test_challenge_resolves_bad_delivery(make_trustees, group):
    trustees = [FlakyTrustee(group, "guardian-1", 1, 2)] + make_trustees(3, 2)[1:]
    mediator = KeyCeremonyMediator(group, trustees, 2)
    result = mediator.run()
    assert result.is_ok, result.error
    assert dict(mediator.disputes) == {"guardian-1": ["guardian-2"]}
    assert result.value.resolved_disputes == [("guardian-1", "guardian-2")]


def test_challenge_with_wrong_coordinate_aborts(make_trustees, group):
    trustees = [LyingTrustee(group, "guardian-1", 1, 2)] + make_trustees(3, 2)[1:]
    result = KeyCeremonyMediator(group, trustees, 2).run()
    assert not result.is_ok
    assert "round_3" in result.error


@pytest.mark.parametrize("challenger", [WrongXChallenger, MisaddressedChallenger])
def test_challenge_answered_for_another_guardian_aborts(make_trustees, group, challenger):
    trustees = [challenger(group, "guardian-1", 1, 2)] + make_trustees(3, 2)[1:]
    mediator = KeyCeremonyMediator(group, trustees, 2)
    result = mediator.run()
    assert not result.is_ok
    assert "round_3" in result.error
    assert mediator.resolved_disputes == []


def test_challenge_is_checked_at_the_designated_x(make_trustees, group):
    alice, bob, carol = make_trustees(3, 2)
    commitments = alice.share_public_keys().coefficient_commitments
    coordinate_for_carol = compute_polynomial_coordinate(group, carol.x_coordinate, alice._polynomial)
    response = PartialKeyChallengeResponse(alice.id, bob.id, carol.x_coordinate, coordinate_for_carol)

    assert not verify_partial_key_challenge(group, response, commitments, bob.x_coordinate).verified
    assert verify_partial_key_challenge(group, response, commitments, carol.x_coordinate).verified


def test_published_x_must_match_trustee_x(make_trustees, group):
    trustees = make_trustees(2, 2) + [DuplicateXTrustee(group, "guardian-3", 3, 2)]
    result = KeyCeremonyMediator(group, trustees, 2).run()
    assert not result.is_ok
    assert "round_1" in result.error


def test_joint_key_disagreement_fails(make_trustees, group):
    trustees = make_trustees(2, 2) + [DivergentTrustee(group, "guardian-3", 3, 2)]
    result = KeyCeremonyMediator(group, trustees, 2).run()
    assert not result.is_ok
    assert "round_4" in result.error


@pytest.mark.parametrize("method,failed_round", [
    ("receive_public_keys", "round_1"),
    ("verify_partial_key_backup", "round_2"),
    ("send_joint_public_key", "round_4"),
])
def test_transport_failure_fails_round(make_trustees, group, method, failed_round):
    local = make_trustees(3, 2)
    broken = local[2]
    remote = RemoteKeyCeremonyTrustee(group, broken.id, broken.x_coordinate,
                                      FailingChannel(KeyCeremonyTrusteeService(broken), method))
    result = KeyCeremonyMediator(group, local[:2] + [remote], 2).run()
    assert not result.is_ok
    assert failed_round in result.error


def test_mediator_validates_trustees(make_trustees, group):
    trustees = make_trustees(3, 2)
    with pytest.raises(ValueError):
        KeyCeremonyMediator(group, trustees, 4)
    with pytest.raises(ValueError):
        KeyCeremonyMediator(group, trustees + [KeyCeremonyTrustee(group, "guardian-9", 1, 2)], 2)
    with pytest.raises(ValueError):
        KeyCeremonyMediator(group, trustees + [KeyCeremonyTrustee(group, "guardian-1", 9, 2)], 2)
