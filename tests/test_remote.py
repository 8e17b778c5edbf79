import json

import pytest

from decrypting.mediator import DecryptionMediator
from decrypting.remote import connect_remote_decrypting_trustee
from egcrypto.errors import TransportError
from egcrypto.wire import LoopbackChannel, element_from_wire, element_to_wire
from keyceremony.mediator import KeyCeremonyMediator
from keyceremony.remote import KeyCeremonyTrusteeService, RemoteKeyCeremonyTrustee, connect_remote_trustee


class GarblingChannel(LoopbackChannel):
    """Delivers responses with one field removed"""

    def call(self, method, request):
        response = super().call(method, request)
        return {key: value for key, value in list(response.items())[1:]}


def test_remote_ceremony_matches_local_semantics(make_trustees, group):
    trustees = make_trustees(3, 2)
    remote = [connect_remote_trustee(t) for t in trustees]
    result = KeyCeremonyMediator(group, remote, 2).run()
    assert result.is_ok, result.error
    assert result.value.joint_public_key == group.mult_p(*(t.election_public_key for t in trustees))
    assert all(len(t.other_guardian_partial_key_backups) == 2 for t in trustees)


def test_mixed_local_and_remote_trustees(make_trustees, group):
    trustees = make_trustees(3, 2)
    handles = [trustees[0], connect_remote_trustee(trustees[1]), trustees[2]]
    assert KeyCeremonyMediator(group, handles, 2).run().is_ok


def test_wire_elements_are_fixed_width(group):
    text = element_to_wire(group, 5)
    assert len(text) == group.element_byte_length * 2
    assert element_from_wire(group, text) == 5
    with pytest.raises(ValueError):
        element_from_wire(group, "05")


def test_service_reports_malformed_messages(make_trustees):
    trustee, = make_trustees(1, 1)
    service = KeyCeremonyTrusteeService(trustee)
    assert "transport_error" in json.loads(service.handle("not json"))
    assert "transport_error" in json.loads(service.handle(json.dumps({"method": "nope", "request": {}})))
    assert "transport_error" in json.loads(service.handle(
        json.dumps({"method": "receive_public_keys", "request": {"public_keys": {}}})))


def test_proxy_raises_transport_error_on_bad_response(make_trustees, group):
    trustee, = make_trustees(1, 1)
    proxy = RemoteKeyCeremonyTrustee(group, trustee.id, trustee.x_coordinate,
                                     GarblingChannel(KeyCeremonyTrusteeService(trustee)))
    with pytest.raises(TransportError):
        proxy.send_public_keys()


def test_protocol_errors_travel_as_values(make_trustees):
    trustee, = make_trustees(1, 1)
    proxy = connect_remote_trustee(trustee)
    backup = proxy.send_partial_key_backup("nobody")
    assert backup.error
    response = proxy.send_backup_challenge_response("nobody")
    assert response.error


def test_remote_decryption_with_missing_guardian(ceremony, make_ballots, make_tally):
    tally = make_tally(make_ballots(ceremony.context.joint_public_key, [1, 0, 1], 2))
    mediator = DecryptionMediator(ceremony.context, ceremony.results.guardian_records)
    for guardian_id in ["guardian-1", "guardian-2", "guardian-4", "guardian-5"]:
        assert mediator.announce(connect_remote_decrypting_trustee(ceremony.decrypting[guardian_id]))

    plaintext = mediator.get_plaintext_tally(tally)
    assert plaintext.is_ok, plaintext.error
    assert plaintext.value.counts() == {"contest-0": {"candidate-0": 1, "candidate-1": 2}}


def test_remote_decrypting_trustee_reports_missing_backup(ceremony):
    proxy = connect_remote_decrypting_trustee(ceremony.decrypting["guardian-1"])
    assert not proxy.recover_public_key("nobody").is_ok
    assert proxy.recover_public_key("guardian-2").value == \
        ceremony.decrypting["guardian-1"].recover_public_key("guardian-2").value
