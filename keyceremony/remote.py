"""
Message-passing key ceremony trustee.

RemoteKeyCeremonyTrustee is the mediator-side proxy; KeyCeremonyTrusteeService
wraps a local KeyCeremonyTrustee on the guardian side. Any undeliverable or
undecodable message surfaces as TransportError.
"""

import logging

from egcrypto.errors import TransportError
from egcrypto.group import GroupContext
from egcrypto.wire import (
    Channel,
    LoopbackChannel,
    Message,
    MessageService,
    bytes_from_wire,
    bytes_to_wire,
    element_from_wire,
    element_to_wire,
    scalar_from_wire,
    scalar_to_wire,
)
from zk.proofs import SchnorrProof

from .records import PartialKeyBackup, PartialKeyChallengeResponse, PartialKeyVerification, PublicKeySet
from .trustee import KeyCeremonyTrustee, KeyCeremonyTrusteeIF

logger = logging.getLogger(__name__)


# ============================================================================
# RECORD CODEC
# ============================================================================


def schnorr_to_wire(group: GroupContext, proof: SchnorrProof) -> Message:
    return {
        "public_key": element_to_wire(group, proof.public_key),
        "commitment": element_to_wire(group, proof.commitment),
        "challenge": scalar_to_wire(group, proof.challenge),
        "response": scalar_to_wire(group, proof.response),
    }


def schnorr_from_wire(group: GroupContext, message: Message) -> SchnorrProof:
    return SchnorrProof(
        public_key=element_from_wire(group, message["public_key"]),
        commitment=element_from_wire(group, message["commitment"]),
        challenge=scalar_from_wire(group, message["challenge"]),
        response=scalar_from_wire(group, message["response"]),
    )


def public_keys_to_wire(group: GroupContext, keys: PublicKeySet) -> Message:
    return {
        "owner_id": keys.owner_id,
        "x_coordinate": keys.x_coordinate,
        "auxiliary_public_key": bytes_to_wire(keys.auxiliary_public_key),
        "coefficient_proofs": [schnorr_to_wire(group, p) for p in keys.coefficient_proofs],
    }


def public_keys_from_wire(group: GroupContext, message: Message) -> PublicKeySet:
    return PublicKeySet(
        owner_id=message["owner_id"],
        x_coordinate=int(message["x_coordinate"]),
        auxiliary_public_key=bytes_from_wire(message["auxiliary_public_key"]),
        coefficient_proofs=[schnorr_from_wire(group, p) for p in message["coefficient_proofs"]],
    )


def backup_to_wire(backup: PartialKeyBackup) -> Message:
    return {
        "generating_guardian_id": backup.generating_guardian_id,
        "designated_guardian_id": backup.designated_guardian_id,
        "designated_guardian_x_coordinate": backup.designated_guardian_x_coordinate,
        "encrypted_coordinate": bytes_to_wire(backup.encrypted_coordinate),
        "error": backup.error,
    }


def backup_from_wire(message: Message) -> PartialKeyBackup:
    return PartialKeyBackup(
        generating_guardian_id=message["generating_guardian_id"],
        designated_guardian_id=message["designated_guardian_id"],
        designated_guardian_x_coordinate=int(message["designated_guardian_x_coordinate"]),
        encrypted_coordinate=bytes_from_wire(message["encrypted_coordinate"]),
        error=message["error"],
    )


def verification_to_wire(verification: PartialKeyVerification) -> Message:
    return {
        "generating_guardian_id": verification.generating_guardian_id,
        "designated_guardian_id": verification.designated_guardian_id,
        "error": verification.error,
    }


def verification_from_wire(message: Message) -> PartialKeyVerification:
    return PartialKeyVerification(
        message["generating_guardian_id"], message["designated_guardian_id"], message["error"])


def challenge_to_wire(group: GroupContext, response: PartialKeyChallengeResponse) -> Message:
    return {
        "generating_guardian_id": response.generating_guardian_id,
        "designated_guardian_id": response.designated_guardian_id,
        "designated_guardian_x_coordinate": response.designated_guardian_x_coordinate,
        "coordinate": None if response.coordinate is None else scalar_to_wire(group, response.coordinate),
        "error": response.error,
    }


def challenge_from_wire(group: GroupContext, message: Message) -> PartialKeyChallengeResponse:
    coordinate = message["coordinate"]
    return PartialKeyChallengeResponse(
        generating_guardian_id=message["generating_guardian_id"],
        designated_guardian_id=message["designated_guardian_id"],
        designated_guardian_x_coordinate=int(message["designated_guardian_x_coordinate"]),
        coordinate=None if coordinate is None else scalar_from_wire(group, coordinate),
        error=message["error"],
    )


# ============================================================================
# PROXY
# ============================================================================


class RemoteKeyCeremonyTrustee(KeyCeremonyTrusteeIF):
    """Mediator-side handle for a trustee reachable only through a Channel"""

    def __init__(self, group: GroupContext, guardian_id: str, x_coordinate: int, channel: Channel):
        self.group = group
        self._id = guardian_id
        self._x_coordinate = x_coordinate
        self.channel = channel

    @property
    def id(self) -> str:
        return self._id

    @property
    def x_coordinate(self) -> int:
        return self._x_coordinate

    def _call(self, method: str, request: Message, decode):
        response = self.channel.call(method, request)
        try:
            return decode(response)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransportError(f"Trustee {self._id}: malformed {method} response: {e}") from e

    def send_public_keys(self) -> PublicKeySet:
        return self._call("send_public_keys", {},
                          lambda r: public_keys_from_wire(self.group, r["public_keys"]))

    def receive_public_keys(self, keys: PublicKeySet) -> bool:
        return self._call("receive_public_keys", {"public_keys": public_keys_to_wire(self.group, keys)},
                          lambda r: bool(r["accepted"]))

    def send_partial_key_backup(self, target_guardian_id: str) -> PartialKeyBackup:
        return self._call("send_partial_key_backup", {"guardian_id": target_guardian_id},
                          lambda r: backup_from_wire(r["backup"]))

    def verify_partial_key_backup(self, backup: PartialKeyBackup) -> PartialKeyVerification:
        return self._call("verify_partial_key_backup", {"backup": backup_to_wire(backup)},
                          lambda r: verification_from_wire(r["verification"]))

    def send_backup_challenge_response(self, target_guardian_id: str) -> PartialKeyChallengeResponse:
        return self._call("send_backup_challenge_response", {"guardian_id": target_guardian_id},
                          lambda r: challenge_from_wire(self.group, r["response"]))

    def send_joint_public_key(self) -> int:
        return self._call("send_joint_public_key", {},
                          lambda r: element_from_wire(self.group, r["joint_public_key"]))


# ============================================================================
# SERVICE
# ============================================================================


class KeyCeremonyTrusteeService(MessageService):
    """Guardian-side endpoint exposing a local KeyCeremonyTrustee"""

    def __init__(self, trustee: KeyCeremonyTrustee):
        super().__init__(f"KeyCeremonyTrusteeService[{trustee.id}]")
        self.trustee = trustee
        self.group = trustee.group
        self.register("send_public_keys", self._send_public_keys)
        self.register("receive_public_keys", self._receive_public_keys)
        self.register("send_partial_key_backup", self._send_partial_key_backup)
        self.register("verify_partial_key_backup", self._verify_partial_key_backup)
        self.register("send_backup_challenge_response", self._send_backup_challenge_response)
        self.register("send_joint_public_key", self._send_joint_public_key)

    def _send_public_keys(self, request: Message) -> Message:
        return {"public_keys": public_keys_to_wire(self.group, self.trustee.send_public_keys())}

    def _receive_public_keys(self, request: Message) -> Message:
        keys = public_keys_from_wire(self.group, request["public_keys"])
        return {"accepted": self.trustee.receive_public_keys(keys)}

    def _send_partial_key_backup(self, request: Message) -> Message:
        backup = self.trustee.send_partial_key_backup(request["guardian_id"])
        return {"backup": backup_to_wire(backup)}

    def _verify_partial_key_backup(self, request: Message) -> Message:
        verification = self.trustee.verify_partial_key_backup(backup_from_wire(request["backup"]))
        return {"verification": verification_to_wire(verification)}

    def _send_backup_challenge_response(self, request: Message) -> Message:
        response = self.trustee.send_backup_challenge_response(request["guardian_id"])
        return {"response": challenge_to_wire(self.group, response)}

    def _send_joint_public_key(self, request: Message) -> Message:
        return {"joint_public_key": element_to_wire(self.group, self.trustee.send_joint_public_key())}


def connect_remote_trustee(trustee: KeyCeremonyTrustee) -> RemoteKeyCeremonyTrustee:
    """Wrap a local trustee behind a loopback channel"""
    channel = LoopbackChannel(KeyCeremonyTrusteeService(trustee))
    return RemoteKeyCeremonyTrustee(trustee.group, trustee.id, trustee.x_coordinate, channel)
