"""Group arithmetic, ElGamal and supporting types for the guardian protocols."""

from .group import GroupContext, STANDARD_GROUP, TEST_GROUP, get_group
from .elgamal import (
    ElGamalKeyPair,
    ElGamalCiphertext,
    DiscreteLog,
    elgamal_keypair_from_secret,
    elgamal_keypair_random,
    elgamal_encrypt,
    elgamal_add,
    elgamal_combine_public_keys,
    decode_exponent,
)
from .auxiliary import AuxiliaryKeyPair, generate_auxiliary_key_pair, auxiliary_encrypt, auxiliary_decrypt
from .ballot import (
    CiphertextSelection,
    CiphertextContest,
    CiphertextTally,
    CiphertextBallot,
    PlaintextSelection,
    PlaintextContest,
    PlaintextTally,
)
from .context import ElectionContext, make_election_context
from .errors import (
    GuardianError,
    TransportError,
    KeyCeremonyError,
    DecryptionError,
    DiscreteLogError,
    Result,
)

__version__ = "1.0.0"

__all__ = [
    'GroupContext', 'STANDARD_GROUP', 'TEST_GROUP', 'get_group',
    'ElGamalKeyPair', 'ElGamalCiphertext', 'DiscreteLog',
    'elgamal_keypair_from_secret', 'elgamal_keypair_random', 'elgamal_encrypt',
    'elgamal_add', 'elgamal_combine_public_keys', 'decode_exponent',
    'AuxiliaryKeyPair', 'generate_auxiliary_key_pair', 'auxiliary_encrypt', 'auxiliary_decrypt',
    'CiphertextSelection', 'CiphertextContest', 'CiphertextTally', 'CiphertextBallot',
    'PlaintextSelection', 'PlaintextContest', 'PlaintextTally',
    'ElectionContext', 'make_election_context',
    'GuardianError', 'TransportError', 'KeyCeremonyError', 'DecryptionError', 'DiscreteLogError',
    'Result',
]
