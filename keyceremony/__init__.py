"""Threshold key ceremony: guardians, their records, and the round mediator."""

from .polynomial import (
    ElectionPolynomial,
    generate_polynomial,
    compute_polynomial_coordinate,
    compute_g_p_coordinate,
    verify_polynomial_coordinate,
    compute_lagrange_coefficient,
)
from .records import (
    PublicKeySet,
    PartialKeyBackup,
    PartialKeyVerification,
    PartialKeyChallengeResponse,
    GuardianRecord,
)
from .trustee import KeyCeremonyTrustee, KeyCeremonyTrusteeIF, TrusteeState
from .mediator import (
    KeyCeremonyMediator,
    KeyCeremonyResults,
    verify_partial_key_challenge,
    compute_commitment_hash,
)
from .remote import RemoteKeyCeremonyTrustee, KeyCeremonyTrusteeService, connect_remote_trustee

__all__ = [
    # Polynomial
    'ElectionPolynomial',
    'generate_polynomial',
    'compute_polynomial_coordinate',
    'compute_g_p_coordinate',
    'verify_polynomial_coordinate',
    'compute_lagrange_coefficient',

    # Records
    'PublicKeySet',
    'PartialKeyBackup',
    'PartialKeyVerification',
    'PartialKeyChallengeResponse',
    'GuardianRecord',

    # Trustees and mediator
    'KeyCeremonyTrustee',
    'KeyCeremonyTrusteeIF',
    'TrusteeState',
    'KeyCeremonyMediator',
    'KeyCeremonyResults',
    'verify_partial_key_challenge',
    'compute_commitment_hash',

    # Remote
    'RemoteKeyCeremonyTrustee',
    'KeyCeremonyTrusteeService',
    'connect_remote_trustee',
]
