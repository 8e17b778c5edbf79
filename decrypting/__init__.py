"""Distributed decryption: guardian shares, compensation for missing guardians, and combination."""

from .shares import (
    DecryptionProofTuple,
    DecryptionProofRecovery,
    CiphertextDecryptionSelection,
    CiphertextCompensatedDecryptionSelection,
    CiphertextDecryptionContest,
    CiphertextCompensatedDecryptionContest,
    DecryptionShare,
    CompensatedDecryptionShare,
)
from .trustee import DecryptingTrustee, DecryptingTrusteeIF
from .decryptions import (
    compute_decryption_share,
    compute_decryption_share_for_ballot,
    compute_decryption_share_for_ballots,
    compute_compensated_decryption_share,
    compute_compensated_decryption_share_for_ballot,
    compute_compensated_decryption_share_for_ballots,
    compute_lagrange_coefficients_for_guardians,
    reconstruct_decryption_share,
    reconstruct_decryption_share_for_ballot,
    reconstruct_decryption_shares_for_ballots,
)
from .decrypt_with_shares import (
    decrypt_tally,
    decrypt_ballot,
    decrypt_selection_with_decryption_shares,
    recovery_public_keys,
)
from .mediator import DecryptionMediator
from .remote import RemoteDecryptingTrustee, DecryptingTrusteeService, connect_remote_decrypting_trustee

__all__ = [
    # Records
    'DecryptionProofTuple',
    'DecryptionProofRecovery',
    'CiphertextDecryptionSelection',
    'CiphertextCompensatedDecryptionSelection',
    'CiphertextDecryptionContest',
    'CiphertextCompensatedDecryptionContest',
    'DecryptionShare',
    'CompensatedDecryptionShare',

    # Trustees
    'DecryptingTrustee',
    'DecryptingTrusteeIF',
    'RemoteDecryptingTrustee',
    'DecryptingTrusteeService',
    'connect_remote_decrypting_trustee',

    # Orchestration
    'compute_decryption_share',
    'compute_decryption_share_for_ballot',
    'compute_decryption_share_for_ballots',
    'compute_compensated_decryption_share',
    'compute_compensated_decryption_share_for_ballot',
    'compute_compensated_decryption_share_for_ballots',
    'compute_lagrange_coefficients_for_guardians',
    'reconstruct_decryption_share',
    'reconstruct_decryption_share_for_ballot',
    'reconstruct_decryption_shares_for_ballots',
    'decrypt_tally',
    'decrypt_ballot',
    'decrypt_selection_with_decryption_shares',
    'recovery_public_keys',
    'DecryptionMediator',
]
