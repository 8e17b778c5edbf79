"""
Zero-Knowledge Proof Module for the guardian protocols
Schnorr proofs of key possession and Chaum-Pedersen proofs of correct partial decryption
"""

from .proofs import (
    SchnorrProof,
    ChaumPedersenProof,
    make_schnorr_proof,
    make_chaum_pedersen,
)

__version__ = "1.0.0"

__all__ = [
    'SchnorrProof',
    'ChaumPedersenProof',
    'make_schnorr_proof',
    'make_chaum_pedersen',
]
