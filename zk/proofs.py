"""
Non-interactive zero-knowledge proofs (Fiat-Shamir over hash_elems).

SchnorrProof: knowledge of the secret s behind a public key K = g^s.
ChaumPedersenProof: a partial decryption M = A^s uses the same s as K = g^s.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from egcrypto.elgamal import ElGamalCiphertext, ElGamalKeyPair
from egcrypto.group import GroupContext

logger = logging.getLogger(__name__)


# ============================================================================
# SCHNORR
# ============================================================================


@dataclass(frozen=True)
class SchnorrProof:
    public_key: int   # k
    commitment: int   # h
    challenge: int    # c
    response: int     # u

    def is_valid(self, group: GroupContext) -> bool:
        """Check g^u == h * k^c with c == H(k, h)"""
        k, h, u = self.public_key, self.commitment, self.response
        valid_public_key = group.is_valid_residue(k)
        in_bounds_h = group.is_valid_residue(h)
        in_bounds_u = group.is_in_bounds_q(u)
        valid_challenge = self.challenge == group.hash_elems(k, h)
        valid_response = group.g_pow_p(u) == group.mult_p(h, group.pow_p(k, self.challenge))

        success = valid_public_key and in_bounds_h and in_bounds_u and valid_challenge and valid_response
        if not success:
            logger.warning(
                f"Invalid Schnorr proof: residue={valid_public_key} h={in_bounds_h} "
                f"u={in_bounds_u} challenge={valid_challenge} response={valid_response}"
            )
        return success


def make_schnorr_proof(group: GroupContext, keypair: ElGamalKeyPair, nonce: int) -> SchnorrProof:
    k = keypair.public_key
    h = group.g_pow_p(nonce)
    c = group.hash_elems(k, h)
    u = group.a_plus_bc_q(nonce, keypair.secret_key, c)
    return SchnorrProof(k, h, c, u)


# ============================================================================
# CHAUM-PEDERSEN
# ============================================================================


@dataclass(frozen=True)
class ChaumPedersenProof:
    pad: int        # a = g^u
    data: int       # b = A^u
    challenge: int  # c
    response: int   # v = u + c * s

    def is_valid(
        self,
        group: GroupContext,
        message: ElGamalCiphertext,
        public_key: int,
        partial_decryption: int,
        extended_base_hash: int,
    ) -> bool:
        """Check g^v == a * K^c and A^v == b * M^c with c == H(Q', A, B, a, b, M)"""
        alpha, beta = message.pad, message.data
        a, b, c, v = self.pad, self.data, self.challenge, self.response

        in_bounds = (
            group.is_valid_residue(alpha)
            and group.is_valid_residue(beta)
            and group.is_valid_residue(public_key)
            and group.is_valid_residue(partial_decryption)
            and group.is_valid_residue(a)
            and group.is_valid_residue(b)
            and group.is_in_bounds_q(c)
            and group.is_in_bounds_q(v)
            and group.is_in_bounds_q(extended_base_hash)
        )
        same_c = c == group.hash_elems(extended_base_hash, alpha, beta, a, b, partial_decryption)
        consistent_gv = group.g_pow_p(v) == group.mult_p(a, group.pow_p(public_key, c))
        consistent_av = group.pow_p(alpha, v) == group.mult_p(b, group.pow_p(partial_decryption, c))

        success = in_bounds and same_c and consistent_gv and consistent_av
        if not success:
            logger.warning(
                f"Invalid Chaum-Pedersen proof: bounds={in_bounds} challenge={same_c} "
                f"gv={consistent_gv} av={consistent_av}"
            )
        return success


def make_chaum_pedersen(
    group: GroupContext,
    message: ElGamalCiphertext,
    secret: int,
    partial_decryption: int,
    extended_base_hash: int,
    nonce_seed: Optional[int] = None,
) -> ChaumPedersenProof:
    """
    Prove that partial_decryption == message.pad ^ secret.

    A seeded nonce is bound to the ciphertext so one seed never reuses u
    across different messages.
    """
    if nonce_seed is None:
        u = group.rand_q()
    else:
        u = group.hash_elems(nonce_seed, "constant-chaum-pedersen-proof", message.pad, message.data)

    a = group.g_pow_p(u)
    b = group.pow_p(message.pad, u)
    c = group.hash_elems(extended_base_hash, message.pad, message.data, a, b, partial_decryption)
    v = group.a_plus_bc_q(u, c, secret)
    return ChaumPedersenProof(a, b, c, v)
