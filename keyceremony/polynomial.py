"""
Election polynomial: the secret-sharing polynomial each guardian draws
for the key ceremony, with Feldman-style public commitments.

P(x) = a_0 + a_1 x + ... + a_{k-1} x^{k-1} (mod q), commitments K_j = g^{a_j}.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from egcrypto.elgamal import ElGamalKeyPair
from egcrypto.group import GroupContext
from zk.proofs import SchnorrProof, make_schnorr_proof

logger = logging.getLogger(__name__)

MAX_X_COORDINATE = 256


@dataclass(frozen=True)
class ElectionPolynomial:
    """Secret coefficients with their commitments and proofs of knowledge"""
    coefficients: List[int] = field(repr=False)
    coefficient_commitments: List[int]
    coefficient_proofs: List[SchnorrProof]

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1


def generate_polynomial(group: GroupContext, quorum: int, nonce_seed: Optional[int] = None) -> ElectionPolynomial:
    """
    Draw a polynomial of degree quorum - 1.

    With nonce_seed the coefficients are seed + i, which is only for
    reproducible tests.
    """
    if quorum < 1:
        raise ValueError(f"Quorum must be positive, got {quorum}")

    coefficients = []
    commitments = []
    proofs = []
    for i in range(quorum):
        if nonce_seed is None:
            coefficient = group.rand_range_q(2)
        else:
            coefficient = (nonce_seed + i) % group.q
        commitment = group.g_pow_p(coefficient)
        proof = make_schnorr_proof(group, ElGamalKeyPair(coefficient, commitment), group.rand_q())
        coefficients.append(coefficient)
        commitments.append(commitment)
        proofs.append(proof)

    return ElectionPolynomial(coefficients, commitments, proofs)


def _check_x_coordinate(x: int):
    if not 0 < x < MAX_X_COORDINATE:
        raise ValueError(f"x coordinate {x} must be in [1, {MAX_X_COORDINATE})")


def compute_polynomial_coordinate(group: GroupContext, x: int, polynomial: ElectionPolynomial) -> int:
    """P(x) mod q"""
    _check_x_coordinate(x)
    value = 0
    for coefficient in reversed(polynomial.coefficients):
        value = (value * x + coefficient) % group.q
    return value


def compute_g_p_coordinate(group: GroupContext, x: int, commitments: Sequence[int]) -> int:
    """prod_j K_j^(x^j) mod p, which equals g^P(x)"""
    _check_x_coordinate(x)
    result = 1
    for j, commitment in enumerate(commitments):
        exponent = pow(x, j, group.q)
        result = (result * group.pow_p(commitment, exponent)) % group.p
    return result


def verify_polynomial_coordinate(group: GroupContext, value: int, x: int, commitments: Sequence[int]) -> bool:
    """True when g^value matches the commitments evaluated at x"""
    return group.g_pow_p(value) == compute_g_p_coordinate(group, x, commitments)


def compute_lagrange_coefficient(group: GroupContext, coordinate: int, degrees: Sequence[int]) -> int:
    """
    Lagrange basis value at 0 for coordinate, over the other guardians' coordinates.

    w = prod(degrees) / prod(degree - coordinate)  (mod q)
    """
    numerator = 1
    denominator = 1
    for degree in degrees:
        if degree == coordinate:
            raise ValueError(f"Coordinate {coordinate} repeated in degrees")
        numerator = (numerator * degree) % group.q
        denominator = (denominator * (degree - coordinate)) % group.q
    return group.div_q(numerator, denominator)
