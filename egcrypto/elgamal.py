"""
Exponential ElGamal over a GroupContext.

A ciphertext of m under public key K with nonce r is (g^r, g^m * K^r).
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .errors import DiscreteLogError
from .group import GroupContext

logger = logging.getLogger(__name__)

DEFAULT_DISCRETE_LOG_MAX = 100_000


@dataclass(frozen=True)
class ElGamalKeyPair:
    secret_key: int
    public_key: int


@dataclass(frozen=True)
class ElGamalCiphertext:
    """pad = g^r, data = g^m * K^r"""
    pad: int
    data: int

    def partial_decrypt(self, group: GroupContext, secret_key: int) -> int:
        """One guardian's contribution pad^s to the blinding factor K^r"""
        return group.pow_p(self.pad, secret_key)

    def decrypt_known_product(self, group: GroupContext, product: int) -> int:
        """g^m, given the full blinding factor K^r"""
        return group.div_p(self.data, product)

    def decrypt(self, group: GroupContext, secret_key: int,
                max_exponent: int = DEFAULT_DISCRETE_LOG_MAX) -> Optional[int]:
        """Plaintext m under a single secret key, or None when m is out of the search bound"""
        element = self.decrypt_known_product(group, self.partial_decrypt(group, secret_key))
        return decode_exponent(group, element, max_exponent)


def elgamal_keypair_from_secret(group: GroupContext, secret_key: int) -> ElGamalKeyPair:
    if not 2 <= secret_key < group.q:
        raise ValueError("ElGamal secret key must be in [2, q)")
    return ElGamalKeyPair(secret_key, group.g_pow_p(secret_key))


def elgamal_keypair_random(group: GroupContext) -> ElGamalKeyPair:
    return elgamal_keypair_from_secret(group, group.rand_range_q(2))


def elgamal_encrypt(group: GroupContext, message: int, nonce: int, public_key: int) -> ElGamalCiphertext:
    if message < 0:
        raise ValueError("Only non-negative messages can be encrypted")
    if nonce % group.q == 0:
        raise ValueError("ElGamal nonce must be non-zero")
    pad = group.g_pow_p(nonce)
    data = group.mult_p(group.g_pow_p(message), group.pow_p(public_key, nonce))
    return ElGamalCiphertext(pad, data)


def elgamal_add(group: GroupContext, *ciphertexts: ElGamalCiphertext) -> ElGamalCiphertext:
    """Homomorphic sum: the product of pads and of data components"""
    if not ciphertexts:
        raise ValueError("Need at least one ciphertext to add")
    return ElGamalCiphertext(
        group.mult_p(*(c.pad for c in ciphertexts)),
        group.mult_p(*(c.data for c in ciphertexts)),
    )


def elgamal_combine_public_keys(group: GroupContext, keys: Iterable[int]) -> int:
    return group.mult_p(*keys)


class DiscreteLog:
    """Brute-force discrete log of g^m for small m, with a shared cache per group."""

    _caches: Dict[int, Dict[int, int]] = {}
    _highest: Dict[int, int] = {}
    _lock = threading.Lock()

    def __init__(self, group: GroupContext, max_exponent: int = DEFAULT_DISCRETE_LOG_MAX):
        self.group = group
        self.max_exponent = max_exponent
        with self._lock:
            self._cache = self._caches.setdefault(group.p, {1: 0})
            self._highest.setdefault(group.p, 0)

    def find(self, element: int) -> int:
        p = self.group.p
        with self._lock:
            found = self._cache.get(element)
            if found is not None:
                return found

            exponent = self._highest[p]
            current = self.group.g_pow_p(exponent)
            while exponent < self.max_exponent:
                exponent += 1
                current = (current * self.group.g) % p
                self._cache[current] = exponent
                self._highest[p] = exponent
                if current == element:
                    return exponent

        raise DiscreteLogError(f"No discrete log found below {self.max_exponent}")


def decode_exponent(group: GroupContext, element: int, max_exponent: int = DEFAULT_DISCRETE_LOG_MAX) -> Optional[int]:
    """Exponent of g giving element, or None when outside the search bound"""
    try:
        return DiscreteLog(group, max_exponent).find(element)
    except DiscreteLogError as e:
        logger.warning(f"Discrete log failed: {e}")
        return None
