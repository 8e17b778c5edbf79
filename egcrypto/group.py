"""
Modular group arithmetic for the guardian protocols.

Elements mod p and scalars mod q are plain Python ints; a GroupContext
carries the parameters and every operation that needs them.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# ============================================================================
# CONSTANTS
# ============================================================================

# Safe primes p = 2q + 1 where q is also prime
# 2048-bit safe prime from RFC 3526 (MODP Group 14)
SAFE_PRIME_2048 = int("""
32317006071311007300338913926423828248817941241140239112842009751400741706634354222619689417363569347117901737909704191754605873209195028853758986185622153212175412514901774520270235796078236248884246189477587641105928646099411723245426622522193230540919037680524235519125679715870117001058055877651038861847280257976054903569732561526167081339361799541336476559160368317896729073178384589680639671900977202194168647225871031411336429319536193471636533209717077448227988588565369208645296636077250268955505928362751121174096972998068410554359584866583291642136218231078990999448652468262416972035911852507045361090559
""".replace('\n', ''))

# 1536-bit safe prime from RFC 3526 (MODP Group 5), used for tests
SAFE_PRIME_1536 = int(
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1"
    "29024E088A67CC74020BBEA63B139B22514A08798E3404DD"
    "EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245"
    "E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE45B3D"
    "C2007CB8A163BF0598DA48361C55D39A69163FA8FD24CF5F"
    "83655D23DCA3AD961C62F356208552BB9ED529077096966D"
    "670C354E4ABC9804F1746C08CA237327FFFFFFFFFFFFFFFF",
    16,
)

# 4 = 2^2 is a quadratic residue, so it generates the order-q subgroup
QUADRATIC_RESIDUE_GENERATOR = 4


# ============================================================================
# GROUP CONTEXT
# ============================================================================


@dataclass(frozen=True)
class GroupContext:
    """Parameters (p, q, g) of a prime-order subgroup of Z_p^*"""
    name: str
    p: int
    q: int
    g: int

    def __post_init__(self):
        if self.p % 2 == 0 or (self.p - 1) % self.q != 0:
            raise ValueError(f"Invalid group parameters for {self.name}")
        if pow(self.g, self.q, self.p) != 1:
            raise ValueError(f"Generator does not have order q in {self.name}")

    @property
    def r(self) -> int:
        """Cofactor (p - 1) / q"""
        return (self.p - 1) // self.q

    @property
    def element_byte_length(self) -> int:
        return (self.p.bit_length() + 7) // 8

    @property
    def scalar_byte_length(self) -> int:
        return (self.q.bit_length() + 7) // 8

    # ---- mod p ----

    def g_pow_p(self, exponent: int) -> int:
        return pow(self.g, exponent % self.q, self.p)

    def pow_p(self, base: int, exponent: int) -> int:
        return pow(base, exponent, self.p)

    def mult_p(self, *elements: int) -> int:
        product = 1
        for element in elements:
            product = (product * element) % self.p
        return product

    def mult_inv_p(self, element: int) -> int:
        if element % self.p == 0:
            raise ValueError("No inverse of zero mod p")
        return pow(element, -1, self.p)

    def div_p(self, numerator: int, denominator: int) -> int:
        return (numerator * self.mult_inv_p(denominator)) % self.p

    def is_valid_residue(self, element: int) -> bool:
        """True when element is in [1, p) and lies in the order-q subgroup"""
        return 0 < element < self.p and pow(element, self.q, self.p) == 1

    # ---- mod q ----

    def add_q(self, *scalars: int) -> int:
        return sum(scalars) % self.q

    def mult_q(self, *scalars: int) -> int:
        product = 1
        for scalar in scalars:
            product = (product * scalar) % self.q
        return product

    def negate_q(self, scalar: int) -> int:
        return (-scalar) % self.q

    def div_q(self, numerator: int, denominator: int) -> int:
        if denominator % self.q == 0:
            raise ValueError("No inverse of zero mod q")
        return (numerator * pow(denominator, -1, self.q)) % self.q

    def a_plus_bc_q(self, a: int, b: int, c: int) -> int:
        return (a + b * c) % self.q

    def is_in_bounds_q(self, scalar: int) -> bool:
        return 0 <= scalar < self.q

    def rand_q(self) -> int:
        return secrets.randbelow(self.q)

    def rand_range_q(self, start: int) -> int:
        """Uniform random scalar in [start, q)"""
        if not 0 <= start < self.q:
            raise ValueError(f"start {start} outside [0, q)")
        return start + secrets.randbelow(self.q - start)

    # ---- encoding ----

    def element_to_hex(self, element: int) -> str:
        """Fixed-width big-endian hex of an element mod p"""
        return format(element, f"0{self.element_byte_length * 2}X")

    def scalar_to_bytes(self, scalar: int) -> bytes:
        return scalar.to_bytes(self.scalar_byte_length, "big")

    def scalar_from_bytes(self, data: bytes) -> int:
        """Parse a scalar mod q; raises ValueError if the bytes are out of range"""
        if len(data) != self.scalar_byte_length:
            raise ValueError(f"Expected {self.scalar_byte_length} bytes, got {len(data)}")
        value = int.from_bytes(data, "big")
        if not self.is_in_bounds_q(value):
            raise ValueError("Scalar is not less than q")
        return value

    # ---- hashing ----

    def hash_elems(self, *items: Any) -> int:
        """
        SHA-256 over the '|'-terminated renderings of the items, reduced mod q - 1.

        Ints render as upper-case hex, strings as themselves, None as "null",
        lists and tuples as the hex of their own recursive hash.
        """
        digest = hashlib.sha256()
        for item in items:
            if item is None:
                rendered = "null"
            elif isinstance(item, str):
                rendered = item
            elif isinstance(item, bool):
                rendered = str(item)
            elif isinstance(item, int):
                rendered = format(item, "X")
            elif isinstance(item, bytes):
                rendered = item.hex().upper()
            elif isinstance(item, (list, tuple)):
                rendered = format(self.hash_elems(*item), "X")
            else:
                rendered = str(item)
            digest.update((rendered + "|").encode("utf-8"))
        return int.from_bytes(digest.digest(), "big") % (self.q - 1)


STANDARD_GROUP = GroupContext(
    name="standard",
    p=SAFE_PRIME_2048,
    q=(SAFE_PRIME_2048 - 1) // 2,
    g=QUADRATIC_RESIDUE_GENERATOR,
)

TEST_GROUP = GroupContext(
    name="test",
    p=SAFE_PRIME_1536,
    q=(SAFE_PRIME_1536 - 1) // 2,
    g=QUADRATIC_RESIDUE_GENERATOR,
)

_GROUPS = {group.name: group for group in (STANDARD_GROUP, TEST_GROUP)}


def get_group(name: str) -> GroupContext:
    """Look up one of the built-in groups by name"""
    try:
        return _GROUPS[name]
    except KeyError:
        raise ValueError(f"Unknown group '{name}', expected one of {sorted(_GROUPS)}") from None
