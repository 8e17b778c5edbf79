"""
Exceptions and result values shared by the key ceremony and decryption layers.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

# ============================================================================
# EXCEPTIONS
# ============================================================================


class GuardianError(Exception):
    """Base exception for guardian operations"""
    pass


class TransportError(GuardianError):
    """Raised when a message to or from a remote trustee cannot be delivered"""
    pass


class KeyCeremonyError(GuardianError):
    """Raised when the key ceremony cannot complete"""
    pass


class DecryptionError(GuardianError):
    """Raised when shares cannot be combined into a plaintext"""
    pass


class DiscreteLogError(DecryptionError):
    """Raised when an encoded value exceeds the discrete log search bound"""
    pass


# ============================================================================
# RESULT
# ============================================================================


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or an error message, never both."""
    value: Optional[T] = None
    error: Optional[str] = None

    def __post_init__(self):
        if (self.value is None) == (self.error is None):
            raise ValueError("Result must hold exactly one of value or error")

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise GuardianError(self.error)
        return self.value
