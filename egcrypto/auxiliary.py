"""
Auxiliary point-to-point encryption between guardians.

RSA-OAEP wraps a fresh AES-256-GCM key; AES-GCM encrypts the payload.
Wire layout: key length (2 bytes, big-endian) || wrapped key || nonce || ciphertext.
"""

import logging
import os
import struct
from dataclasses import dataclass, field
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

DEFAULT_AUXILIARY_KEY_SIZE = 2048
NONCE_LENGTH = 12


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


@dataclass(frozen=True)
class AuxiliaryKeyPair:
    """RSA key pair; only public_key_pem is ever shared."""
    private_key: rsa.RSAPrivateKey = field(repr=False)
    public_key_pem: bytes


def generate_auxiliary_key_pair(key_size: int = DEFAULT_AUXILIARY_KEY_SIZE) -> AuxiliaryKeyPair:
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
        backend=default_backend(),
    )
    public_key_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return AuxiliaryKeyPair(private_key, public_key_pem)


def auxiliary_encrypt(message: bytes, public_key_pem: bytes, associated_data: bytes = b"") -> Optional[bytes]:
    """Encrypt message for the holder of public_key_pem; None on failure"""
    try:
        public_key = serialization.load_pem_public_key(public_key_pem, backend=default_backend())
        message_key = AESGCM.generate_key(bit_length=256)
        wrapped_key = public_key.encrypt(message_key, _oaep())
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = AESGCM(message_key).encrypt(nonce, message, associated_data)
    except (ValueError, TypeError) as e:
        logger.warning(f"Auxiliary encryption failed: {e}")
        return None

    return struct.pack('>H', len(wrapped_key)) + wrapped_key + nonce + ciphertext


def auxiliary_decrypt(encrypted: bytes, private_key: rsa.RSAPrivateKey, associated_data: bytes = b"") -> Optional[bytes]:
    """Decrypt with our private key; None if the ciphertext was altered or is not for us"""
    try:
        key_length = struct.unpack('>H', encrypted[:2])[0]
        wrapped_key = encrypted[2:2 + key_length]
        nonce = encrypted[2 + key_length:2 + key_length + NONCE_LENGTH]
        ciphertext = encrypted[2 + key_length + NONCE_LENGTH:]

        message_key = private_key.decrypt(wrapped_key, _oaep())
        return AESGCM(message_key).decrypt(nonce, ciphertext, associated_data)
    except (ValueError, InvalidTag, struct.error) as e:
        logger.warning(f"Auxiliary decryption failed: {type(e).__name__} {e}")
        return None
