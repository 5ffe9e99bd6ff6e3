"""Cipher engine for the RTB price-confirmation encryption scheme.

Ciphertext layout::

    IV (16 bytes) || payload (0..15380 bytes) || signature (4 bytes)

The payload is the plaintext XORed with a keystream derived from the
encryption key and the IV, so both have the same length. The signature is a
truncated HMAC over the plaintext and the IV, keyed with the integrity key.

See https://developers.google.com/authorized-buyers/rtb/response-guide/decrypt-price
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from rtb_crypto.errors import ArgumentRangeError, InvalidKeyError, RTBCryptoError
from rtb_crypto.keystream import IV_SIZE, MAX_PAYLOAD_SIZE, MAX_SECTIONS, SECTION_SIZE, Keystream
from rtb_crypto.signature import SIGNATURE_SIZE, Signer
from rtb_crypto.utils import BytesLike

__all__ = [
    "IV_SIZE",
    "SIGNATURE_SIZE",
    "OVERHEAD_SIZE",
    "SECTION_SIZE",
    "MAX_SECTIONS",
    "MAX_PAYLOAD_SIZE",
    "CipherFailure",
    "CipherResult",
    "CipherEngine",
    "KeyMaterial",
    "normalize_iv",
]

OVERHEAD_SIZE = IV_SIZE + SIGNATURE_SIZE


class KeyMaterial(Protocol):
    encryption_key: bytes
    integrity_key: bytes


class CipherFailure(str, Enum):
    PAYLOAD_TOO_LARGE = "payload-too-large"
    DESTINATION_TOO_SMALL = "destination-too-small"
    CIPHERTEXT_TOO_SHORT = "ciphertext-too-short"
    SIGNATURE_MISMATCH = "signature-mismatch"

    def __str__(self):
        return self.value


@dataclass(frozen=True, slots=True)
class CipherResult:
    """Outcome of a non-raising cipher operation. Truthy on success."""

    bytes_written: int = 0
    failure: Optional[CipherFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, bytes_written: int) -> CipherResult:
        return cls(bytes_written=bytes_written)

    @classmethod
    def failed(cls, failure: CipherFailure) -> CipherResult:
        return cls(failure=failure)


def normalize_iv(input_iv: BytesLike) -> bytes:
    """Zero-pad on the right or truncate the IV to exactly 16 bytes."""
    iv = bytes(input_iv[:IV_SIZE])
    return iv + bytes(IV_SIZE - len(iv))


class CipherEngine:
    """Encrypts and decrypts ciphertext envelopes with a pair of keys.

    Instances hold no mutable state and can be shared between threads.
    """

    def __init__(self, keys: KeyMaterial):
        if keys is None:
            raise InvalidKeyError("Keys are required")
        if not getattr(keys, "encryption_key", None):
            raise InvalidKeyError("Encryption key must not be empty")
        if not getattr(keys, "integrity_key", None):
            raise InvalidKeyError("Integrity key must not be empty")

        self._keys = keys
        self._keystream = Keystream(keys.encryption_key)
        self._signer = Signer(keys.integrity_key)

    @property
    def keys(self) -> KeyMaterial:
        return self._keys

    def try_encrypt(self, plaintext: BytesLike, input_iv: BytesLike, destination: bytearray | memoryview) -> CipherResult:
        """Encrypt the plaintext into ``destination``.

        The IV is normalized to 16 bytes (zero-padded or truncated). Fails when
        the plaintext exceeds MAX_PAYLOAD_SIZE or the destination is shorter
        than ``len(plaintext) + OVERHEAD_SIZE``.
        """
        plain_size = len(plaintext)
        if plain_size > MAX_PAYLOAD_SIZE:
            return CipherResult.failed(CipherFailure.PAYLOAD_TOO_LARGE)
        if len(destination) < plain_size + OVERHEAD_SIZE:
            return CipherResult.failed(CipherFailure.DESTINATION_TOO_SMALL)

        out = memoryview(destination)
        iv = normalize_iv(input_iv)
        out[:IV_SIZE] = iv

        payload = out[IV_SIZE:IV_SIZE + plain_size]
        payload[:] = plaintext
        self._keystream.apply(iv, payload)

        signature_offset = IV_SIZE + plain_size
        out[signature_offset:signature_offset + SIGNATURE_SIZE] = self._signer.sign(iv, plaintext)

        bytes_written = plain_size + OVERHEAD_SIZE
        return CipherResult.success(bytes_written)

    def encrypt(self, plaintext: BytesLike, input_iv: BytesLike, destination: Optional[bytearray | memoryview] = None) -> bytes:
        """Encrypt the plaintext and return the ciphertext.

        Raises ArgumentRangeError when the plaintext is too large or the given
        destination too small. Without a destination one of the exact size is
        allocated.
        """
        plain_size = len(plaintext)
        if plain_size > MAX_PAYLOAD_SIZE:
            raise ArgumentRangeError("plaintext", plain_size, MAX_PAYLOAD_SIZE, "length exceeds the maximum payload size")

        required = plain_size + OVERHEAD_SIZE
        if destination is None:
            destination = bytearray(required)
        if len(destination) < required:
            raise ArgumentRangeError("destination", len(destination), required, "length is smaller than required")

        result = self.try_encrypt(plaintext, input_iv, destination)
        if not result:
            raise RTBCryptoError(f"Encryption failed: {result.failure}")
        return bytes(destination[:result.bytes_written])

    def try_decrypt(self, ciphertext: BytesLike, destination: bytearray | memoryview) -> CipherResult:
        """Decrypt the ciphertext into ``destination`` and verify its signature.

        On success ``bytes_written`` is the plaintext length. The destination
        may be partially written even when the signature does not match.
        """
        payload_size = len(ciphertext) - OVERHEAD_SIZE
        if payload_size < 0:
            return CipherResult.failed(CipherFailure.CIPHERTEXT_TOO_SHORT)
        if payload_size > MAX_PAYLOAD_SIZE:
            return CipherResult.failed(CipherFailure.PAYLOAD_TOO_LARGE)
        if len(destination) < payload_size:
            return CipherResult.failed(CipherFailure.DESTINATION_TOO_SMALL)

        data = memoryview(ciphertext)
        iv = bytes(data[:IV_SIZE])
        payload = data[IV_SIZE:IV_SIZE + payload_size]
        signature = bytes(data[IV_SIZE + payload_size:])

        plaintext = memoryview(destination)[:payload_size]
        plaintext[:] = payload
        self._keystream.apply(iv, plaintext)

        if not self._signer.verify(iv, plaintext, signature):
            return CipherResult.failed(CipherFailure.SIGNATURE_MISMATCH)

        return CipherResult.success(payload_size)

    def decrypt(self, ciphertext: BytesLike) -> Optional[bytes]:
        """Return the decrypted plaintext, or None when decryption fails."""
        destination = bytearray(max(len(ciphertext) - OVERHEAD_SIZE, 0))
        try:
            result = self.try_decrypt(ciphertext, destination)
            if not result:
                return None
            return bytes(destination)
        finally:
            destination[:] = bytes(len(destination))
