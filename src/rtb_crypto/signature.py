import hmac as _hmac

from cryptography.hazmat.primitives import hashes, hmac

from rtb_crypto.utils import BytesLike

SIGNATURE_SIZE = 4


class Signer:
    """Truncated HMAC-SHA1 integrity tag over ``plaintext || iv``."""

    def __init__(self, integrity_key: bytes):
        if not integrity_key:
            raise ValueError("Integrity key must not be empty")
        self._mac = hmac.HMAC(bytes(integrity_key), hashes.SHA1())

    def sign(self, iv: BytesLike, plaintext: BytesLike) -> bytes:
        mac = self._mac.copy()
        mac.update(plaintext)
        mac.update(iv)
        return mac.finalize()[:SIGNATURE_SIZE]

    def verify(self, iv: BytesLike, plaintext: BytesLike, signature: BytesLike) -> bool:
        """Recompute the tag and compare it in constant time."""
        return _hmac.compare_digest(self.sign(iv, plaintext), signature)
