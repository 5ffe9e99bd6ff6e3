from typing import Iterator

from cryptography.hazmat.primitives import hashes, hmac

from rtb_crypto.utils import BytesLike

IV_SIZE = 16
SECTION_SIZE = 20
MAX_SECTIONS = 3 * 256 + 1
MAX_PAYLOAD_SIZE = SECTION_SIZE * MAX_SECTIONS
MAX_COUNTER_SIZE = 3


class SectionCounter:
    """Counter appended to the IV when deriving the pad of each payload section.

    Starts empty for section 0. Each advance either adds the first byte, or
    increments the last used byte and grows by one byte when that byte wraps.
    Earlier bytes are never carried into, so the sequence runs
    ``''``, ``00`` .. ``ff``, ``00 00`` .. ``00 ff``, ``00 00 00`` .. ``00 00 ff``.
    """

    def __init__(self, buffer: memoryview):
        if len(buffer) != MAX_COUNTER_SIZE:
            raise ValueError(f"Counter buffer must be {MAX_COUNTER_SIZE} bytes")
        self._buffer = buffer
        self._buffer[:] = bytes(MAX_COUNTER_SIZE)
        self.size = 0

    def advance(self) -> None:
        if self.size == 0:
            self.size = 1
            return

        last = self.size - 1
        self._buffer[last] = (self._buffer[last] + 1) & 0xFF
        if self._buffer[last] == 0:
            if self.size == MAX_COUNTER_SIZE:
                raise OverflowError(f"Section counter exceeds {MAX_COUNTER_SIZE} bytes")
            self.size += 1

    @property
    def value(self) -> bytes:
        return bytes(self._buffer[:self.size])


def section_count(length: int) -> int:
    return (length + SECTION_SIZE - 1) // SECTION_SIZE


class Keystream:
    """Pads derived from HMAC-SHA1 keyed with the encryption key.

    The pad of section ``i`` is ``HMAC(encryption_key, iv || counter_i)``
    truncated to the section length (20 bytes, shorter for the last section).
    """

    def __init__(self, encryption_key: bytes):
        if not encryption_key:
            raise ValueError("Encryption key must not be empty")
        self._mac = hmac.HMAC(bytes(encryption_key), hashes.SHA1())

    def iter_pads(self, iv: BytesLike, length: int) -> Iterator[bytes]:
        """Yield the pad for each section of a payload of the given length."""
        if len(iv) != IV_SIZE:
            raise ValueError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
        if length < 0 or length > MAX_PAYLOAD_SIZE:
            raise ValueError(f"Payload length must be in 0..{MAX_PAYLOAD_SIZE}, got {length}")

        # IV followed by the counter bytes; only iv + counter.size bytes are hashed.
        pad_message = bytearray(IV_SIZE + MAX_COUNTER_SIZE)
        try:
            pad_message[:IV_SIZE] = iv
            counter = SectionCounter(memoryview(pad_message)[IV_SIZE:])

            for section_index in range(section_count(length)):
                if section_index > 0:
                    counter.advance()
                section_offset = section_index * SECTION_SIZE
                section_length = min(length - section_offset, SECTION_SIZE)

                mac = self._mac.copy()
                mac.update(memoryview(pad_message)[:IV_SIZE + counter.size])
                yield mac.finalize()[:section_length]
        finally:
            pad_message[:] = bytes(len(pad_message))

    def generate(self, iv: BytesLike, length: int) -> bytes:
        """Return ``length`` bytes of keystream for the IV."""
        return b"".join(self.iter_pads(iv, length))

    def apply(self, iv: BytesLike, payload: bytearray | memoryview) -> None:
        """XOR the payload in place with the keystream for the IV."""
        view = memoryview(payload)
        offset = 0
        for pad in self.iter_pads(iv, len(view)):
            end = offset + len(pad)
            section = int.from_bytes(view[offset:end], "big") ^ int.from_bytes(pad, "big")
            view[offset:end] = section.to_bytes(len(pad), "big")
            offset = end
