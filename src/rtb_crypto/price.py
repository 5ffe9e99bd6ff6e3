"""Encrypted winning prices.

A price travels as a signed 64-bit big-endian count of micros of the
currency (price * 1,000,000) encrypted by the CipherEngine, so the ciphertext
is always 28 bytes and its base64url text 40 characters.
"""
import decimal
from decimal import Decimal
from typing import Optional, Union

from rtb_crypto.cipher import OVERHEAD_SIZE, CipherEngine, CipherFailure, CipherResult, KeyMaterial
from rtb_crypto.errors import PriceOverflowError
from rtb_crypto.iv import create_iv
from rtb_crypto.utils import BytesLike, b64url_decode, b64url_encode

PRICE_PAYLOAD_SIZE = 8
PRICE_CIPHER_SIZE = OVERHEAD_SIZE + PRICE_PAYLOAD_SIZE
MICROS_PER_CURRENCY_UNIT = 1_000_000

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
_INT64_MAX_EXPONENT = len(str(INT64_MAX)) - 1

PriceLike = Union[Decimal, int, str]

# Enough digits for any int64 micros value with room for the fraction being dropped.
_PRICE_CONTEXT = decimal.Context(prec=64, rounding=decimal.ROUND_DOWN)


def _to_decimal(price: PriceLike) -> Decimal:
    if isinstance(price, float):
        raise TypeError("Prices must be Decimal, int or str, not float")
    if isinstance(price, Decimal):
        return price
    return Decimal(price)


def price_to_micros(price: PriceLike) -> int:
    """Scale the price to micros, truncating toward zero.

    Raises PriceOverflowError when the micros do not fit in a signed 64-bit
    integer.
    """
    value = _to_decimal(price)
    if value.is_nan():
        raise ValueError("Price must be a number")
    if value.is_infinite():
        raise PriceOverflowError(price)

    try:
        scaled = _PRICE_CONTEXT.multiply(value, MICROS_PER_CURRENCY_UNIT)
    except decimal.Overflow as e:
        raise PriceOverflowError(price) from e
    # 20 or more integer digits never fit in int64.
    if scaled and scaled.adjusted() > _INT64_MAX_EXPONENT:
        raise PriceOverflowError(price)

    micros = int(scaled)
    if micros < INT64_MIN or micros > INT64_MAX:
        raise PriceOverflowError(price)
    return micros


def micros_to_price(micros: int) -> Decimal:
    return _PRICE_CONTEXT.divide(Decimal(micros), MICROS_PER_CURRENCY_UNIT)


def try_encrypt_price(
    engine: CipherEngine,
    price: PriceLike,
    input_iv: BytesLike,
    destination: bytearray | memoryview,
) -> CipherResult:
    """Encrypt the price into ``destination``, which needs PRICE_CIPHER_SIZE bytes."""
    if len(destination) < PRICE_CIPHER_SIZE:
        return CipherResult.failed(CipherFailure.DESTINATION_TOO_SMALL)

    micro_price = price_to_micros(price).to_bytes(PRICE_PAYLOAD_SIZE, "big", signed=True)
    return engine.try_encrypt(micro_price, input_iv, destination)


def encrypt_price(engine: CipherEngine, price: PriceLike, input_iv: Optional[BytesLike] = None) -> str:
    """Encrypt the price and return the URL-safe base64 text.

    Without an IV one is created from the current time and a random server id.
    """
    if input_iv is None:
        input_iv = create_iv()

    cipher_bytes = bytearray(PRICE_CIPHER_SIZE)
    try_encrypt_price(engine, price, input_iv, cipher_bytes)
    return b64url_encode(cipher_bytes)


def decrypt_price_bytes(engine: CipherEngine, cipher_bytes: BytesLike) -> Optional[Decimal]:
    """Decrypt a 28-byte price ciphertext. Returns None on any failure."""
    if len(cipher_bytes) != PRICE_CIPHER_SIZE:
        return None

    micro_price = bytearray(PRICE_PAYLOAD_SIZE)
    if not engine.try_decrypt(cipher_bytes, micro_price):
        return None
    return micros_to_price(int.from_bytes(micro_price, "big", signed=True))


def try_decrypt_price(engine: CipherEngine, cipher_price: Optional[str]) -> Optional[Decimal]:
    """Decrypt the base64url text of an encrypted price.

    Returns None when the text does not decode, does not hold 28 bytes, or
    fails verification. Note that a valid price of zero is falsy, so compare
    the result with None.
    """
    cipher_bytes = b64url_decode(cipher_price)
    if cipher_bytes is None:
        return None
    return decrypt_price_bytes(engine, cipher_bytes)


class PriceCrypto:
    """Encrypts and decrypts prices with one pair of keys."""

    def __init__(self, keys: KeyMaterial):
        self.engine = CipherEngine(keys)

    def encrypt(self, price: PriceLike, input_iv: Optional[BytesLike] = None) -> str:
        return encrypt_price(self.engine, price, input_iv)

    def decrypt(self, cipher_price: Optional[str]) -> Optional[Decimal]:
        return try_decrypt_price(self.engine, cipher_price)
