"""Encryption scheme of the RTB price-confirmation protocol."""
from rtb_crypto.cipher import (
    IV_SIZE,
    MAX_PAYLOAD_SIZE,
    OVERHEAD_SIZE,
    SIGNATURE_SIZE,
    CipherEngine,
    CipherFailure,
    CipherResult,
)
from rtb_crypto.errors import (
    ArgumentRangeError,
    InvalidKeyError,
    IVError,
    PriceOverflowError,
    RTBCryptoError,
)
from rtb_crypto.iv import create_iv, parse_iv, try_create_iv
from rtb_crypto.keys import CryptoKeys
from rtb_crypto.price import PriceCrypto, encrypt_price, try_decrypt_price

__all__ = [
    "IV_SIZE",
    "MAX_PAYLOAD_SIZE",
    "OVERHEAD_SIZE",
    "SIGNATURE_SIZE",
    "CipherEngine",
    "CipherFailure",
    "CipherResult",
    "ArgumentRangeError",
    "InvalidKeyError",
    "IVError",
    "PriceOverflowError",
    "RTBCryptoError",
    "create_iv",
    "parse_iv",
    "try_create_iv",
    "CryptoKeys",
    "PriceCrypto",
    "encrypt_price",
    "try_decrypt_price",
]
