from typing import Any


class RTBCryptoError(Exception):
    pass


class InvalidKeyError(RTBCryptoError, ValueError):
    pass


class IVError(RTBCryptoError, ValueError):
    pass


class ArgumentRangeError(RTBCryptoError, ValueError):
    """A buffer or payload size is outside the range the cipher accepts."""

    def __init__(self, name: str, value: int, limit: int, message: str):
        super().__init__(f"{name}: {message} (got {value}, limit {limit})")
        self.name = name
        self.value = value
        self.limit = limit


class PriceOverflowError(RTBCryptoError, OverflowError):
    """The price does not fit in a signed 64-bit count of micros."""

    def __init__(self, price: Any):
        super().__init__(f"Price {price} is outside the int64 micros range")
        self.price = price
