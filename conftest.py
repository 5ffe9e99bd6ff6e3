import pytest
import structlog

from rtb_crypto.cipher import CipherEngine
from rtb_crypto.keys import CryptoKeys
from rtb_crypto.utils import b64url_decode

ENCRYPTION_KEY_B64 = "sIxwz7yw62yrfoLGt12lIHKuYrK_S5kLuApI2BQe7Ac="
INTEGRITY_KEY_B64 = "v3fsVcMBMMHYzRhi7SpM0sdqwzvAxM6KPTu9OtVod5I="
TEST_IV_HEX = "386E3AC0000C0A080123456789ABCDEF"


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def keys() -> CryptoKeys:
    return CryptoKeys(
        encryption_key=b64url_decode(ENCRYPTION_KEY_B64),
        integrity_key=b64url_decode(INTEGRITY_KEY_B64),
    )


@pytest.fixture
def engine(keys) -> CipherEngine:
    return CipherEngine(keys)


@pytest.fixture
def iv() -> bytes:
    return bytes.fromhex(TEST_IV_HEX)
