import pathlib
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rtb_crypto.errors import InvalidKeyError
from rtb_crypto.utils import b64url_decode


class CryptoKeys(BaseModel):
    """Encryption and integrity keys shared with the exchange."""

    model_config = ConfigDict(frozen=True, strict=True)

    encryption_key: bytes = Field(repr=False)
    integrity_key: bytes = Field(repr=False)

    @field_validator("encryption_key", "integrity_key")
    @classmethod
    def _not_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("key must not be empty")
        return value

    @classmethod
    def from_b64(cls, encryption_key: str, integrity_key: str) -> "CryptoKeys":
        """Build the key pair from URL-safe base64 text."""
        e_key = b64url_decode(encryption_key)
        i_key = b64url_decode(integrity_key)
        if e_key is None:
            raise InvalidKeyError("Encryption key is not valid URL-safe base64")
        if i_key is None:
            raise InvalidKeyError("Integrity key is not valid URL-safe base64")
        return cls(encryption_key=e_key, integrity_key=i_key)

    @classmethod
    def from_json_file(cls, path: Union[str, pathlib.Path]) -> "CryptoKeys":
        """Load base64url keys from a JSON file with encryption_key and integrity_key."""
        keys_file = KeysFile.model_validate_json(pathlib.Path(path).read_text())
        return cls.from_b64(keys_file.encryption_key, keys_file.integrity_key)


class KeysFile(BaseModel):
    encryption_key: str = Field(repr=False)
    integrity_key: str = Field(repr=False)
