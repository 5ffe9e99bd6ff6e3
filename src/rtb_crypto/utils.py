import base64
import binascii
from typing import Literal, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]

CiphertextFormat = Union[Literal[
    "b64",
    "b64_urlsafe",
    "hex",
    "raw"
], str]


def _as_bytes(
    data: Union[str, bytes, bytearray, memoryview],
    *,
    encoding: str = "utf-8",
) -> bytes:
    """Normalize values to type bytes."""
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode(encoding)
    raise TypeError(f"Expected str or bytes-like, got {type(data).__name__}")


def b64url_encode(data: Union[str, bytes, bytearray, memoryview]) -> str:
    """Return the URL-safe base64 text of the data, with '=' padding."""
    return base64.urlsafe_b64encode(_as_bytes(data)).decode("ascii")


def b64url_decode(b64_text: Optional[Union[str, bytes]]) -> Optional[bytes]:
    """Decode URL-safe b64. Tolerates missing '=' padding.

    Returns None when the text is missing, empty, uses the standard '+' or '/'
    characters, or is otherwise not valid base64.
    """
    if not b64_text:
        return None
    if isinstance(b64_text, bytes):
        try:
            b64_text = b64_text.decode("ascii")
        except UnicodeDecodeError:
            return None

    b64_text = b64_text.strip()
    # b64decode accepts both alphabets even with altchars set
    if "+" in b64_text or "/" in b64_text:
        return None
    # normalize padding
    missing = len(b64_text) % 4
    if missing:
        b64_text += "=" * (4 - missing)

    try:
        return base64.b64decode(b64_text, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        return None


def load_ciphertext(file_path: str, format: CiphertextFormat) -> bytes:
    """Load the ciphertext from a file."""
    with open(file_path, "rb") as f:
        data = f.read()
    if format == "b64":
        return base64.b64decode(data.strip(), validate=True)
    elif format == "b64_urlsafe":
        decoded = b64url_decode(data)
        if decoded is None:
            raise ValueError(f"Invalid URL-safe base64 in {file_path}")
        return decoded
    elif format == "hex":
        return bytes.fromhex(data.decode("utf-8"))
    elif format == "raw":
        return data
    else:
        raise ValueError(f"Invalid ciphertext format: {format}")
