"""Initialization vectors in the exchange's timestamp + server id format.

Bytes 0..3 hold the seconds since the Unix epoch, bytes 4..7 the microseconds
within that second, and bytes 8..15 an opaque server id, all big-endian. The
timestamp lets a receiver detect stale prices.
"""
import secrets
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from rtb_crypto.errors import IVError
from rtb_crypto.keystream import IV_SIZE
from rtb_crypto.utils import BytesLike

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MICROS_PER_SECOND = 1_000_000

_IV_STRUCT = struct.Struct(">IIQ")


@dataclass(frozen=True, slots=True)
class IVInfo:
    timestamp: datetime
    server_id: int


def _as_utc(date: datetime) -> datetime:
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc)


def create_iv(date: Optional[datetime] = None, server_id: Optional[int] = None) -> bytes:
    """Build a 16-byte IV from a timestamp and a server id.

    ``date`` defaults to the current time and naive values are taken as UTC.
    ``server_id`` defaults to a random 64-bit value; negative ids are written
    as two's complement. The seconds field wraps past 2106 like the uint32 it
    is. Raises IVError for dates before the Unix epoch.
    """
    if date is None:
        date = datetime.now(timezone.utc)
    if server_id is None:
        server_id = secrets.randbits(64)

    micro_unixtime = (_as_utc(date) - EPOCH) // timedelta(microseconds=1)
    if micro_unixtime < 0:
        raise IVError(f"IV timestamp {date.isoformat()} precedes the Unix epoch")

    seconds, micros = divmod(micro_unixtime, MICROS_PER_SECOND)
    return _IV_STRUCT.pack(seconds & 0xFFFFFFFF, micros, server_id & 0xFFFFFFFFFFFFFFFF)


def try_create_iv(date: Optional[datetime] = None, server_id: Optional[int] = None) -> Optional[bytes]:
    """Like create_iv, but returns None instead of raising."""
    try:
        return create_iv(date, server_id)
    except IVError:
        return None


def parse_iv(iv: BytesLike) -> IVInfo:
    """Decode the timestamp and server id of an IV."""
    if len(iv) != IV_SIZE:
        raise IVError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
    seconds, micros, server_id = _IV_STRUCT.unpack(bytes(iv))
    timestamp = EPOCH + timedelta(seconds=seconds, microseconds=micros)
    return IVInfo(timestamp=timestamp, server_id=server_id)
