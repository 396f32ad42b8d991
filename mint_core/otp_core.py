"""
otp_core.py — TOTP / HOTP code generation (RFC 4226 / RFC 6238).

Goals:
- Pure functions usable from the Flask API, the CLI and the view router.
- No file or database access here; secrets are passed in by the caller.
- Fixed to the parameters every authenticator app uses by default:
  HMAC-SHA1, 30 second step, 6 digits.

The keyed hash is modelled as an awaitable primitive (`signer`). `generate`
awaits it exactly once, so a caller sees either a finished 6-digit string or an
exception, never anything in between. The synchronous helpers (`hotp`, `totp`,
`verify_totp`) wrap the same pipeline for callers that are not running an event
loop.
"""

import asyncio
import base64
import hashlib
import hmac
import logging
import math
import os
import struct
import time
from typing import Awaitable, Callable, Optional, Tuple

from . import base32
from .errors import HashPrimitiveError

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6
DEFAULT_TIME_STEP = 30      # seconds
SECRET_BYTES = 20           # 160-bit secret
DIGEST_SIZE = 20            # HMAC-SHA1 output
MAX_COUNTER = 0xFFFFFFFFFFFFFFFF
MAX_VERIFY_WINDOW = 10      # steps on each side accepted by verify_totp

Signer = Callable[[bytes, bytes], Awaitable[bytes]]


# --- Keyed-hash primitive --------------------------------------------------
async def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """Default signer: HMAC-SHA1(key, message). An empty key is allowed."""
    return hmac.new(key, message, hashlib.sha1).digest()


async def _sign(signer: Signer, key: bytes, message: bytes) -> bytes:
    try:
        digest = await signer(key, message)
    except HashPrimitiveError:
        raise
    except Exception as e:
        raise HashPrimitiveError(f"HMAC-SHA1 failed: {e}") from e
    if digest is None or len(digest) != DIGEST_SIZE:
        raise HashPrimitiveError(
            f"HMAC-SHA1 returned {0 if digest is None else len(digest)} bytes, expected {DIGEST_SIZE}"
        )
    return bytes(digest)


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Counter -> 8-byte big-endian, the 64-bit field RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    if i < 0 or i > MAX_COUNTER:
        raise ValueError("counter must fit in an unsigned 64-bit integer")
    return struct.pack(">Q", i)


def time_counter(timestamp: float, timestep: int = DEFAULT_TIME_STEP) -> int:
    """floor(timestamp / timestep)."""
    if not math.isfinite(timestamp):
        raise ValueError("timestamp must be a finite number")
    if timestamp < 0:
        raise ValueError("timestamp must not be negative")
    return int(timestamp // timestep)


def remaining_seconds(timestamp: float, timestep: int = DEFAULT_TIME_STEP) -> int:
    """Whole seconds until the counter advances (1..timestep)."""
    return int(timestep - (int(timestamp) % timestep))


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Dynamic truncation per RFC 4226 section 5.3.

    - offset = low nibble of the last byte
    - 4 bytes from offset, MSB of the first one cleared
    - returns a 31-bit unsigned integer
    """
    offset = hmac_digest[-1] & 0x0F
    return (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )


def format_code(value: int, digits: int = DEFAULT_DIGITS) -> str:
    return str(value % (10 ** digits)).zfill(digits)


# --- Generation ------------------------------------------------------------
async def generate_at_counter(secret_b32: str, counter: int, signer: Signer = hmac_sha1) -> str:
    """HOTP for an explicit counter; the building block of `generate`."""
    key = base32.decode(secret_b32)
    digest = await _sign(signer, key, int_to_bytes(counter))
    return format_code(dynamic_truncate(digest))


async def generate(secret_b32: str, now_unix_seconds: float, signer: Signer = hmac_sha1) -> str:
    """
    Current TOTP code for a Base32 secret.

    Steps:
    1. Base32-decode the secret (lenient, see base32.decode)
    2. counter = floor(now / 30), 8-byte big-endian
    3. HMAC-SHA1(key, counter), awaited once
    4. dynamic truncation -> 31-bit integer
    5. mod 10^6, zero-padded to 6 digits

    Arguments:
        secret_b32: Base32 secret; invalid characters are dropped, an empty key
            still produces a (meaningless) code
        now_unix_seconds: reference time, seconds since the epoch
        signer: keyed-hash primitive, defaults to hmac_sha1

    Raises:
        HashPrimitiveError: the signer failed or returned a bad digest
        ValueError: negative or non-finite timestamp, or a counter beyond
            64 bits
    """
    counter = time_counter(now_unix_seconds)
    return await generate_at_counter(secret_b32, counter, signer)


def hotp(secret_b32: str, counter: int) -> str:
    """Synchronous HOTP (RFC 4226) for callers without an event loop."""
    return asyncio.run(generate_at_counter(secret_b32, counter))


def totp(secret_b32: str, timestamp: Optional[float] = None) -> Tuple[str, int]:
    """
    Synchronous TOTP.

    Returns:
        (code, remaining_seconds): remaining is how long the code stays valid
    """
    if timestamp is None:
        timestamp = time.time()
    code = asyncio.run(generate(secret_b32, timestamp))
    return code, remaining_seconds(timestamp)


def verify_totp(secret_b32: str, code: str, timestamp: Optional[float] = None, window: int = 1) -> bool:
    """
    Check a user-entered code against the current window and `window`
    neighbouring windows on each side (clock skew tolerance).

    Raises:
        ValueError: window outside 0..MAX_VERIFY_WINDOW, or a bad timestamp
    """
    if isinstance(window, bool) or not isinstance(window, int) or not 0 <= window <= MAX_VERIFY_WINDOW:
        raise ValueError(f"window must be an integer between 0 and {MAX_VERIFY_WINDOW}")
    if timestamp is None:
        timestamp = time.time()
    counter = time_counter(timestamp)
    return asyncio.run(_verify(secret_b32, str(code).strip(), counter, window))


async def _verify(secret_b32: str, code: str, counter: int, window: int) -> bool:
    for offset in range(-window, window + 1):
        test_counter = counter + offset
        if not 0 <= test_counter <= MAX_COUNTER:
            continue
        expected = await generate_at_counter(secret_b32, test_counter)
        if hmac.compare_digest(expected.encode("ascii"), code.encode("utf-8")):
            if offset:
                logger.debug("TOTP matched with window offset %d", offset)
            return True
    return False


# --- Utility ---------------------------------------------------------------
def generate_base32_secret() -> str:
    """Random 160-bit secret as unpadded Base32 (os.urandom)."""
    raw = os.urandom(SECRET_BYTES)
    return base64.b32encode(raw).decode("ascii").rstrip("=")
