"""
mint_core package
=================

TOTP code generation per RFC 4226 & RFC 6238 (HMAC-SHA1, 30 s, 6 digits),
plus the pieces the popup builds on it.

Core algorithm
--------------
- Base32 secret -> key bytes (lenient: case-insensitive, junk characters
  dropped, partial trailing bits discarded)
- counter = floor(unix_time / 30), 8 bytes big-endian
- digest = HMAC-SHA1(key, counter)
- dynamic truncation: offset = digest[19] & 0x0F, 31-bit integer from 4 bytes
- code = value mod 10^6, zero-padded to 6 digits

Quick use
---------
>>> import asyncio
>>> from mint_core import generate, totp
>>> asyncio.run(generate("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", 59))
'287082'
>>> code, remaining = totp("JBSWY3DPEHPK3PXP")
"""

from .base32 import decode as decode_base32
from .errors import Base32Error, HashPrimitiveError, InvalidOtpAuthUri, MintError
from .otp_core import (
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    generate,
    generate_base32_secret,
    hmac_sha1,
    hotp,
    totp,
    verify_totp,
)
from .otpauth import OtpAuthEntry, format_otpauth_uri, parse_otpauth_uri
from .views import CodeRefresher, Router, ViewKind, ViewState

__all__ = [
    "Base32Error",
    "CodeRefresher",
    "DEFAULT_DIGITS",
    "DEFAULT_TIME_STEP",
    "HashPrimitiveError",
    "InvalidOtpAuthUri",
    "MintError",
    "OtpAuthEntry",
    "Router",
    "ViewKind",
    "ViewState",
    "decode_base32",
    "format_otpauth_uri",
    "generate",
    "generate_base32_secret",
    "hmac_sha1",
    "hotp",
    "parse_otpauth_uri",
    "totp",
    "verify_totp",
]
