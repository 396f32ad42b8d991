"""
errors.py — exception types raised by mint_core.

MintError is the common base so callers (API, CLI) can catch everything coming
out of the core with one clause when they only want to show a message.
"""


class MintError(Exception):
    """Base class for mint_core errors."""


class Base32Error(MintError, ValueError):
    """Secret is not acceptable Base32 (strict decoding only)."""


class InvalidOtpAuthUri(MintError, ValueError):
    """otpauth:// URI could not be turned into an account entry."""


class HashPrimitiveError(MintError):
    """The keyed-hash primitive could not produce a digest."""
