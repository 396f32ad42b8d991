"""
base32.py — Base32 -> bytes decoder used for every OTP secret.

Secrets arrive typed by hand ("jbsw y3dp ehpk 3pxp") or copied from an
otpauth:// URI, so the default decoder is lenient:

- case-insensitive
- trailing '=' padding removed
- every character outside A-Z2-7 silently dropped
- trailing bits that do not fill a whole byte are discarded

It never raises. Callers that want to reject junk input use strict=True,
which keeps the same bit layout but raises Base32Error instead of dropping.
"""

from .errors import Base32Error

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}


def clean(text: str) -> str:
    """Uppercase, strip trailing padding and keep only alphabet characters."""
    return "".join(ch for ch in text.upper().rstrip("=") if ch in _INDEX)


def decode(text: str, strict: bool = False) -> bytes:
    """
    Decode a Base32 string into raw key bytes.

    Arguments:
        text: Base32 text, any case, padding optional
        strict: raise instead of silently dropping invalid characters.
            Whitespace is still ignored in strict mode.

    Returns:
        bytes of length floor(5 * valid_chars / 8)

    Raises:
        Base32Error: only when strict=True and the input has characters
            outside the alphabet, or nothing left after cleaning.
    """
    if strict:
        _check_strict(text)

    buffer = 0
    bits = 0
    out = bytearray()
    for ch in clean(text):
        buffer = (buffer << 5) | _INDEX[ch]
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    # leftover (< 8 bits) is dropped on purpose
    return bytes(out)


def _check_strict(text: str) -> None:
    body = "".join(text.split()).upper().rstrip("=")
    bad = sorted({ch for ch in body if ch not in _INDEX})
    if bad:
        raise Base32Error("Invalid Base32 characters: " + "".join(bad))
    if not body:
        raise Base32Error("Empty Base32 secret")


def is_valid(text: str) -> bool:
    """True when strict decoding would accept text."""
    try:
        _check_strict(text)
    except Base32Error:
        return False
    return True
