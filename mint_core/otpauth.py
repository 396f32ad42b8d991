"""
otpauth.py — otpauth://totp/ URIs, the format authenticator QR codes carry.

    otpauth://totp/<Label>?secret=<BASE32>&issuer=<Issuer>

Only the label, `secret` and `issuer` are used; other query parameters
(algorithm, digits, period) are ignored because generation is fixed to
SHA-1 / 6 digits / 30 s.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, quote, unquote

from .errors import InvalidOtpAuthUri

TOTP_PREFIX = "otpauth://totp/"


@dataclass(frozen=True)
class OtpAuthEntry:
    name: str
    secret: str
    issuer: Optional[str] = None


def parse_otpauth_uri(uri: str) -> OtpAuthEntry:
    """
    Turn a scanned URI into an account entry.

    The account name is the decoded label; when an issuer is given and the
    label does not already mention it, the name becomes "Issuer (label)".
    The secret is returned as found, it is not checked against the Base32
    alphabet here.

    Raises:
        InvalidOtpAuthUri: not a TOTP otpauth URI, or no secret parameter
    """
    uri = (uri or "").strip()
    if not uri.startswith(TOTP_PREFIX):
        raise InvalidOtpAuthUri("Invalid TOTP QR.")

    label, _, query = uri[len(TOTP_PREFIX):].partition("?")
    params = dict(parse_qsl(query, keep_blank_values=True))
    secret = params.get("secret")
    issuer = params.get("issuer") or None

    name = unquote(label)
    if issuer and issuer not in name:
        name = f"{issuer} ({name})"

    if not secret:
        raise InvalidOtpAuthUri("QR missing secret.")

    return OtpAuthEntry(name=name, secret=secret, issuer=issuer)


def format_otpauth_uri(name: str, secret: str) -> str:
    """URI shown as a QR preview for a stored account; issuer = account name."""
    quoted = quote(name, safe="")
    return f"{TOTP_PREFIX}{quoted}?secret={secret}&issuer={quoted}"
