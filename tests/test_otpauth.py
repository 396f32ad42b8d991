import pytest

from mint_core.errors import InvalidOtpAuthUri
from mint_core.otpauth import OtpAuthEntry, format_otpauth_uri, parse_otpauth_uri


def test_parse_label_and_issuer():
    entry = parse_otpauth_uri("otpauth://totp/alice%40example.com?secret=JBSWY3DPEHPK3PXP&issuer=GitHub")
    assert entry == OtpAuthEntry(name="GitHub (alice@example.com)", secret="JBSWY3DPEHPK3PXP", issuer="GitHub")


def test_issuer_already_in_label_is_not_repeated():
    entry = parse_otpauth_uri("otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP&issuer=GitHub")
    assert entry.name == "GitHub:alice"


def test_without_issuer():
    entry = parse_otpauth_uri("otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP")
    assert entry.name == "alice"
    assert entry.issuer is None


def test_secret_is_passed_through_unvalidated():
    entry = parse_otpauth_uri("otpauth://totp/x?secret=not-base32!")
    assert entry.secret == "not-base32!"


@pytest.mark.parametrize(
    "uri",
    ["", "https://example.com", "otpauth://hotp/alice?secret=JBSWY3DPEHPK3PXP&counter=0"],
)
def test_non_totp_uri_rejected(uri):
    with pytest.raises(InvalidOtpAuthUri, match="Invalid TOTP QR."):
        parse_otpauth_uri(uri)


def test_missing_secret_rejected():
    with pytest.raises(InvalidOtpAuthUri, match="QR missing secret."):
        parse_otpauth_uri("otpauth://totp/alice?issuer=GitHub")


def test_format_uses_name_as_issuer():
    uri = format_otpauth_uri("My Bank", "JBSWY3DPEHPK3PXP")
    assert uri == "otpauth://totp/My%20Bank?secret=JBSWY3DPEHPK3PXP&issuer=My%20Bank"


def test_formatted_uri_parses_back_to_same_account():
    entry = parse_otpauth_uri(format_otpauth_uri("GitHub", "JBSWY3DPEHPK3PXP"))
    assert entry.name == "GitHub"
    assert entry.secret == "JBSWY3DPEHPK3PXP"
