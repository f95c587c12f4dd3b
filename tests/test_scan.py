import pytest

from totp_core.migration import build_migration_uri, encode_batch
from totp_core.scan import parse_scan_payload

from .conftest import EXAMPLE_SECRET


def test_single_otpauth_uri():
    result = parse_scan_payload(" otpauth://totp/Example:alice?secret=JBSWY3DPEHPK3PXP \n")
    assert result.kind == "single"
    assert [c.name for c in result.credentials] == ["alice"]


def test_migration_uri_gives_batch(sample_credentials):
    uri = build_migration_uri(encode_batch(sample_credentials))
    result = parse_scan_payload(uri)
    assert result.kind == "batch"
    assert len(result.credentials) == 3


def test_bare_base32_secret_uses_fallback_name():
    result = parse_scan_payload("jbsw y3dp ehpk 3pxp", fallback_name="Work VPN")
    assert result.kind == "single"
    item = result.credentials[0]
    assert (item.name, item.secret, item.issuer) == ("Work VPN", EXAMPLE_SECRET, None)
    assert parse_scan_payload(EXAMPLE_SECRET, fallback_name="  ").credentials[0].name == "TOTP"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "https://example.com",
        "otpauth://hotp/x?secret=JBSWY3DPEHPK3PXP",
        "otpauth://totp/x?secret=NOT-BASE32!",
        "otpauth-migration://offline?data=Cg",
    ],
)
def test_unusable_text(text):
    assert parse_scan_payload(text) is None
