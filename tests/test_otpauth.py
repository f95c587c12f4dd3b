import pytest

from totp_core.models import Credential
from totp_core.otpauth import format_otpauth_uri, parse_otpauth, split_label


def test_parse_label_and_issuer():
    item = parse_otpauth(
        "otpauth://totp/Example:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=Example"
    )
    assert item.name == "alice@example.com"
    assert item.issuer == "Example"
    assert item.secret == "JBSWY3DPEHPK3PXP"
    assert item.digits == 6
    assert item.period == 30
    assert item.id


def test_issuer_param_overrides_inferred_issuer():
    item = parse_otpauth("otpauth://totp/Old%20Co:bob?secret=jbswy3dpehpk3pxp&issuer=New%20Co")
    assert item.issuer == "New Co"
    assert item.name == "bob"
    assert item.secret == "JBSWY3DPEHPK3PXP"


def test_percent_encoded_colon_in_label():
    item = parse_otpauth("otpauth://totp/ACME%3Ajohn.doe?secret=JBSWY3DPEHPK3PXP")
    assert item.issuer == "ACME"
    assert item.name == "john.doe"


@pytest.mark.parametrize(
    "uri, expected_name",
    [
        ("otpauth://totp/?secret=JBSWY3DPEHPK3PXP&issuer=Acme", "Acme"),
        ("otpauth://totp/Acme:?secret=JBSWY3DPEHPK3PXP", "Acme"),
        ("otpauth://totp/?secret=JBSWY3DPEHPK3PXP", "TOTP"),
        ("otpauth://totp?secret=JBSWY3DPEHPK3PXP", "TOTP"),
    ],
)
def test_name_fallback_order(uri, expected_name):
    assert parse_otpauth(uri).name == expected_name


def test_digits_and_period_override():
    item = parse_otpauth("otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&digits=8&period=60")
    assert (item.digits, item.period) == (8, 60)


@pytest.mark.parametrize("query", ["digits=abc&period=xyz", "digits=&period=", "period=0", "period=-5"])
def test_non_numeric_parameters_fall_back_to_defaults(query):
    item = parse_otpauth(f"otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&{query}")
    assert (item.digits, item.period) == (6, 30)


@pytest.mark.parametrize(
    "uri",
    [
        "otpauth://hotp/x?secret=JBSWY3DPEHPK3PXP&counter=0",
        "otpauth://totp/x?issuer=Nope",
        "otpauth://totp/x?secret=",
        "https://totp/x?secret=JBSWY3DPEHPK3PXP",
        "otpauth://steam/x?secret=JBSWY3DPEHPK3PXP",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&digits=7",
        "JBSWY3DPEHPK3PXP",
        "",
    ],
)
def test_rejects_unusable_uris(uri):
    assert parse_otpauth(uri) is None


def test_scheme_and_type_are_case_insensitive():
    item = parse_otpauth("OTPAUTH://TOTP/x?secret=JBSWY3DPEHPK3PXP")
    assert item.name == "x"


def test_split_label():
    assert split_label("a:b:c") == ("a", "b:c")
    assert split_label(" solo ") == (None, "solo")


def test_format_then_parse():
    original = Credential.create(name="alice smith@example.com", secret="JBSWY3DPEHPK3PXP",
                                 issuer="Big Corp", digits=8, period=60)
    uri = format_otpauth_uri(original)
    assert uri.startswith("otpauth://totp/Big%20Corp:alice%20smith@example.com?secret=JBSWY3DPEHPK3PXP")
    parsed = parse_otpauth(uri)
    assert (parsed.name, parsed.issuer, parsed.secret, parsed.digits, parsed.period) == (
        "alice smith@example.com", "Big Corp", "JBSWY3DPEHPK3PXP", 8, 60,
    )
