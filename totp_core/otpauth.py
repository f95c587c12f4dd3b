"""
otpauth.py — parse / build `otpauth://totp/...` URIs.

URI có dạng:

    otpauth://totp/Example:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=Example
    ─────────┬───┬───────┬─────────────────┬──────────────────────────────────────
             │   │       │                 └── query (secret, issuer, digits, period)
             │   │       └── account name
             │   └── issuer suy ra từ label
             └── loại OTP (chỉ hỗ trợ totp)

Chỉ hỗ trợ TOTP; `hotp` bị coi là không hỗ trợ.
"""

import logging
from typing import Optional, Tuple
from urllib.parse import parse_qs, quote, unquote, urlencode, urlparse

from . import base32
from .config import ALLOWED_DIGITS, DEFAULT_DIGITS, DEFAULT_TIME_STEP
from .exceptions import InvalidUri, UnsupportedOtpType
from .models import Credential

logger = logging.getLogger(__name__)

OTPAUTH_SCHEME = "otpauth"
FALLBACK_NAME = "TOTP"


def split_label(label: str) -> Tuple[Optional[str], str]:
    """`Issuer:account` -> ("Issuer", "account"); no colon -> (None, label)."""
    if ":" in label:
        issuer, name = label.split(":", 1)
        return issuer.strip(), name.strip()
    return None, label.strip()


def _int_param(value: Optional[str]) -> Optional[int]:
    # non-numeric values are treated as absent
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse(uri: str) -> Credential:
    parsed = urlparse(uri.strip())
    if parsed.scheme.lower() != OTPAUTH_SCHEME:
        raise InvalidUri("Not an otpauth URI")
    otp_type = parsed.netloc.lower()
    if otp_type == "hotp":
        raise UnsupportedOtpType("HOTP entries are not supported")
    if otp_type != "totp":
        raise InvalidUri(f"Unknown OTP type {otp_type!r}")

    label = unquote(parsed.path.lstrip("/"))
    query = parse_qs(parsed.query)

    def param(key: str) -> Optional[str]:
        values = query.get(key)
        return values[0] if values else None

    secret = param("secret")
    if not secret:
        raise InvalidUri("No secret found in URI")

    issuer_param = param("issuer") or None
    inferred_issuer, label_name = split_label(label)

    digits = _int_param(param("digits"))
    if digits is None:
        digits = DEFAULT_DIGITS
    elif digits not in ALLOWED_DIGITS:
        raise UnsupportedOtpType(f"Digits may only be {ALLOWED_DIGITS}")

    period = _int_param(param("period"))
    if period is None or period <= 0:
        period = DEFAULT_TIME_STEP

    return Credential.create(
        name=label_name or issuer_param or inferred_issuer or FALLBACK_NAME,
        secret=base32.normalize(secret),
        issuer=issuer_param or inferred_issuer or None,
        digits=digits,
        period=period,
    )


def parse_otpauth(uri: str) -> Optional[Credential]:
    """
    Parse a single otpauth URI into a new Credential.

    Returns None for anything that is not a usable TOTP URI (wrong scheme,
    hotp, missing secret). The secret is normalized but not decoded here.
    """
    try:
        return _parse(uri)
    except ValueError as e:
        logger.debug("Rejected otpauth URI: %s", e)
        return None


def format_otpauth_uri(credential: Credential) -> str:
    """
    Tạo otpauth:// URI cho một credential (dùng cho file export, mỗi dòng một URI).

    Label được quote; issuer lặp lại trong query để app khác đọc được.
    """
    label = quote(credential.name, safe="@")
    args = {"secret": credential.secret}
    if credential.issuer:
        label = quote(credential.issuer, safe="@") + ":" + label
        args["issuer"] = credential.issuer
    args["algorithm"] = "SHA1"
    args["digits"] = str(credential.digits)
    args["period"] = str(credential.period)
    return "otpauth://totp/{0}?{1}".format(label, urlencode(args).replace("+", "%20"))
