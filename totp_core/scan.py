"""Dispatch text decoded from a QR code to the right parser."""

import logging
from typing import List, NamedTuple, Optional

from . import base32
from .migration import is_migration_uri, parse_migration_uri
from .models import Credential
from .otpauth import FALLBACK_NAME, parse_otpauth

logger = logging.getLogger(__name__)


class ScanResult(NamedTuple):
    kind: str  # "single" or "batch"
    credentials: List[Credential]


def parse_scan_payload(text: str, fallback_name: str = FALLBACK_NAME) -> Optional[ScanResult]:
    """
    Try, in order: migration URI, single otpauth URI, bare Base32 secret.

    Returns None when nothing usable was found.
    """
    raw = text.strip()
    if not raw:
        return None

    if is_migration_uri(raw):
        credentials = parse_migration_uri(raw)
        if credentials is None:
            return None
        return ScanResult("batch", credentials)

    credential = parse_otpauth(raw)
    if credential is not None:
        if not base32.is_valid_secret(credential.secret):
            logger.debug("otpauth URI carries an invalid secret")
            return None
        return ScanResult("single", [credential])

    if base32.is_valid_secret(raw):
        name = fallback_name.strip() or FALLBACK_NAME
        return ScanResult("single", [Credential.create(name=name, secret=base32.normalize(raw))])

    return None
