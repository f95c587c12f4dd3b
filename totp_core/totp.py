"""
totp.py — sinh mã TOTP (RFC 6238) trên nền HOTP (RFC 4226), HMAC-SHA1.

──────────────────────────────────────────────
Giải thuật
──────────────────────────────────────────────
1. counter = floor(timestamp / period), 8 byte big-endian
2. hash = HMAC-SHA1(key=secret đã decode Base32, msg=counter)
3. offset = hash[19] & 0x0F
4. lấy 4 byte từ offset, clear MSB -> số 31-bit
5. code = số đó mod 10^digits, zero-pad bên trái

Mã hiển thị (display) chèn một khoảng trắng ở giữa khi digits chẵn và >= 6
("123 456"). Mã dùng để copy / so khớp luôn là mã không có khoảng trắng.
"""

import hashlib
import hmac
import logging
import struct
import time
from collections import OrderedDict
from typing import Optional

from . import base32
from .config import DEFAULT_DIGITS, DEFAULT_TIME_STEP, PLACEHOLDER_CODE
from .models import Credential

logger = logging.getLogger(__name__)


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Chuyển integer (counter) sang 8-byte big-endian như RFC4226 yêu cầu.

    Ví dụ: int_to_bytes(1) -> b'\x00\x00\x00\x00\x00\x00\x00\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """RFC 4226 dynamic truncation -> 31-bit unsigned integer."""
    offset = hmac_digest[-1] & 0x0F
    return (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )


def hotp(key: bytes, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """
    Sinh mã HOTP từ raw key bytes (đã decode Base32).

    Trả về:
        str: mã zero-padded, đúng `digits` ký tự
    """
    digest = hmac.new(key, int_to_bytes(counter), hashlib.sha1).digest()
    return str(dynamic_truncate(digest) % (10 ** digits)).zfill(digits)


def format_code(code: str) -> str:
    """Insert a space at the midpoint for even lengths >= 6."""
    digits = len(code)
    if digits % 2 == 0 and digits >= 6:
        split = digits // 2
        return f"{code[:split]} {code[split:]}"
    return code


def canonical_code(code: str) -> str:
    """Strip the cosmetic whitespace back out (copy / compare form)."""
    return "".join(code.split())


def remaining_seconds(period: int = DEFAULT_TIME_STEP, timestamp: Optional[float] = None) -> float:
    """Số giây còn lại trước khi mã hiện tại hết hiệu lực."""
    if timestamp is None:
        timestamp = time.time()
    return period - (timestamp % period)


class TotpGenerator:
    """
    Stateless TOTP generator with an instance-owned key cache.

    The cache maps a normalized secret to its decoded key bytes. It only
    saves the Base32 decode; results are identical with or without it.
    """

    def __init__(self, cache_size: int = 256) -> None:
        self.cache_size = cache_size
        self._keys: "OrderedDict[str, bytes]" = OrderedDict()

    def _key_for(self, secret: str) -> Optional[bytes]:
        normalized = base32.normalize(secret)
        cached = self._keys.get(normalized)
        if cached is not None:
            self._keys.move_to_end(normalized)
            return cached
        key = base32.decode(normalized)
        if key is None:
            return None
        if self.cache_size > 0:
            self._keys[normalized] = key
            while len(self._keys) > self.cache_size:
                self._keys.popitem(last=False)
        return key

    def clear_cache(self) -> None:
        self._keys.clear()

    def generate(
        self,
        secret: str,
        period: int = DEFAULT_TIME_STEP,
        digits: int = DEFAULT_DIGITS,
        timestamp: Optional[float] = None,
    ) -> Optional[str]:
        """
        Sinh mã TOTP (dạng canonical, không khoảng trắng).

        Arguments:
            secret: Base32 secret
            period: time step (giây)
            digits: 6 hoặc 8
            timestamp: epoch seconds (None -> time.time())

        Trả về:
            mã OTP, hoặc None nếu secret không decode được (InvalidSecret)
        """
        key = self._key_for(secret)
        if key is None:
            logger.debug("TOTP requested for a secret that is not valid Base32")
            return None
        if timestamp is None:
            timestamp = time.time()
        counter = int(timestamp // period)
        return hotp(key, counter, digits)

    def generate_display(
        self,
        secret: str,
        period: int = DEFAULT_TIME_STEP,
        digits: int = DEFAULT_DIGITS,
        timestamp: Optional[float] = None,
    ) -> Optional[str]:
        code = self.generate(secret, period, digits, timestamp)
        if code is None:
            return None
        return format_code(code)

    def display_code(self, credential: Credential, timestamp: Optional[float] = None) -> str:
        """What the list shows for a credential: live code, static code, or dashes."""
        if credential.secret:
            code = self.generate_display(
                credential.secret, credential.period, credential.digits, timestamp
            )
            return code if code is not None else PLACEHOLDER_CODE
        if credential.code:
            return credential.code
        return PLACEHOLDER_CODE
