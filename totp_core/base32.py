"""
base32.py — Base32 (RFC 4648) cho TOTP secret.

Không dùng base64.b32decode vì secret thực tế hay bị thiếu padding, có khoảng
trắng / dấu gạch và chữ thường. Bộ giải mã ở đây gom 5 bit mỗi ký tự vào
buffer, mỗi khi đủ 8 bit thì xuất 1 byte; bit thừa (< 8) bị bỏ.
"""

import re
from typing import Optional

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_LOOKUP = {ch: idx for idx, ch in enumerate(BASE32_ALPHABET)}
_STRIP_RE = re.compile(r"[\s-]")


def normalize(value: str) -> str:
    """Strip whitespace and hyphens, upper-case."""
    return _STRIP_RE.sub("", value).upper()


def decode(value: str) -> Optional[bytes]:
    """
    Decode một Base32 secret thành raw bytes.

    Trả về:
        bytes, hoặc None nếu có ký tự ngoài bảng chữ cái hoặc kết quả rỗng.
    """
    cleaned = normalize(value).rstrip("=")
    bits = 0
    buffer = 0
    out = bytearray()

    for ch in cleaned:
        idx = _LOOKUP.get(ch)
        if idx is None:
            return None
        buffer = ((buffer << 5) | idx) & 0xFFFF
        bits += 5
        if bits >= 8:
            out.append((buffer >> (bits - 8)) & 0xFF)
            bits -= 8

    if not out:
        return None
    return bytes(out)


def encode(data: bytes) -> str:
    """Encode bytes as unpadded upper-case Base32."""
    output = []
    bits = 0
    buffer = 0

    for byte in data:
        buffer = ((buffer << 8) | byte) & 0xFFFF
        bits += 8
        while bits >= 5:
            output.append(BASE32_ALPHABET[(buffer >> (bits - 5)) & 0x1F])
            bits -= 5

    # trailing partial group, left-shifted to fill 5 bits
    if bits > 0:
        output.append(BASE32_ALPHABET[(buffer << (5 - bits)) & 0x1F])

    return "".join(output)


def is_valid_secret(value: str) -> bool:
    return decode(value) is not None
