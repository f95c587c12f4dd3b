"""
vault.py — mã hóa danh sách credential khi lưu (AES-256-GCM).

Lưu ý bảo mật:
- Key được sinh ngẫu nhiên lần đầu dùng và lưu (Base64) ngay cạnh dữ liệu,
  trong cùng local storage. Đây chỉ là che giấu khi lưu (obfuscation at rest):
  ai đọc được storage thì cũng đọc được key. KHÔNG phải ranh giới bảo mật
  trước kẻ tấn công có quyền truy cập máy.
- Nonce 12 byte được lấy từ os.urandom cho MỖI lần encrypt, không tái sử dụng.
  Nonce dạng counter sẽ an toàn hơn khi RNG hỏng; ở đây chấp nhận đánh đổi này.
"""

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import KEY_BYTES, KEY_STORAGE, NONCE_BYTES
from .exceptions import CryptoFailure

logger = logging.getLogger(__name__)


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_base64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoFailure("Invalid base64 value") from e


@dataclass(frozen=True)
class EncryptedBlob:
    iv: bytes
    ciphertext: bytes

    def to_json(self) -> str:
        return json.dumps({"iv": to_base64(self.iv), "data": to_base64(self.ciphertext)})

    @classmethod
    def from_json(cls, payload: str) -> "EncryptedBlob":
        try:
            parsed = json.loads(payload)
        except ValueError as e:
            raise CryptoFailure("Invalid payload") from e
        if not isinstance(parsed, dict) or not parsed.get("iv") or not parsed.get("data"):
            raise CryptoFailure("Invalid payload")
        if not isinstance(parsed["iv"], str) or not isinstance(parsed["data"], str):
            raise CryptoFailure("Invalid payload")
        return cls(iv=from_base64(parsed["iv"]), ciphertext=from_base64(parsed["data"]))


class VaultCrypto:
    """
    Owns the symmetric key kept in the `KEY_STORAGE` slot of `storage`.

    `storage` is anything with get_item / set_item (see totp_database).
    """

    def __init__(self, storage, key_slot: str = KEY_STORAGE) -> None:
        self.storage = storage
        self.key_slot = key_slot
        self._aead: Optional[AESGCM] = None

    def get_or_create_key(self) -> AESGCM:
        """
        Đọc key từ slot; nếu chưa có thì sinh key 256-bit mới và lưu lại.

        Raises:
            CryptoFailure: nếu slot chứa dữ liệu không phải key hợp lệ
        """
        if self._aead is not None:
            return self._aead
        stored = self.storage.get_item(self.key_slot)
        if stored:
            raw = from_base64(stored)
            if len(raw) != KEY_BYTES:
                raise CryptoFailure("Stored key has the wrong length")
        else:
            raw = AESGCM.generate_key(bit_length=KEY_BYTES * 8)
            self.storage.set_item(self.key_slot, to_base64(raw))
            logger.info("Created a new vault key in slot %s", self.key_slot)
        self._aead = AESGCM(raw)
        return self._aead

    def encrypt(self, plaintext: str) -> EncryptedBlob:
        aead = self.get_or_create_key()
        iv = os.urandom(NONCE_BYTES)
        ciphertext = aead.encrypt(iv, plaintext.encode("utf-8"), None)
        return EncryptedBlob(iv=iv, ciphertext=ciphertext)

    def decrypt(self, blob: EncryptedBlob) -> str:
        """
        Raises:
            CryptoFailure: tampered / truncated data, wrong key, bad nonce
        """
        if len(blob.iv) != NONCE_BYTES:
            raise CryptoFailure("Invalid nonce length")
        aead = self.get_or_create_key()
        try:
            plain = aead.decrypt(blob.iv, blob.ciphertext, None)
        except InvalidTag as e:
            raise CryptoFailure("Authentication failed") from e
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoFailure("Decrypted data is not UTF-8") from e

    def encrypt_string(self, value: str) -> str:
        """Encrypt and wrap as the `{"iv": ..., "data": ...}` JSON stored on disk."""
        return self.encrypt(value).to_json()

    def decrypt_string(self, payload: str) -> str:
        return self.decrypt(EncryptedBlob.from_json(payload))
