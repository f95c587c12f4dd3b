"""
store.py — CredentialStore: façade giữa danh sách credential và storage.

    load : storage slot -> decrypt -> JSON -> validate từng record
    save : list -> JSON -> encrypt -> ghi đè toàn bộ slot

Mỗi thay đổi (add / rename / delete / move / import) ghi lại toàn bộ blob.
Không có khóa: chỉ một tiến trình, ghi sau cùng thắng.
"""

import json
import logging
from typing import Iterable, List, Optional

from . import base32
from .config import DEFAULT_DIGITS, DEFAULT_TIME_STEP, STORAGE_KEY
from .exceptions import CryptoFailure, InvalidSecret
from .models import Credential, timing_error, validate_record
from .vault import VaultCrypto

logger = logging.getLogger(__name__)


class CredentialStore:
    """Sole owner of the ordered in-memory credential list."""

    def __init__(self, storage, vault: Optional[VaultCrypto] = None, slot: str = STORAGE_KEY) -> None:
        self.storage = storage
        self.vault = vault or VaultCrypto(storage)
        self.slot = slot
        self.items: List[Credential] = []
        self.last_dropped = 0

    # --- persistence -------------------------------------------------------
    def load(self) -> List[Credential]:
        """
        Read the persisted list.

        First run (no blob) and any top-level failure give an empty list.
        Malformed records are dropped one by one; their count is kept in
        `last_dropped`.
        """
        self.last_dropped = 0
        self.items = []
        stored = self.storage.get_item(self.slot)
        if not stored:
            return []
        try:
            parsed = json.loads(self.vault.decrypt_string(stored))
        except CryptoFailure as e:
            logger.error("Could not decrypt stored credentials: %s", e)
            return []
        except ValueError as e:
            logger.error("Stored credentials are not valid JSON: %s", e)
            return []
        if not isinstance(parsed, list):
            logger.error("Stored credentials are not a list")
            return []

        seen = set()
        for raw in parsed:
            result = validate_record(raw)
            if result.ok and result.credential.id in seen:
                result = result._replace(credential=None, error="duplicate id")
            if not result.ok:
                self.last_dropped += 1
                logger.debug("Dropped stored record: %s", result.error)
                continue
            seen.add(result.credential.id)
            self.items.append(result.credential)

        if self.last_dropped:
            logger.warning("Dropped %d malformed credential record(s)", self.last_dropped)
        return list(self.items)

    def save(self, credentials: Optional[Iterable[Credential]] = None) -> None:
        """Serialize, encrypt and overwrite the blob slot in one write."""
        if credentials is not None:
            self.items = list(credentials)
        payload = json.dumps([c.to_dict() for c in self.items], ensure_ascii=False)
        self.storage.set_item(self.slot, self.vault.encrypt_string(payload))
        logger.debug("Saved %d credentials", len(self.items))

    # --- lookups -------------------------------------------------------------
    def get(self, credential_id: str) -> Credential:
        for item in self.items:
            if item.id == credential_id:
                return item
        raise KeyError(credential_id)

    def _index(self, credential_id: str) -> int:
        for index, item in enumerate(self.items):
            if item.id == credential_id:
                return index
        return -1

    # --- mutations -------------------------------------------------------------
    def add(
        self,
        name: str,
        secret: str,
        issuer: Optional[str] = None,
        digits: int = DEFAULT_DIGITS,
        period: int = DEFAULT_TIME_STEP,
    ) -> Credential:
        """
        Thêm credential mới từ tên + secret người dùng nhập.

        Raises:
            ValueError: tên hoặc secret rỗng, digits không phải 6/8, period <= 0
            InvalidSecret: secret không phải Base32 hợp lệ
        """
        name = name.strip()
        secret = secret.strip()
        if not name or not secret:
            raise ValueError("Name and secret are required")
        if not base32.is_valid_secret(secret):
            raise InvalidSecret("Invalid Base32 secret")
        error = timing_error(digits, period)
        if error:
            raise ValueError(error.capitalize())
        credential = Credential.create(
            name=name,
            secret=base32.normalize(secret),
            issuer=issuer,
            digits=digits,
            period=period,
        )
        self.items.append(credential)
        self.save()
        return credential

    def add_many(self, credentials: Iterable[Credential]) -> List[Credential]:
        """Append imported credentials; entries whose secret does not decode are skipped."""
        added = []
        for credential in credentials:
            if not base32.is_valid_secret(credential.secret):
                logger.info("Skipping imported entry with an invalid secret")
                continue
            if timing_error(credential.digits, credential.period):
                logger.info("Skipping imported entry with unusable digits or period")
                continue
            if self._index(credential.id) != -1:
                credential = Credential.create(
                    name=credential.name,
                    secret=credential.secret,
                    issuer=credential.issuer,
                    digits=credential.digits,
                    period=credential.period,
                )
            self.items.append(credential)
            added.append(credential)
        if added:
            self.save()
        return added

    def rename(self, credential_id: str, name: str) -> Credential:
        name = name.strip()
        if not name:
            raise ValueError("Name is required")
        credential = self.get(credential_id)
        credential.name = name
        self.save()
        return credential

    def delete(self, credential_id: str) -> None:
        index = self._index(credential_id)
        if index == -1:
            raise KeyError(credential_id)
        del self.items[index]
        self.save()

    def move(self, source_id: str, target_id: str) -> bool:
        """
        Move `source_id` to the position currently held by `target_id`.

        Returns False (and writes nothing) when the ids are equal or unknown.
        """
        if source_id == target_id:
            return False
        from_index = self._index(source_id)
        to_index = self._index(target_id)
        if from_index == -1 or to_index == -1:
            return False
        moved = self.items.pop(from_index)
        self.items.insert(to_index, moved)
        self.save()
        return True
