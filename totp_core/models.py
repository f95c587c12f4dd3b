"""Credential records and the validation of persisted JSON entries."""

import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from .config import ALLOWED_DIGITS, DEFAULT_DIGITS, DEFAULT_TIME_STEP


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Credential:
    """One managed secret, as stored in the encrypted credential list."""

    id: str
    name: str
    secret: str = ""
    code: str = ""
    issuer: Optional[str] = None
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_TIME_STEP

    @classmethod
    def create(cls, name: str, secret: str = "", **kwargs: Any) -> "Credential":
        return cls(id=new_id(), name=name, secret=secret, **kwargs)

    @property
    def label(self) -> str:
        """`issuer:name` when an issuer is known, as authenticator apps show it."""
        if self.issuer:
            return f"{self.issuer}:{self.name}"
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "secret": self.secret,
        }
        if self.code:
            out["code"] = self.code
        if self.issuer is not None:
            out["issuer"] = self.issuer
        out["digits"] = self.digits
        out["period"] = self.period
        return out


@dataclass
class MigrationBatch:
    credentials: List[Credential] = field(default_factory=list)
    batch_index: int = 0
    batch_size: int = 1
    batch_id: int = 0


class RecordResult(NamedTuple):
    """Outcome of validating one persisted record: exactly one field is set."""

    credential: Optional[Credential]
    error: Optional[str]

    @property
    def ok(self) -> bool:
        return self.credential is not None


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false must not pass as a number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def timing_error(digits: Any, period: Any) -> Optional[str]:
    """Lý do digits/period không dùng được để sinh mã, hoặc None nếu hợp lệ."""
    if not _is_number(digits) or digits not in ALLOWED_DIGITS:
        return f"unsupported digits {digits!r}"
    if not _is_number(period) or not math.isfinite(period) or period <= 0:
        return f"invalid period {period!r}"
    return None


def validate_record(raw: Any) -> RecordResult:
    """
    Check one element of the decrypted JSON array.

    Missing optional fields get their defaults;
    wrong types for `id`/`name`, or digits/period outside the allowed range,
    reject the record.
    """
    if not isinstance(raw, dict):
        return RecordResult(None, "record is not an object")
    if not isinstance(raw.get("id"), str) or not raw["id"]:
        return RecordResult(None, "missing id")
    if not isinstance(raw.get("name"), str):
        return RecordResult(None, "missing name")

    secret = raw.get("secret")
    code = raw.get("code")
    issuer = raw.get("issuer")
    digits = raw.get("digits", DEFAULT_DIGITS)
    period = raw.get("period", DEFAULT_TIME_STEP)

    error = timing_error(digits, period)
    if error:
        return RecordResult(None, error)

    return RecordResult(
        Credential(
            id=raw["id"],
            name=raw["name"],
            secret=secret if isinstance(secret, str) else "",
            code=code if isinstance(code, str) else "",
            issuer=issuer if isinstance(issuer, str) else None,
            digits=int(digits),
            period=int(period) if int(period) == period else period,
        ),
        None,
    )
