"""
migration.py — encode / decode the authenticator "migration" payload.

The payload travels inside

    otpauth-migration://offline?data=<base64 of the binary payload>

and is a protobuf-shaped message written by hand (no schema compiler):

    MigrationPayload
      1  otp_parameters   repeated, length-delimited (OtpParameters)
      2  version          varint
      3  batch_size       varint
      4  batch_index      varint
      5  batch_id         varint

    OtpParameters
      1  secret     bytes
      2  name       string  ("issuer:account" or "account")
      3  issuer     string
      4  algorithm  varint  (1 = SHA1)
      5  digits     varint  (1 = six, 2 = eight)
      6  type       varint  (1 = HOTP, 2 = TOTP)

Each field starts with key = (field_number << 3) | wire_type as a varint.
Wire type 0 is a varint, 2 is a length-prefixed byte string.
"""

import base64
import binascii
import logging
import secrets
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import parse_qs, quote, unquote, urlparse

from . import base32
from .config import DEFAULT_TIME_STEP, EXPORT_CHUNK_SIZE
from .exceptions import MalformedPayload
from .models import Credential, MigrationBatch
from .otpauth import FALLBACK_NAME, split_label

logger = logging.getLogger(__name__)

MIGRATION_SCHEME = "otpauth-migration"

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5

PAYLOAD_VERSION = 1
ALGORITHM_SHA1 = 1
DIGITS_SIX = 1
DIGITS_EIGHT = 2
OTP_TYPE_HOTP = 1
OTP_TYPE_TOTP = 2

_MAX_VARINT_SHIFT = 63

# batch_id ngẫu nhiên luôn >= 2**14 để varint dài ít nhất 3 byte
MIN_BATCH_ID = 2 ** 14
MAX_BATCH_ID = 2 ** 31


# --- Wire primitives ---------------------------------------------------------
def encode_varint(value: int) -> bytes:
    """7 bits per byte, least significant group first, MSB = continuation."""
    if value < 0:
        raise ValueError("varint value must be non-negative")
    out = bytearray()
    while True:
        to_write = value & 0x7F
        value >>= 7
        if value:
            out.append(to_write | 0x80)
        else:
            out.append(to_write)
            return bytes(out)


def read_varint(buf: bytes, i: int) -> Tuple[int, int]:
    """Read a varint at offset i; returns (value, next offset)."""
    shift = 0
    value = 0
    while True:
        if i >= len(buf):
            raise MalformedPayload("Truncated varint")
        b = buf[i]
        i += 1
        value |= (b & 0x7F) << shift
        if not b & 0x80:
            return value, i
        shift += 7
        if shift > _MAX_VARINT_SHIFT:
            raise MalformedPayload("Varint too long")


def read_length_delimited(buf: bytes, i: int) -> Tuple[bytes, int]:
    length, i = read_varint(buf, i)
    end = i + length
    if end > len(buf):
        raise MalformedPayload("Truncated length-delimited field")
    return buf[i:end], end


def skip_field(buf: bytes, i: int, wire_type: int) -> int:
    """Consume a field value we do not interpret."""
    if wire_type == WIRE_VARINT:
        _, i = read_varint(buf, i)
        return i
    if wire_type == WIRE_LENGTH_DELIMITED:
        _, i = read_length_delimited(buf, i)
        return i
    if wire_type in (WIRE_FIXED64, WIRE_FIXED32):
        i += 8 if wire_type == WIRE_FIXED64 else 4
        if i > len(buf):
            raise MalformedPayload("Truncated fixed-width field")
        return i
    raise MalformedPayload(f"Unsupported wire type: {wire_type}")


def iter_fields(buf: bytes):
    """
    Yield (field_number, wire_type, value) for every field in a message.

    Varint fields yield an int, length-delimited fields yield bytes, fixed
    width fields are skipped and yield None.
    """
    i = 0
    while i < len(buf):
        key, i = read_varint(buf, i)
        field_number, wire_type = key >> 3, key & 0x7
        if wire_type == WIRE_VARINT:
            value, i = read_varint(buf, i)
        elif wire_type == WIRE_LENGTH_DELIMITED:
            value, i = read_length_delimited(buf, i)
        else:
            i = skip_field(buf, i, wire_type)
            value = None
        yield field_number, wire_type, value


def _field_key(field_number: int, wire_type: int) -> bytes:
    return encode_varint((field_number << 3) | wire_type)


def _varint_field(field_number: int, value: int) -> bytes:
    return _field_key(field_number, WIRE_VARINT) + encode_varint(value)


def _bytes_field(field_number: int, payload: bytes) -> bytes:
    return _field_key(field_number, WIRE_LENGTH_DELIMITED) + encode_varint(len(payload)) + payload


# --- Encoding ----------------------------------------------------------------
def encode_otp_parameters(credential: Credential) -> Optional[bytes]:
    """Sub-record for one credential, or None when its secret does not decode."""
    secret = base32.decode(credential.secret) if credential.secret else None
    if secret is None:
        return None
    parts = [
        _bytes_field(1, secret),
        _bytes_field(2, credential.label.encode("utf-8")),
    ]
    if credential.issuer:
        parts.append(_bytes_field(3, credential.issuer.encode("utf-8")))
    parts.append(_varint_field(4, ALGORITHM_SHA1))
    parts.append(_varint_field(5, DIGITS_EIGHT if credential.digits == 8 else DIGITS_SIX))
    parts.append(_varint_field(6, OTP_TYPE_TOTP))
    return b"".join(parts)


def encode_batch(
    credentials: Iterable[Credential],
    batch_index: int = 0,
    batch_size: int = 1,
    batch_id: int = 0,
) -> bytes:
    """
    Encode one migration batch.

    Credentials without a decodable secret are left out; if none remain the
    result is b"" and the caller has nothing to export.

    batch_id is the last field. Cutting bytes off the end is only detected
    when the cut lands inside a field: with a 2-byte batch_id varint, losing
    exactly the last 3 bytes leaves a shorter message that still parses.
    export_batches therefore draws ids in [MIN_BATCH_ID, MAX_BATCH_ID).
    """
    records = [encode_otp_parameters(c) for c in credentials]
    parts = [_bytes_field(1, r) for r in records if r is not None]
    if not parts:
        return b""
    parts.append(_varint_field(2, PAYLOAD_VERSION))
    parts.append(_varint_field(3, batch_size))
    parts.append(_varint_field(4, batch_index))
    parts.append(_varint_field(5, batch_id))
    return b"".join(parts)


# --- Decoding ----------------------------------------------------------------
def _decode_otp_parameters(buf: bytes) -> Optional[Credential]:
    secret = None
    label = ""
    issuer = ""
    digits_code = DIGITS_SIX
    otp_type = None

    for field_number, wire_type, value in iter_fields(buf):
        if field_number == 1 and wire_type == WIRE_LENGTH_DELIMITED:
            secret = value
        elif field_number == 2 and wire_type == WIRE_LENGTH_DELIMITED:
            label = value.decode("utf-8", errors="replace")
        elif field_number == 3 and wire_type == WIRE_LENGTH_DELIMITED:
            issuer = value.decode("utf-8", errors="replace")
        elif field_number == 5 and wire_type == WIRE_VARINT:
            digits_code = value
        elif field_number == 6 and wire_type == WIRE_VARINT:
            otp_type = value

    if otp_type == OTP_TYPE_HOTP:
        logger.info("Skipping HOTP entry in migration payload")
        return None
    if not secret:
        logger.info("Skipping migration entry without a secret")
        return None

    inferred_issuer, name = split_label(label)
    issuer = issuer.strip() or inferred_issuer or None
    return Credential.create(
        name=name or issuer or FALLBACK_NAME,
        secret=base32.encode(secret),
        issuer=issuer,
        digits=8 if digits_code == DIGITS_EIGHT else 6,
        period=DEFAULT_TIME_STEP,
    )


def decode_batch_strict(payload: bytes) -> MigrationBatch:
    """Decode a payload, raising MalformedPayload on any wire-level damage."""
    batch = MigrationBatch()
    for field_number, wire_type, value in iter_fields(payload):
        if field_number == 1 and wire_type == WIRE_LENGTH_DELIMITED:
            credential = _decode_otp_parameters(value)
            if credential is not None:
                batch.credentials.append(credential)
        elif wire_type == WIRE_VARINT and field_number == 3:
            batch.batch_size = value
        elif wire_type == WIRE_VARINT and field_number == 4:
            batch.batch_index = value
        elif wire_type == WIRE_VARINT and field_number == 5:
            batch.batch_id = value
    return batch


def decode_batch(payload: bytes) -> Optional[List[Credential]]:
    """
    Decode one batch into credentials.

    Returns None when the payload is malformed anywhere; a damaged batch
    never yields a partial list.
    """
    try:
        return decode_batch_strict(payload).credentials
    except MalformedPayload as e:
        logger.warning("Malformed migration payload: %s", e)
        return None


# --- URIs ----------------------------------------------------------------------
def build_migration_uri(payload: bytes) -> str:
    data = base64.b64encode(payload).decode("ascii")
    return f"{MIGRATION_SCHEME}://offline?data={quote(data, safe='')}"


def is_migration_uri(text: str) -> bool:
    return text.strip().lower().startswith(MIGRATION_SCHEME + ":")


def _payload_from_uri(uri: str) -> Optional[bytes]:
    parsed = urlparse(uri.strip())
    if parsed.scheme.lower() != MIGRATION_SCHEME:
        return None
    # parse_qs would turn '+' of standard base64 into a space
    data_list = parse_qs(parsed.query.replace("+", "%2B")).get("data")
    if not data_list or not data_list[0]:
        return None
    data = unquote(data_list[0]).strip().replace("-", "+").replace("_", "/")
    data += "=" * (-len(data) % 4)
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None


def parse_migration_uri(uri: str) -> Optional[List[Credential]]:
    """Decode the credentials carried by one `otpauth-migration://` URI."""
    payload = _payload_from_uri(uri)
    if payload is None:
        logger.debug("Not a usable otpauth-migration URI")
        return None
    return decode_batch(payload)


def chunked(items: Sequence[Credential], size: int) -> List[List[Credential]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def export_batches(
    credentials: Iterable[Credential],
    chunk_size: int = EXPORT_CHUNK_SIZE,
    batch_id: Optional[int] = None,
) -> List[str]:
    """
    Split credentials into migration URIs, one per QR code.

    Only credentials with a decodable secret are exported. All URIs of one
    export share a random batch_id; batch_index/batch_size give position.
    """
    exportable = [c for c in credentials if c.secret and base32.is_valid_secret(c.secret)]
    if not exportable:
        return []
    if batch_id is None:
        batch_id = MIN_BATCH_ID + secrets.randbelow(MAX_BATCH_ID - MIN_BATCH_ID)
    chunks = chunked(exportable, chunk_size)
    uris = []
    for index, chunk in enumerate(chunks):
        payload = encode_batch(chunk, batch_index=index, batch_size=len(chunks), batch_id=batch_id)
        uris.append(build_migration_uri(payload))
    logger.debug("Exported %d credentials in %d batches", len(exportable), len(chunks))
    return uris
