"""
totp_core package
=================

Lõi của ứng dụng TOTP desktop: sinh mã, codec Base32, parse otpauth://,
codec migration payload và lớp mã hóa khi lưu.

──────────────────────────────────────────────
Thành phần
──────────────────────────────────────────────
- base32     : normalize / decode / encode secret (RFC 4648)
- totp       : TotpGenerator, RFC 6238 trên HOTP RFC 4226 (HMAC-SHA1)
- otpauth    : parse một URI otpauth://totp/...
- migration  : payload nhị phân trong otpauth-migration://offline?data=...
- vault      : AES-256-GCM, key lưu trong local storage
- store      : CredentialStore, load / save / thêm / đổi tên / xóa / sắp xếp
- scan       : text từ QR -> migration, otpauth hoặc Base32 trần
- export     : file text otpauth:// và ảnh QR

──────────────────────────────────────────────
Ví dụ sử dụng nhanh
──────────────────────────────────────────────
>>> from totp_core import TotpGenerator
>>> TotpGenerator().generate("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", period=30, digits=8, timestamp=59)
'94287082'
"""
# Can be imported as: from totp_core import <name>
from .models import Credential, RecordResult, validate_record
from .otpauth import format_otpauth_uri, parse_otpauth
from .migration import decode_batch, encode_batch, export_batches, parse_migration_uri
from .scan import ScanResult, parse_scan_payload
from .store import CredentialStore
from .totp import TotpGenerator, canonical_code, format_code
from .vault import EncryptedBlob, VaultCrypto

__all__ = [
    "Credential",
    "CredentialStore",
    "EncryptedBlob",
    "RecordResult",
    "ScanResult",
    "TotpGenerator",
    "VaultCrypto",
    "canonical_code",
    "decode_batch",
    "encode_batch",
    "export_batches",
    "format_code",
    "format_otpauth_uri",
    "parse_migration_uri",
    "parse_otpauth",
    "parse_scan_payload",
    "validate_record",
]
