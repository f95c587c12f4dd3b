"""
config.py — hằng số cấu hình dùng chung cho totp_core.

Giá trị mặc định có thể ghi đè bằng biến môi trường:
- TOTP_DESK_DB         : đường dẫn file SQLite (key slot + credential blob)
- TOTP_DESK_LOG_LEVEL  : mức log (DEBUG / INFO / WARNING ...)
- TOTP_DESK_EXPORT_DIR : thư mục ghi file export
"""

import logging
import os

# --- OTP defaults -----------------------------------------------------------
DEFAULT_DIGITS = 6          # chuẩn: 6 chữ số
DEFAULT_TIME_STEP = 30      # TOTP step (giây)
ALLOWED_DIGITS = (6, 8)
PLACEHOLDER_CODE = "------"

# --- Storage slots (localStorage-style keys) --------------------------------
KEY_STORAGE = "totp_items_key_v1"
STORAGE_KEY = "totp_items_v1"

# --- Vault -------------------------------------------------------------------
KEY_BYTES = 32              # AES-256
NONCE_BYTES = 12            # GCM nonce

# --- Import / export ---------------------------------------------------------
EXPORT_CHUNK_SIZE = 10
EXPORT_PREFIX = "totp-export"

DATABASE_FILE = os.getenv("TOTP_DESK_DB", os.path.join("data", "totp_desk.db"))
EXPORT_DIR = os.getenv("TOTP_DESK_EXPORT_DIR", ".")
LOG_LEVEL = os.getenv("TOTP_DESK_LOG_LEVEL", "WARNING")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Cấu hình root logger một lần cho CLI / Flask entry point."""
    level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL.upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)
