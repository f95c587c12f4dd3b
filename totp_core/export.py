"""
export.py — xuất danh sách credential.

- File text: mỗi dòng một otpauth:// URI, tên file có hậu tố ngày ISO.
- QR: mỗi batch migration được render thành ảnh PNG (thư viện qrcode).
"""

import base64
import io
import logging
import os
from datetime import date
from typing import Iterable, List, Optional

import qrcode

from .config import EXPORT_PREFIX
from .models import Credential
from .otpauth import format_otpauth_uri

logger = logging.getLogger(__name__)


def export_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{EXPORT_PREFIX}-{day.isoformat()}.txt"


def export_lines(credentials: Iterable[Credential]) -> List[str]:
    # chỉ credential có secret mới tạo được URI
    return [format_otpauth_uri(c) for c in credentials if c.secret]


def export_text(credentials: Iterable[Credential]) -> str:
    lines = export_lines(credentials)
    return "\n".join(lines) + ("\n" if lines else "")


def write_export(credentials: Iterable[Credential], directory: str, day: Optional[date] = None) -> str:
    """Ghi file export vào `directory`, trả về đường dẫn file."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, export_filename(day))
    with open(path, "w", encoding="utf-8") as f:
        f.write(export_text(credentials))
    logger.info("Wrote export file %s", path)
    return path


def qr_png(data: str) -> bytes:
    """Render `data` (thường là migration URI) thành ảnh PNG."""
    qr = qrcode.QRCode(box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def qr_data_url(data: str) -> str:
    return "data:image/png;base64," + base64.b64encode(qr_png(data)).decode("ascii")
