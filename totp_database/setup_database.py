import logging
import os
import sqlite3

logger = logging.getLogger(__name__)


def setup_database(path: str) -> None:
    """Tạo file database và bảng storage (key/value) nếu chưa có."""

    # Đảm bảo thư mục tồn tại
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    try:
        # Mỗi slot là một giá trị text (Base64 key, JSON blob đã mã hóa)
        conn.execute('''
        CREATE TABLE IF NOT EXISTS storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        ''')
        conn.commit()
    finally:
        conn.close()
    logger.debug("Storage database ready at %s", path)


if __name__ == "__main__":
    from totp_core.config import DATABASE_FILE

    setup_database(DATABASE_FILE)
    print(f"Database setup completed: {DATABASE_FILE}")
