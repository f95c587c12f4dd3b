"""
FLASK APP - LOCAL API CHO ỨNG DỤNG TOTP
=======================================

Giao diện desktop (webview) gọi các endpoint ở đây; mọi logic nằm trong
totp_core. Server chỉ nên lắng nghe trên localhost.

CÁC TÍNH NĂNG CHÍNH
- Flask app factory, CORS cho frontend chạy khác origin
- Đăng ký blueprint /api từ totp_backend/routes.py
- CredentialStore được tạo một lần và gắn vào app.extensions
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from totp_core import config
from totp_core.store import CredentialStore
from totp_core.totp import TotpGenerator
from totp_database import SqliteStorage

logger = logging.getLogger(__name__)


def create_app(store=None, database_file=None):
    """
    Tạo Flask app.

    Arguments:
        store: CredentialStore có sẵn (tests truyền vào store dùng MemoryStorage)
        database_file: đường dẫn SQLite khi không truyền store
    """
    app = Flask(__name__)

    # BẬT CORS: frontend của shell desktop chạy trên origin khác
    CORS(app)

    if store is None:
        store = CredentialStore(SqliteStorage(database_file or config.DATABASE_FILE))
    store.load()
    if store.last_dropped:
        logger.warning("%d stored credential(s) could not be read", store.last_dropped)

    app.extensions["credential_store"] = store
    app.extensions["totp_generator"] = TotpGenerator()

    from totp_backend.routes import totp_bp
    app.register_blueprint(totp_bp)

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({"service": "totp-desk", "api": "/api/items"})

    return app


# KHỞI CHẠY SERVER
if __name__ == '__main__':
    config.configure_logging()
    create_app().run(host='127.0.0.1', port=5000)
