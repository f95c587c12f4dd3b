"""
TOTP API ROUTES - FLASK BLUEPRINT

Các endpoint mà giao diện gọi vào core:

    GET    /api/items                 danh sách + mã hiện tại
    POST   /api/items                 {"name", "secret"} -> thêm mới
    POST   /api/items/<id>/rename     {"name"}
    DELETE /api/items/<id>
    POST   /api/items/reorder         {"source_id", "target_id"}
    POST   /api/scan                  {"text"} -> kết quả parse, chưa lưu
    POST   /api/import                {"text"} -> parse và lưu
    GET    /api/export/text?id=...    file text otpauth:// (tải về)
    POST   /api/export/qr             {"ids": [...]} -> ảnh QR migration

VÍ DỤ:
curl http://127.0.0.1:5000/api/items
curl -X POST http://127.0.0.1:5000/api/items -H "Content-Type: application/json" -d '{"name": "GitHub", "secret": "JBSWY3DPEHPK3PXP"}'
"""

import logging
import time

from flask import Blueprint, Response, current_app, jsonify, request

from totp_core.exceptions import InvalidSecret
from totp_core.export import export_filename, export_text, qr_data_url
from totp_core.migration import export_batches
from totp_core.scan import parse_scan_payload
from totp_core.totp import remaining_seconds

logger = logging.getLogger(__name__)

totp_bp = Blueprint('totp', __name__, url_prefix='/api')


def _store():
    return current_app.extensions["credential_store"]


def _generator():
    return current_app.extensions["totp_generator"]


def _serialize(item, now):
    return {
        "id": item.id,
        "name": item.name,
        "issuer": item.issuer,
        "digits": item.digits,
        "period": item.period,
        "code": _generator().display_code(item, now),
        "remaining": remaining_seconds(item.period, now),
    }


def _entry(item):
    # giao diện dùng kết quả scan để điền sẵn form thêm mới
    return {"name": item.name, "issuer": item.issuer, "secret": item.secret,
            "digits": item.digits, "period": item.period}


@totp_bp.route('/items', methods=['GET'])
def list_items():
    now = time.time()
    store = _store()
    return jsonify({
        "items": [_serialize(item, now) for item in store.items],
        "dropped": store.last_dropped,
    })


@totp_bp.route('/items', methods=['POST'])
def add_item():
    """
    THÊM CREDENTIAL

      {"name": "GitHub", "secret": "JBSWY3DPEHPK3PXP"}
    """
    data = request.get_json(silent=True) or {}
    try:
        item = _store().add(str(data.get('name', '')), str(data.get('secret', '')))
    except InvalidSecret:
        return jsonify({"error": "Invalid secret"}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_serialize(item, time.time())), 201


@totp_bp.route('/items/<string:item_id>/rename', methods=['POST'])
def rename_item(item_id):
    data = request.get_json(silent=True) or {}
    try:
        item = _store().rename(item_id, str(data.get('name', '')))
    except KeyError:
        return jsonify({"error": "Item not found"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_serialize(item, time.time()))


@totp_bp.route('/items/<string:item_id>', methods=['DELETE'])
def delete_item(item_id):
    try:
        _store().delete(item_id)
    except KeyError:
        return jsonify({"error": "Item not found"}), 404
    return jsonify({"deleted": item_id})


@totp_bp.route('/items/reorder', methods=['POST'])
def reorder_items():
    data = request.get_json(silent=True) or {}
    source_id = data.get('source_id')
    target_id = data.get('target_id')
    if not source_id or not target_id:
        return jsonify({"error": "source_id and target_id are required"}), 400
    moved = _store().move(source_id, target_id)
    return jsonify({"moved": moved, "order": [item.id for item in _store().items]})


def _scan(data):
    text = data.get('text')
    if not isinstance(text, str) or not text.strip():
        return None
    return parse_scan_payload(text, fallback_name=str(data.get('name') or "TOTP"))


@totp_bp.route('/scan', methods=['POST'])
def scan_payload():
    """
    PARSE TEXT ĐÃ DECODE TỪ QR (chưa lưu)

      {"text": "otpauth://totp/Example:alice?secret=JBSWY3DPEHPK3PXP"}
    """
    result = _scan(request.get_json(silent=True) or {})
    if result is None:
        return jsonify({"error": "No TOTP data found"}), 400
    return jsonify({"type": result.kind, "entries": [_entry(c) for c in result.credentials]})


@totp_bp.route('/import', methods=['POST'])
def import_payload():
    result = _scan(request.get_json(silent=True) or {})
    if result is None:
        return jsonify({"error": "No TOTP data found"}), 400
    added = _store().add_many(result.credentials)
    now = time.time()
    return jsonify({"type": result.kind, "imported": [_serialize(item, now) for item in added]})


def _selected(ids):
    """Credential có id trong `ids`, giữ thứ tự danh sách; ids rỗng -> tất cả."""
    items = _store().items
    if not ids:
        return list(items)
    wanted = set(ids)
    return [item for item in items if item.id in wanted]


@totp_bp.route('/export/text', methods=['GET'])
def export_text_file():
    """
    FILE TEXT OTPAUTH:// (tải về)

      /api/export/text?id=...&id=...   (không có id -> tất cả)
    """
    body = export_text(_selected(request.args.getlist('id')))
    return Response(
        body,
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@totp_bp.route('/export/qr', methods=['POST'])
def export_qr():
    """
    ẢNH QR MIGRATION CHO CÁC CREDENTIAL ĐÃ CHỌN

      {"ids": ["..."]}   (bỏ trống -> tất cả)
    """
    data = request.get_json(silent=True) or {}
    ids = data.get('ids')
    if ids is not None and (not isinstance(ids, list) or not all(isinstance(i, str) for i in ids)):
        return jsonify({"error": "ids must be a list of strings"}), 400
    uris = export_batches(_selected(ids))
    if not uris:
        return jsonify({"error": "Nothing to export"}), 400
    return jsonify({
        "qr_codes": [
            {"title": f"{index}/{len(uris)}", "uri": uri, "data_url": qr_data_url(uri)}
            for index, uri in enumerate(uris, start=1)
        ]
    })
