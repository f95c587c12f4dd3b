#!/usr/bin/env python3
"""
cli.py — CLI cho kho TOTP đã mã hóa.

Cung cấp các subcommand:
- list      : in danh sách credential kèm mã hiện tại
- watch     : hiển thị mã theo thời gian thực (Ctrl+C để thoát)
- add       : thêm credential từ tên + Base32 secret
- rename    : đổi tên credential
- delete    : xóa credential
- move      : đổi vị trí (đưa SOURCE vào vị trí của TARGET)
- import    : nhập từ text đã decode từ QR (otpauth-migration://, otpauth://, Base32)
- export    : ghi file text, mỗi dòng một otpauth:// URI
- export-qr : ghi ảnh PNG QR cho từng migration batch
"""

import argparse
import os
import sys
import time

from totp_database import SqliteStorage

from . import config
from .exceptions import InvalidSecret
from .export import qr_png, write_export
from .migration import export_batches
from .scan import parse_scan_payload
from .store import CredentialStore
from .totp import TotpGenerator, remaining_seconds


def log(msg: str, verbose: bool):
    if verbose:
        print(f"[+] {msg}")


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def open_store(args) -> CredentialStore:
    store = CredentialStore(SqliteStorage(args.db))
    store.load()
    if store.last_dropped:
        print(f"[!] {store.last_dropped} stored entries were unreadable and skipped.")
    return store


# --- CLI command handlers ---
def cmd_list(args):
    store = open_store(args)
    generator = TotpGenerator()
    now = time.time()
    if not store.items:
        print("No credentials yet. Use 'add' or 'import'.")
        return 0
    for item in store.items:
        label = f"{item.issuer} / {item.name}" if item.issuer else item.name
        code = generator.display_code(item, now)
        remaining = int(remaining_seconds(item.period, now))
        print(f"{item.id[:8]}  {code:>9}  ({remaining:2d}s)  {label}")
    return 0


def cmd_watch(args):
    store = open_store(args)
    generator = TotpGenerator()
    print("Press Ctrl+C to quit. Refreshing codes every second...\n")
    try:
        while True:
            now = time.time()
            line = "  ".join(f"{item.name}: {generator.display_code(item, now)}" for item in store.items)
            print(line, end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


def cmd_add(args):
    store = open_store(args)
    try:
        credential = store.add(args.name, args.secret, issuer=args.issuer,
                               digits=args.digits, period=args.period)
    except InvalidSecret:
        print("[!] Invalid secret: not a Base32 value.")
        return 1
    except ValueError as e:
        print(f"[!] {e}")
        return 1
    print(f"[*] Added '{credential.name}' ({credential.id[:8]})")
    return 0


def _resolve(store: CredentialStore, prefix: str):
    matches = [item for item in store.items if item.id.startswith(prefix)]
    if len(matches) != 1:
        print(f"[!] No unique credential matches '{prefix}'.")
        return None
    return matches[0]


def cmd_rename(args):
    store = open_store(args)
    item = _resolve(store, args.id)
    if item is None:
        return 1
    try:
        store.rename(item.id, args.name)
    except ValueError as e:
        print(f"[!] {e}")
        return 1
    print(f"[*] Renamed to '{item.name}'")
    return 0


def cmd_delete(args):
    store = open_store(args)
    item = _resolve(store, args.id)
    if item is None:
        return 1
    store.delete(item.id)
    print(f"[*] Deleted '{item.name}'")
    return 0


def cmd_move(args):
    store = open_store(args)
    source = _resolve(store, args.source)
    target = _resolve(store, args.target)
    if source is None or target is None:
        return 1
    if store.move(source.id, target.id):
        print(f"[*] Moved '{source.name}'")
    return 0


def cmd_import(args):
    text = args.text
    if text is None:
        text = sys.stdin.read()
    store = open_store(args)
    total = 0
    for line in text.splitlines():
        if not line.strip():
            continue
        result = parse_scan_payload(line, fallback_name=args.name)
        if result is None:
            print("[!] Skipped a line that is not a TOTP URI or Base32 secret.")
            continue
        added = store.add_many(result.credentials)
        total += len(added)
        log(f"{result.kind}: imported {len(added)} entries", args.verbose)
    print(f"[*] Imported {total} credential(s)")
    return 0 if total else 1


def _selected(store: CredentialStore, prefixes):
    """Credential theo danh sách id prefix (None -> tất cả); None nếu có prefix không khớp."""
    if not prefixes:
        return list(store.items)
    chosen = []
    for prefix in prefixes:
        item = _resolve(store, prefix)
        if item is None:
            return None
        if item not in chosen:
            chosen.append(item)
    return chosen


def cmd_export(args):
    store = open_store(args)
    items = _selected(store, args.ids)
    if items is None:
        return 1
    path = write_export(items, args.dir)
    print(f"[*] Wrote {path}")
    return 0


def cmd_export_qr(args):
    store = open_store(args)
    items = _selected(store, args.ids)
    if items is None:
        return 1
    uris = export_batches(items, chunk_size=args.chunk_size)
    if not uris:
        print("[!] Nothing to export.")
        return 1
    os.makedirs(args.dir, exist_ok=True)
    for index, uri in enumerate(uris, start=1):
        path = os.path.join(args.dir, f"{config.EXPORT_PREFIX}-{index}-of-{len(uris)}.png")
        with open(path, "wb") as f:
            f.write(qr_png(uri))
        print(f"[*] Wrote {path}")
    return 0


def cmd_help(args):
    print("'totp-desk -h' for help.")
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Encrypted TOTP credential store")
    p.add_argument("--db", default=config.DATABASE_FILE, help="SQLite storage file")
    p.add_argument("--verbose", action="store_true", help="Verbose output")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    pl = sub.add_parser("list", help="List credentials with their current code")
    pl.set_defaults(func=cmd_list)

    pw = sub.add_parser("watch", help="Show codes in real time")
    pw.set_defaults(func=cmd_watch)

    pa = sub.add_parser("add", help="Add a credential")
    pa.add_argument("name", help="Label shown in the list")
    pa.add_argument("secret", help="Base32 secret")
    pa.add_argument("--issuer", default=None)
    pa.add_argument("--digits", type=int, choices=config.ALLOWED_DIGITS, default=config.DEFAULT_DIGITS)
    pa.add_argument("--period", type=positive_int, default=config.DEFAULT_TIME_STEP, help="TOTP time step (seconds)")
    pa.set_defaults(func=cmd_add)

    pr = sub.add_parser("rename", help="Rename a credential")
    pr.add_argument("id", help="Credential id (or unique prefix)")
    pr.add_argument("name")
    pr.set_defaults(func=cmd_rename)

    pd = sub.add_parser("delete", help="Delete a credential")
    pd.add_argument("id", help="Credential id (or unique prefix)")
    pd.set_defaults(func=cmd_delete)

    pm = sub.add_parser("move", help="Move SOURCE to the position of TARGET")
    pm.add_argument("source")
    pm.add_argument("target")
    pm.set_defaults(func=cmd_move)

    pi = sub.add_parser("import", help="Import decoded QR text (one payload per line, stdin if omitted)")
    pi.add_argument("text", nargs="?")
    pi.add_argument("--name", default="TOTP", help="Name for bare Base32 secrets")
    pi.set_defaults(func=cmd_import)

    pe = sub.add_parser("export", help="Write otpauth URIs to a dated text file")
    pe.add_argument("--dir", default=config.EXPORT_DIR)
    pe.add_argument("--id", dest="ids", action="append", help="Only this credential (id prefix, repeatable)")
    pe.set_defaults(func=cmd_export)

    pq = sub.add_parser("export-qr", help="Write migration QR codes as PNG files")
    pq.add_argument("--dir", default=config.EXPORT_DIR)
    pq.add_argument("--id", dest="ids", action="append", help="Only this credential (id prefix, repeatable)")
    pq.add_argument("--chunk-size", type=positive_int, default=config.EXPORT_CHUNK_SIZE)
    pq.set_defaults(func=cmd_export_qr)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    config.configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
