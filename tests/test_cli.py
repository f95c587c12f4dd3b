import os

import pytest

from totp_core.cli import main
from totp_core.migration import build_migration_uri, encode_batch
from totp_core.store import CredentialStore
from totp_database import SqliteStorage

from .conftest import EXAMPLE_SECRET


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "cli.db")


def _items(db):
    return CredentialStore(SqliteStorage(db)).load()


def test_add_then_list(db, capsys):
    assert main(["--db", db, "add", "GitHub", EXAMPLE_SECRET, "--issuer", "GitHub"]) == 0
    assert main(["--db", db, "list"]) == 0
    out = capsys.readouterr().out
    assert "Added 'GitHub'" in out
    assert "GitHub / GitHub" in out


def test_add_invalid_secret(db, capsys):
    assert main(["--db", db, "add", "x", "not base32!"]) == 1
    assert "Invalid secret" in capsys.readouterr().out
    assert _items(db) == []


def test_rename_move_delete_by_prefix(db):
    main(["--db", db, "add", "one", EXAMPLE_SECRET])
    main(["--db", db, "add", "two", EXAMPLE_SECRET])
    one, two = _items(db)

    assert main(["--db", db, "rename", one.id[:12], "uno"]) == 0
    assert main(["--db", db, "move", two.id, one.id]) == 0
    assert [c.name for c in _items(db)] == ["two", "uno"]

    assert main(["--db", db, "delete", two.id[:12]]) == 0
    assert [c.name for c in _items(db)] == ["uno"]
    assert main(["--db", db, "delete", "zzzz"]) == 1


def test_import_lines(db, sample_credentials):
    text = "\n".join([
        build_migration_uri(encode_batch(sample_credentials)),
        "otpauth://totp/Acme:me?secret=JBSWY3DPEHPK3PXP",
        "not a secret!",
        EXAMPLE_SECRET,
    ])
    assert main(["--db", db, "import", text, "--name", "Bare"]) == 0
    assert [c.name for c in _items(db)] == ["alice@example.com", "bob", "carol", "me", "Bare"]


def test_import_nothing(db):
    assert main(["--db", db, "import", "nothing here!"]) == 1


def test_export_files(db, tmp_path, sample_credentials):
    CredentialStore(SqliteStorage(db)).save(sample_credentials)
    out_dir = str(tmp_path / "exports")
    assert main(["--db", db, "export", "--dir", out_dir]) == 0
    assert main(["--db", db, "export-qr", "--dir", out_dir, "--chunk-size", "2"]) == 0
    names = sorted(os.listdir(out_dir))
    assert names[:2] == ["totp-export-1-of-2.png", "totp-export-2-of-2.png"]
    assert names[2].startswith("totp-export-") and names[2].endswith(".txt")


def test_export_qr_empty(db, tmp_path):
    assert main(["--db", db, "export-qr", "--dir", str(tmp_path)]) == 1


@pytest.mark.parametrize("period", ["0", "-30", "abc"])
def test_add_rejects_non_positive_period(db, period):
    with pytest.raises(SystemExit) as excinfo:
        main(["--db", db, "add", "x", EXAMPLE_SECRET, "--period", period])
    assert excinfo.value.code == 2
    assert _items(db) == []


def test_add_custom_period_is_kept(db, capsys):
    assert main(["--db", db, "add", "x", EXAMPLE_SECRET, "--period", "60", "--digits", "8"]) == 0
    assert main(["--db", db, "list"]) == 0
    assert "unreadable" not in capsys.readouterr().out
    assert [(c.digits, c.period) for c in _items(db)] == [(8, 60)]


def test_export_selected_ids(db, tmp_path, sample_credentials):
    CredentialStore(SqliteStorage(db)).save(sample_credentials)
    first, _, third = sample_credentials
    out_dir = str(tmp_path / "sel")
    assert main(["--db", db, "export", "--dir", out_dir, "--id", first.id[:10], "--id", third.id]) == 0
    (name,) = os.listdir(out_dir)
    with open(os.path.join(out_dir, name), encoding="utf-8") as f:
        lines = f.read().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("otpauth://totp/Example:alice@example.com?")
    assert "/carol?" in lines[1]

    qr_dir = str(tmp_path / "qr")
    assert main(["--db", db, "export-qr", "--dir", qr_dir, "--id", third.id]) == 0
    assert os.listdir(qr_dir) == ["totp-export-1-of-1.png"]


def test_export_unknown_id(db, tmp_path, sample_credentials):
    CredentialStore(SqliteStorage(db)).save(sample_credentials)
    assert main(["--db", db, "export", "--dir", str(tmp_path / "x"), "--id", "zzzz"]) == 1
    assert not os.path.exists(str(tmp_path / "x"))
