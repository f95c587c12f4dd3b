from datetime import date

from totp_core.export import export_filename, export_lines, export_text, qr_data_url, qr_png, write_export
from totp_core.models import Credential
from totp_core.otpauth import parse_otpauth


def test_export_filename():
    assert export_filename(date(2024, 3, 9)) == "totp-export-2024-03-09.txt"


def test_export_lines_skip_static_entries(sample_credentials):
    static = Credential.create(name="static", code="123456")
    lines = export_lines(sample_credentials + [static])
    assert len(lines) == 3
    parsed = [parse_otpauth(line) for line in lines]
    assert [(p.name, p.issuer, p.digits) for p in parsed] == [
        (c.name, c.issuer, c.digits) for c in sample_credentials
    ]


def test_export_text_is_newline_terminated(sample_credentials):
    assert export_text(sample_credentials).count("\n") == 3
    assert export_text([]) == ""


def test_write_export(tmp_path, sample_credentials):
    path = write_export(sample_credentials, str(tmp_path / "out"), day=date(2024, 1, 2))
    assert path.endswith("totp-export-2024-01-02.txt")
    with open(path, encoding="utf-8") as f:
        assert f.read() == export_text(sample_credentials)


def test_qr_png():
    png = qr_png("otpauth://totp/x?secret=JBSWY3DPEHPK3PXP")
    assert png.startswith(b"\x89PNG")
    assert qr_data_url("hello").startswith("data:image/png;base64,")
