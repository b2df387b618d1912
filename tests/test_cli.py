import json

from gst_receipts import cli


def _write_request(tmp_path, payload) -> str:
    path = tmp_path / "receipt.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_totals_command(tmp_path, capsys, receipt_payload):
    code = cli.main(["totals", _write_request(tmp_path, receipt_payload)])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["grand_total"] == 95
    assert data["cgst"] == 2.25


def test_render_command_writes_payload(tmp_path, capsys, receipt_payload):
    out = tmp_path / "receipt.bin"
    code = cli.main(["render", _write_request(tmp_path, receipt_payload), "-o", str(out)])
    assert code == 0
    assert out.read_bytes().startswith(b"\x1b@")
    assert f"wrote {out.stat().st_size} bytes" in capsys.readouterr().out


def test_preview_command(tmp_path, capsys, receipt_payload):
    receipt_payload["width"] = "narrow"
    assert cli.main(["preview", _write_request(tmp_path, receipt_payload)]) == 0
    out = capsys.readouterr().out
    assert "CORNER CAFE" in out
    assert "TOTAL:" in out


def test_print_without_serial_port_exits_3(tmp_path, capsys, receipt_payload):
    path = _write_request(tmp_path, receipt_payload)
    code = cli.main(["print", path, "--method", "serial_port"])
    assert code == 3
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is False
    assert data["error"]["code"] == "TRANSPORT_UNAVAILABLE"


def test_missing_file_exits_2(tmp_path, capsys):
    assert cli.main(["totals", str(tmp_path / "missing.json")]) == 2
    assert "error:" in capsys.readouterr().err


def test_invalid_invoice_exits_2(tmp_path, capsys, receipt_payload):
    receipt_payload["invoice"]["lines"][0]["rate"] = -1
    assert cli.main(["totals", _write_request(tmp_path, receipt_payload)]) == 2
    assert "Rate cannot be negative" in capsys.readouterr().err
