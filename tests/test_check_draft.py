import json

from ops.check_draft import main


def test_valid_listing_file_prints_payload(tmp_path, existing_listing, capsys):
    path = tmp_path / "listing.json"
    path.write_text(json.dumps(existing_listing), encoding="utf-8")

    assert main(["--file", str(path), "--kind", "listing"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["name"] == "Cotton T-Shirt"
    assert payload["hasVariants"] is True


def test_invalid_draft_prints_summary(tmp_path, capsys):
    path = tmp_path / "draft.json"
    path.write_text(json.dumps({"formData": {"type": "product", "name": "Lamp"}}), encoding="utf-8")

    assert main(["--file", str(path)]) == 1
    err = capsys.readouterr().err
    assert "Description is required; Category is required; Valid price is required (or mark as free) (+2 more)" in err


def test_unreadable_file(tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text("[1, 2", encoding="utf-8")
    assert main(["--file", str(path)]) == 2
    assert "Cannot read draft" in capsys.readouterr().err
