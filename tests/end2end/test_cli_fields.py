from __future__ import annotations

import json
import sys
from subprocess import run as subprocess_run  # noqa: S404


def test_cli_fields_writes_json(tmp_path, visa_form_pdf: bytes) -> None:
    input_path = tmp_path / "visa.pdf"
    input_path.write_bytes(visa_form_pdf)
    output_path = tmp_path / "out" / "fields.json"

    result = subprocess_run(  # noqa: S603
        [
            sys.executable,
            "-m",
            "fillforms.cli",
            "fields",
            "--input",
            str(input_path),
            "--output",
            str(output_path),
        ],
        capture_output=True,
        text=True,
        check=False,
        cwd=tmp_path,
    )

    assert result.returncode == 0, result.stderr
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["page_count"] == 1
    assert {field["name"] for field in payload["fields"]} >= {"given_names", "agree", "Surname_1"}


def test_cli_fields_rejects_blank_document(tmp_path, blank_pdf: bytes) -> None:
    input_path = tmp_path / "blank.pdf"
    input_path.write_bytes(blank_pdf)

    result = subprocess_run(  # noqa: S603
        [sys.executable, "-m", "fillforms.cli", "fields", "--input", str(input_path)],
        capture_output=True,
        text=True,
        check=False,
        cwd=tmp_path,
    )

    assert result.returncode == 1
    assert not (tmp_path / "results" / "fields.json").exists()
