from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path

import pytest

from fillforms import cli
from fillforms.exceptions import UnprocessableDocumentError
from fillforms.settings import Settings
from fillforms.typing.models import ExtractedDocument, FieldDefinition


def _document(*fields: FieldDefinition) -> ExtractedDocument:
    return ExtractedDocument(fields=list(fields), page_count=1, fingerprint="fp")


def test_build_parser_supports_version_flag(capsys) -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["--version"])
    assert exc_info.value.code == 0

    captured = capsys.readouterr()
    assert "0.1.0" in captured.out


def test_build_parser_validate_defaults() -> None:
    args = cli.build_parser().parse_args(["validate", "--input", "form.pdf", "--vision"])

    assert args.command == "validate"
    assert args.input_path == Path("form.pdf")
    assert args.output_path == Path("results/validation.json")
    assert args.include_vision is True


def test_main_runs_fields_flow(mocker, tmp_path: Path) -> None:
    parser = mocker.Mock()
    parser.parse_args.return_value = Namespace(
        command="fields",
        input_path=Path("input.pdf"),
        output_path=tmp_path / "fields.json",
        visa_type=None,
    )
    command = mocker.Mock()

    mocker.patch("fillforms.cli.build_parser", return_value=parser)
    mocker.patch("fillforms.cli.get_settings", return_value=Settings())
    mocker.patch("fillforms.cli.ensure_package_dependencies")
    mocker.patch("fillforms.cli.ensure_cli_dependencies")
    mocker.patch.dict(cli._COMMANDS, {"fields": command})

    assert cli.main() == 0
    command.assert_called_once()


def test_main_returns_error_code_on_package_error(mocker, tmp_path: Path) -> None:
    parser = mocker.Mock()
    parser.parse_args.return_value = Namespace(
        command="fields",
        input_path=Path("input.pdf"),
        output_path=tmp_path / "fields.json",
        visa_type=None,
    )

    mocker.patch("fillforms.cli.build_parser", return_value=parser)
    mocker.patch("fillforms.cli.get_settings", return_value=Settings())
    mocker.patch("fillforms.cli.ensure_package_dependencies")
    mocker.patch("fillforms.cli.ensure_cli_dependencies")
    mocker.patch.dict(cli._COMMANDS, {"fields": mocker.Mock(side_effect=UnprocessableDocumentError())})

    assert cli.main() == 1


def test_main_without_command_prints_help(mocker) -> None:
    parser = mocker.Mock()
    parser.parse_args.return_value = Namespace(command=None)
    mocker.patch("fillforms.cli.build_parser", return_value=parser)
    mocker.patch("fillforms.cli.get_settings", return_value=Settings())

    assert cli.main() == 0
    parser.print_help.assert_called_once()


def test_run_fill_writes_filled_document(mocker, tmp_path: Path) -> None:
    input_path = tmp_path / "form.pdf"
    input_path.write_bytes(b"pdf")
    profile_path = tmp_path / "profile.json"
    profile_path.write_text(json.dumps({"profile": {"lastName": "Doe"}}), encoding="utf-8")
    output_path = tmp_path / "out" / "filled.pdf"

    mocker.patch("fillforms.cli._extract", return_value=_document(FieldDefinition(name="surname")))
    synthesize = mocker.patch("fillforms.cli.synthesize_document", return_value=b"filled")
    args = Namespace(
        input_path=input_path,
        profile_path=profile_path,
        output_path=output_path,
        country="",
        visa_type="",
    )

    assert cli.run_fill(args, Settings()) == output_path
    assert output_path.read_bytes() == b"filled"
    written_fields = synthesize.call_args.args[1]
    assert written_fields[0].value == "Doe"


def test_run_validate_persists_structured_report(mocker, tmp_path: Path) -> None:
    input_path = tmp_path / "form.pdf"
    input_path.write_bytes(b"pdf")
    output_path = tmp_path / "validation.json"
    mocker.patch(
        "fillforms.cli._extract",
        return_value=_document(FieldDefinition(name="email", value="not-an-email")),
    )
    args = Namespace(input_path=input_path, country="", output_path=output_path, include_vision=False)

    report = cli.run_validate(args, Settings())

    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["vision"] is None
    assert "email:email-format" in {issue["id"] for issue in payload["structured"]["issues"]}
    assert report.has_blocking_errors
