"""CLI entry point for FillForms."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

from fillforms import __version__, logger
from fillforms.async_runner import run_async
from fillforms.autofill import autofill
from fillforms.backends import DocumentIntelligenceHTTPClient, OpenAIVisionClient
from fillforms.dependencies import ensure_cli_dependencies, ensure_package_dependencies
from fillforms.exceptions import PackageError
from fillforms.extractor import extract_document, new_intelligence_cache
from fillforms.logging import configure_logging
from fillforms.settings import get_settings
from fillforms.synthesis import synthesize_document
from fillforms.typing.models import DestinationContext, ProfileRecord
from fillforms.validation import Validator, VisionValidator

if TYPE_CHECKING:
    from pydantic import BaseModel

    from fillforms.settings import Settings
    from fillforms.typing.models import ExtractedDocument, ValidationReport


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="fillforms")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    fields_parser = subparsers.add_parser("fields", help="Extract interactive fields from a PDF form")
    fields_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    fields_parser.add_argument("--output", type=Path, default=Path("results/fields.json"), dest="output_path")
    fields_parser.add_argument("--visa-type", default=None, dest="visa_type")

    fill_parser = subparsers.add_parser("fill", help="Autofill a PDF form from a profile JSON file")
    fill_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    fill_parser.add_argument("--profile", required=True, type=Path, dest="profile_path")
    fill_parser.add_argument("--output", type=Path, default=Path("results/filled.pdf"), dest="output_path")
    fill_parser.add_argument("--country", default="", dest="country")
    fill_parser.add_argument("--visa-type", default="", dest="visa_type")

    validate_parser = subparsers.add_parser("validate", help="Validate the values of a filled PDF form")
    validate_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    validate_parser.add_argument("--country", default="", dest="country")
    validate_parser.add_argument(
        "--output",
        type=Path,
        default=Path("results/validation.json"),
        dest="output_path",
    )
    validate_parser.add_argument("--vision", action="store_true", dest="include_vision")

    return parser


def persist_json(payload: BaseModel, path: Path) -> None:
    """Persist a model as indented JSON.

    Args:
        payload (BaseModel): Model to write.
        path (Path): Output path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload.model_dump_json(indent=2), encoding="utf-8")


def _extract(pdf_bytes: bytes, settings: Settings, visa_type: str | None) -> ExtractedDocument:
    client = DocumentIntelligenceHTTPClient(settings) if settings.document_intelligence_endpoint else None
    return run_async(
        extract_document(
            pdf_bytes,
            settings=settings,
            intelligence_client=client,
            cache=new_intelligence_cache(settings) if client else None,
            visa_type=visa_type or None,
        ),
    )


def run_fields(args: argparse.Namespace, settings: Settings) -> Path:
    """Extract fields and write them as JSON.

    Returns:
        Path: Written output path.
    """
    document = _extract(args.input_path.read_bytes(), settings, args.visa_type)
    persist_json(document, args.output_path)
    return args.output_path


def run_fill(args: argparse.Namespace, settings: Settings) -> Path:
    """Autofill a form from a profile file and write the filled PDF.

    Returns:
        Path: Written output path.
    """
    pdf_bytes = args.input_path.read_bytes()
    profile = ProfileRecord.model_validate_json(args.profile_path.read_text(encoding="utf-8"))
    context = DestinationContext(country=args.country, visa_type=args.visa_type)
    document = _extract(pdf_bytes, settings, args.visa_type)
    result = autofill(document.fields, profile, context)
    args.output_path.parent.mkdir(parents=True, exist_ok=True)
    args.output_path.write_bytes(synthesize_document(pdf_bytes, result.fields))
    return args.output_path


def run_validate(args: argparse.Namespace, settings: Settings) -> ValidationReport:
    """Validate the current values of a form and write the report as JSON.

    Returns:
        ValidationReport: Validation report.
    """
    pdf_bytes = args.input_path.read_bytes()
    document = _extract(pdf_bytes, settings, None)
    vision = None
    if args.include_vision:
        client = OpenAIVisionClient(settings) if settings.openai_api_key else None
        vision = VisionValidator(client, settings=settings)
    report = run_async(
        Validator(vision).validate(
            document.fields,
            args.country,
            pdf_bytes=pdf_bytes,
            include_vision=args.include_vision,
        ),
    )
    persist_json(report, args.output_path)
    return report


_COMMANDS = {
    "fields": run_fields,
    "fill": run_fill,
    "validate": run_validate,
}


def main() -> int:
    """Run the CLI.

    Returns:
        int: Exit code (0 for success, 1 for error).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args()

    command = _COMMANDS.get(args.command or "")
    if command is None:
        parser.print_help()
        return 0

    ensure_package_dependencies()
    ensure_cli_dependencies(args.command)

    try:
        command(args, settings)
    except PackageError:
        logger.exception("Command failed", extra={"command": args.command})
        return 1
    except KeyboardInterrupt:
        logger.info("Command aborted by user", extra={"command": args.command})
        return 130
    except Exception:
        logger.exception("Unexpected error", extra={"command": args.command})
        return 1
    finally:
        settings.close_httpx_clients()

    logger.info("Command completed", extra={"command": args.command, "output_path": str(args.output_path)})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
