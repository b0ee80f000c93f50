"""Command-line interface for one-off extraction and running the API.

Provides subcommands to OCR a single image with the same retry policy the
service uses, list supported languages, and start the HTTP server.
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from src.container import build_orchestrator
from src.errors import ExtractionFailed, UnsupportedLanguage
from src.ocr.languages import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def extract_single(
    file_path: Path,
    language: str = DEFAULT_LANGUAGE,
    max_retries: int | None = None,
) -> dict[str, object]:
    """Run the extraction pipeline on one image.

    Args:
        file_path: Path to the image file.
        language: OCR language code.
        max_retries: Retry budget override.

    Returns:
        Dictionary with the filename, cleaned text, confidence, and counts.
    """
    config = load_config()
    orchestrator = build_orchestrator(config)
    result = orchestrator.extract(file_path, language=language, max_retries=max_retries)

    output: dict[str, object] = {"filename": file_path.name}
    output.update(asdict(result))
    output["character_count"] = result.character_count
    return output


def _print_languages() -> None:
    for code, name in SUPPORTED_LANGUAGES.items():
        marker = " (default)" if code == DEFAULT_LANGUAGE else ""
        print(f"{code:<8} {name}{marker}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Legal aid document OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    extract_parser = subparsers.add_parser("extract", help="OCR a single image")
    extract_parser.add_argument("file", type=Path, help="Image file to process")
    extract_parser.add_argument(
        "-l",
        "--lang",
        default=DEFAULT_LANGUAGE,
        help=f"OCR language code (default: {DEFAULT_LANGUAGE})",
    )
    extract_parser.add_argument(
        "-r", "--retries", type=int, default=None, help="Maximum retries"
    )
    extract_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    subparsers.add_parser("languages", help="List supported OCR languages")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: from config)")
    serve_parser.add_argument("--port", type=int, help="Port (default: from config)")

    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(config.log_level)

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, args.lang, args.retries)
        except (UnsupportedLanguage, ExtractionFailed) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "languages":
        _print_languages()
    elif args.command == "serve":
        from src.main import serve

        serve(config, args.host, args.port)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
