"""Command line entry point for the Image Insight project."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import AnalysisRouter, AppConfig, HandlerTrigger, SettingsStore
from .clients import AwsClients
from .io.metadata import extract_metadata
from .io.sources import ImageResolver, ResolutionError, S3BlobStore
from .models.registry import AnalyzerRegistry


def _dump(payload: Any) -> None:
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Image Insight")
    parser.add_argument(
        "--config",
        type=Path,
        help="Settings file to load instead of the per-user default.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity written to stderr.",
    )
    parser.add_argument(
        "--list-analyzers",
        action="store_true",
        help="Print available analyzers and exit.",
    )
    subparsers = parser.add_subparsers(dest="command")

    analyze = subparsers.add_parser("analyze", help="Analyze an image by URL or s3:// URI.")
    analyze.add_argument("image_url", help="HTTP(S) URL, s3:// URI or S3 object URL.")
    analyze.add_argument("--analysis-type", help="Analysis focus, e.g. 'document'.")
    analyze.add_argument("--document-type", help="Document type; switches to document mode.")
    analyze.add_argument(
        "--question",
        action="append",
        dest="questions",
        default=[],
        help="Specific question for the vision model (repeatable).",
    )
    analyze.add_argument(
        "--field",
        action="append",
        dest="fields",
        default=[],
        help="Field the vision model should extract (repeatable).",
    )
    analyze.add_argument(
        "--analyzer",
        action="append",
        dest="analyzers",
        help="Override the configured analyzers (repeatable).",
    )

    inspect = subparsers.add_parser("inspect", help="Report format and metadata of an image.")
    inspect.add_argument("source", help="Local file path, URL or s3:// URI.")

    trigger = subparsers.add_parser(
        "trigger", help="Invoke the EXIF and detector handlers for a stored object."
    )
    trigger.add_argument("bucket")
    trigger.add_argument("key")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_analyzers:
        _dump(
            [
                {
                    "identifier": info.identifier,
                    "display_name": info.display_name,
                    "description": info.description,
                    "kind": info.kind.value,
                }
                for info in AnalyzerRegistry.list_infos()
            ]
        )
        return 0

    if args.command is None:
        parser.error("a command is required unless --list-analyzers is given.")

    config = SettingsStore(args.config).load()

    if args.command == "inspect":
        path = Path(args.source)
        if path.is_file():
            data = path.read_bytes()
        else:
            clients = AwsClients.from_config(config)
            resolver = ImageResolver(S3BlobStore(clients.s3), timeout=config.fetch_timeout)
            try:
                data = resolver.resolve(args.source).data
            except ResolutionError as exc:
                _dump({"success": False, "error": str(exc)})
                return 1
        _dump(extract_metadata(data).as_dict())
        return 0

    if args.command == "trigger":
        clients = AwsClients.from_config(config)
        _dump(HandlerTrigger.from_config(config, clients).trigger(args.bucket, args.key))
        return 0

    if args.analyzers:
        config = AppConfig.model_validate({**config.as_dict(), "analyzers": args.analyzers})
    clients = AwsClients.from_config(config)
    try:
        router = AnalysisRouter.from_config(config, clients)
    except KeyError as exc:
        parser.error(str(exc.args[0]))
    payload = router.handle(
        {
            "imageUrl": args.image_url,
            "analysisType": args.analysis_type,
            "documentType": args.document_type,
            "specificQuestions": args.questions,
            "expectedFields": args.fields,
        }
    )
    _dump(payload)
    return 0 if payload["success"] else 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
