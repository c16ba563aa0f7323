from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dotenv import load_dotenv

from unifyr.app import add_source, create_dataset, ingest_dataset_sources, transform_dataset
from unifyr.config import configure_logging
from unifyr.domain.model import SourceFormat, SourceRole

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Unify records from multiple sources")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    dataset = subparsers.add_parser("dataset", help="Dataset management commands")
    dataset_sub = dataset.add_subparsers(dest="dataset_command", required=True)
    dataset_create = dataset_sub.add_parser("create", help="Create a dataset")
    dataset_create.add_argument(
        "--name",
        type=str,
        required=True,
        help="Display name of the dataset",
    )
    dataset_create.add_argument(
        "--description",
        type=str,
        help="Optional free-text description",
    )
    dataset_create.add_argument(
        "--primary-type",
        type=str,
        help="Record type that anchors each unified row (resolved automatically if omitted)",
    )

    source = subparsers.add_parser("source", help="Source management commands")
    source_sub = source.add_subparsers(dest="source_command", required=True)
    source_add = source_sub.add_parser("add", help="Attach a source to a dataset")
    source_add.add_argument("--dataset-id", type=str, required=True, help="Dataset UUID")
    source_add.add_argument("--name", type=str, required=True, help="Source name")
    source_add.add_argument(
        "--format",
        dest="source_format",
        choices=[member.value for member in SourceFormat],
        required=True,
        help="Source format",
    )
    source_add.add_argument(
        "--config",
        type=str,
        default="{}",
        help="Source configuration as a JSON object",
    )
    source_add.add_argument(
        "--role",
        choices=[member.value for member in SourceRole],
        default=SourceRole.SOURCE.value,
        help="Source role (default: %(default)s)",
    )

    ingest = subparsers.add_parser("ingest", help="Extract raw records from dataset sources")
    ingest.add_argument("--dataset-id", type=str, required=True, help="Dataset UUID")

    transform = subparsers.add_parser("transform", help="Rebuild unified rows of a dataset")
    transform.add_argument("--dataset-id", type=str, required=True, help="Dataset UUID")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _parse_config(value: str) -> dict[str, Any]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON config: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Source config must be a JSON object")
    return parsed


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    dataset_id: UUID | None = None
    config: dict[str, Any] = {}
    try:
        parsed_args = _parse_args(args_list)
        if getattr(parsed_args, "dataset_id", None) is not None:
            dataset_id = _parse_uuid(parsed_args.dataset_id)
        if parsed_args.command == "source":
            config = _parse_config(parsed_args.config)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "dataset" and parsed_args.dataset_command == "create":
            dataset = create_dataset(
                name=parsed_args.name,
                description=parsed_args.description,
                primary_record_type=parsed_args.primary_type,
            )
            log.info("Created dataset %s", dataset.id)
        elif parsed_args.command == "source" and parsed_args.source_command == "add":
            if dataset_id is None:
                raise ValueError("Missing --dataset-id")  # noqa: TRY301
            source = add_source(
                dataset_id,
                name=parsed_args.name,
                source_format=SourceFormat(parsed_args.source_format),
                config=config,
                role=SourceRole(parsed_args.role),
            )
            log.info("Created source %s", source.id)
        elif parsed_args.command == "ingest":
            if dataset_id is None:
                raise ValueError("Missing --dataset-id")  # noqa: TRY301
            result = ingest_dataset_sources(dataset_id)
            if result.failed_runs:
                raise RuntimeError(  # noqa: TRY301
                    f"{len(result.failed_runs)} source(s) failed to ingest"
                )
        elif parsed_args.command == "transform":
            if dataset_id is None:
                raise ValueError("Missing --dataset-id")  # noqa: TRY301
            run = transform_dataset(dataset_id)
            log.info("Transform run %s finished: %s rows", run.id, run.rows_out)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
