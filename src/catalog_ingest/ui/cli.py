from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from catalog_ingest.app import (
    catalog_summary,
    download_dump,
    drop_staging,
    full_import,
    load_staging,
    run_import,
)
from catalog_ingest.config import LATEST_DUMP_DATE, configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

_DUMP_DATE = re.compile(r"^\d{8}-\d{6}$")


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {parsed}")
    return parsed


def _dump_date(value: str) -> str:
    normalized = value.strip()
    if normalized.lower() == LATEST_DUMP_DATE:
        return LATEST_DUMP_DATE
    if not _DUMP_DATE.match(normalized):
        raise argparse.ArgumentTypeError(
            f"Invalid dump date: {value} (expected YYYYMMDD-HHMMSS or 'latest')"
        )
    return normalized


def _add_dump_arguments(parser: argparse.ArgumentParser, *, with_date: bool) -> None:
    parser.add_argument(
        "--dump-dir",
        type=Path,
        help="Directory holding the archives and extracted tables (defaults to config)",
    )
    if with_date:
        parser.add_argument(
            "--dump-date",
            type=_dump_date,
            help="Dated snapshot to download, e.g. 20240101-001000 (default: latest)",
        )


def _add_import_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Number of source rows per transaction (defaults to config)",
    )
    parser.add_argument(
        "--artist-limit",
        type=_positive_int,
        help="Only import the first N qualifying artists, for trial runs",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import the MusicBrainz dump into the catalog")
    subparsers = parser.add_subparsers(dest="command", required=True)

    download = subparsers.add_parser("download", help="Download and extract the dump archives")
    _add_dump_arguments(download, with_date=True)

    load = subparsers.add_parser("load-staging", help="Load extracted tables into staging")
    _add_dump_arguments(load, with_date=False)

    import_ = subparsers.add_parser("import", help="Transform staging into catalog tables")
    _add_import_arguments(import_)

    subparsers.add_parser("drop-staging", help="Drop the staging schema")

    full = subparsers.add_parser("full-import", help="Download, stage, import and clean up")
    _add_dump_arguments(full, with_date=True)
    _add_import_arguments(full)

    subparsers.add_parser("status", help="Show catalog row counts")

    return parser.parse_args(list(argv))


def _run(args: argparse.Namespace) -> None:
    if args.command == "download":
        result = download_dump(dump_dir=args.dump_dir, dump_date=args.dump_date)
        log.info(
            "Dump %s ready: %d archives, %d tables",
            result.dump_date,
            len(result.archives),
            len(result.extracted),
        )
    elif args.command == "load-staging":
        load_staging(dump_dir=args.dump_dir)
    elif args.command == "import":
        report = run_import(batch_size=args.batch_size, artist_limit=args.artist_limit)
        if not report.succeeded:
            log.warning("Import finished with %d failed batches", len(report.failed_batches))
    elif args.command == "drop-staging":
        drop_staging()
    elif args.command == "full-import":
        result = full_import(
            dump_dir=args.dump_dir,
            dump_date=args.dump_date,
            batch_size=args.batch_size,
            artist_limit=args.artist_limit,
        )
        log.info(
            "Full import of dump %s finished: %d staging rows, %d failed batches",
            result.download.dump_date,
            result.staging.total_rows,
            len(result.report.failed_batches),
        )
    elif args.command == "status":
        summary = catalog_summary()
        log.info(
            "Catalog: bands=%d (external=%d), albums=%d, tracks=%d, aliases=%d",
            summary.bands,
            summary.external_bands,
            summary.albums,
            summary.tracks,
            summary.band_aliases,
        )
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        _run(parsed_args)
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
