"""Command-line interface for database setup and batch document processing.

Provides subcommands for provisioning the TF Genie database, probing the
database connection and running a folder of documents through the whole
workflow with the results exported to CSV.
"""

import argparse
import asyncio
import csv
import sys
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from tfgenie.database.connection import build_url, safe_url
from tfgenie.database.probe import TROUBLESHOOTING_HINTS, probe_connection
from tfgenie.database.schema_installer import (
    InstallReport,
    SchemaFileNotFoundError,
    SchemaInstaller,
)
from tfgenie.extraction.template_comparator import confidence_band
from tfgenie.utils.config import AppConfig, DatabaseConfig, load_config
from tfgenie.utils.logger import get_logger, setup_logging
from tfgenie.validation.metadata import LIFECYCLE_OPTIONS
from tfgenie.workflow.errors import MetadataValidationError, WorkflowError
from tfgenie.workflow.models import SessionStatus
from tfgenie.workflow.service import WorkflowService

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.pdf")
_META_COLUMNS = [
    "filename",
    "status",
    "document_type",
    "ocr_confidence",
    "iteration",
    "template_id",
    "template_name",
    "match_band",
    "field_count",
    "error",
]


def _print_banner(title: str) -> None:
    print(f"\n{'=' * 50}")
    print(title)
    print(f"{'=' * 50}")


def _print_database_config(config: DatabaseConfig) -> None:
    """Print the connection settings with the password masked."""
    print("Configuration:")
    print(f"  URL:      {safe_url(build_url(config))}")
    print(f"  Server:   {config.server}:{config.port}")
    print(f"  Database: {config.database}")
    print(f"  User:     {config.user}")
    print(f"  Password: {'***' if config.password else '(not set)'}")


def setup_database(config: AppConfig, schema_path: Path | None = None) -> int:
    """Provision the database and apply the schema script.

    Args:
        config: Application configuration.
        schema_path: Schema script overriding ``database.schema_path``.

    Returns:
        Process exit code: 0 on success, 1 on a fatal error.
    """
    _print_banner("TF Genie Database Setup")
    _print_database_config(config.database)

    installer = SchemaInstaller(config.database, echo=config.sql_echo)
    try:
        report = installer.run(schema_path)
    except SchemaFileNotFoundError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except SQLAlchemyError as exc:
        logger.error("Database setup failed: %s", exc)
        print(f"Error: database setup failed: {exc}", file=sys.stderr)
        print("Check that SQL Server is reachable, see 'tfgenie test-connection'.")
        return 1

    _print_install_report(report, config.database.database)
    return 0


def _print_install_report(report: InstallReport, database: str) -> None:
    _print_banner("Database Setup Complete")
    if report.database_created:
        print(f"Created database: {database}")
    print(f"Successful: {report.successful}")
    print(f"Skipped:    {report.skipped}")
    print(f"Failed:     {report.failed}")
    print(f"Total:      {report.total}")

    print(f"\nTables ({len(report.tables)}):")
    for table in report.tables:
        print(f"  - {table}")

    if report.users:
        print("\nDefault users:")
        for user in report.users:
            print(f"  - {user['email']} ({user['name']}, {user['role']})")

    print("\nNext steps:")
    print("  1. Start the API server: python -m tfgenie.main")
    print("  2. Log in with the default administrator account")
    print("  3. Change the default password")


def check_connection(config: AppConfig) -> int:
    """Probe the configured database and print troubleshooting hints on failure.

    Returns:
        Process exit code: 0 if the connection works, 1 otherwise.
    """
    _print_banner("TF Genie Connection Test")
    _print_database_config(config.database)

    result = probe_connection(config.database)
    if result.ok:
        print("\nConnection successful")
        return 0

    print(f"\nConnection failed: {result.error}", file=sys.stderr)
    print("\nTroubleshooting:")
    for hint in TROUBLESHOOTING_HINTS:
        print(f"  - {hint}")
    return 1


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


async def _process_documents(
    service: WorkflowService, session_id: str, files: list[Path], verbose: bool
) -> list[dict[str, object]]:
    """Upload every file and take it through OCR, validation and cataloging."""
    documents = [
        service.upload_document(
            session_id,
            path.name,
            path.suffix.lstrip(".").lower(),
            path.stat().st_size,
        )
        for path in files
    ]

    results: list[dict[str, object]] = []
    for i, document in enumerate(documents, 1):
        if verbose:
            print(f"Processing [{i}/{len(documents)}]: {document.file_name}")

        row: dict[str, object] = {"filename": document.file_name, "error": None}
        ocr_result = await service.run_ocr(document.id)
        if ocr_result is None:
            row.update(status="failed", error="OCR processing failed")
            results.append(row)
            continue

        service.validate_document(document.id, approved=True)
        comparison = await service.compare_document(document.id)
        row.update(
            document_type=ocr_result.document_type,
            ocr_confidence=round(ocr_result.confidence, 3),
            iteration=document.iteration,
        )

        if comparison is None or comparison.best_match is None:
            row.update(status="new_document_type", field_count=0)
            results.append(row)
            continue

        best = comparison.best_match
        service.select_template(document.id, best.id)
        fields = service.catalog_document(document.id)
        row.update(
            status="cataloged",
            template_id=best.id,
            template_name=best.name,
            match_band=confidence_band(best.confidence),
            field_count=len(fields),
        )
        row.update({f.field_name: f.field_value for f in fields})
        results.append(row)
    return results


def process_folder(
    input_dir: Path,
    output_csv: Path,
    cif_number: str,
    lc_number: str,
    lifecycle: str,
    config: AppConfig | None = None,
    verbose: bool = False,
    service: WorkflowService | None = None,
) -> dict[str, int]:
    """Process all documents in a folder as one session and export to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        cif_number: Customer identification number of the session.
        lc_number: Letter of credit number of the session.
        lifecycle: Lifecycle of the session.
        config: Application configuration; loaded from disk when omitted.
        verbose: Whether to print per-file progress.
        service: Workflow service to use; built from ``config`` when omitted.

    Returns:
        Summary dict with total, cataloged, new and failed counts.

    Raises:
        MetadataValidationError: If the session metadata is invalid.
    """
    config = config or load_config()
    service = service or WorkflowService(config.workflow)

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "cataloged": 0, "new": 0, "failed": 0}

    session = service.create_session(cif_number, lc_number, lifecycle)
    logger.info("Found %d documents to process", len(files))

    results = asyncio.run(
        _process_documents(service, session.session_id, files, verbose)
    )

    status = service.store.get_session(session.session_id).status
    if status == SessionStatus.REVIEWING:
        record = service.complete_session(session.session_id)
        logger.info("Session %s stored as %s", session.session_id, record.id)

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {
        "total": len(files),
        "cataloged": sum(r["status"] == "cataloged" for r in results),
        "new": sum(r["status"] == "new_document_type" for r in results),
        "failed": sum(r["status"] == "failed" for r in results),
    }
    _print_summary(summary, session.session_id, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write processing results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], session_id: str, output_csv: Path) -> None:
    _print_banner("Batch Processing Complete")
    print(f"Session:    {session_id}")
    print(f"Total:      {summary['total']}")
    print(f"Cataloged:  {summary['cataloged']}")
    print(f"New types:  {summary['new']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="TF Genie trade-finance document workflow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, help="Configuration file (configs/config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    setup_parser = subparsers.add_parser(
        "setup-db", help="Create the database and apply the schema"
    )
    setup_parser.add_argument(
        "--schema", type=Path, help="Schema script (default: database.schema_path)"
    )

    subparsers.add_parser("test-connection", help="Test the database connection")

    process_parser = subparsers.add_parser(
        "process", help="Run a folder of documents through the workflow"
    )
    process_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    process_parser.add_argument("--cif", required=True, help="CIF number")
    process_parser.add_argument("--lc", required=True, help="LC number")
    process_parser.add_argument(
        "--lifecycle", required=True, choices=LIFECYCLE_OPTIONS, help="LC lifecycle"
    )
    process_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    process_parser.add_argument(
        "--no-delay", action="store_true", help="Skip simulated processing delays"
    )
    process_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    load_dotenv()
    config = load_config(args.config)
    setup_logging(config.log_level, config.sql_echo)

    if args.command == "setup-db":
        sys.exit(setup_database(config, args.schema))
    elif args.command == "test-connection":
        sys.exit(check_connection(config))
    elif args.command == "process":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        if args.no_delay:
            config.workflow.ocr_delay_seconds = 0
            config.workflow.compare_delay_seconds = 0
        try:
            process_folder(
                args.input_dir,
                args.output,
                args.cif,
                args.lc,
                args.lifecycle,
                config=config,
                verbose=args.verbose,
            )
        except MetadataValidationError as exc:
            for field_name, message in exc.errors.items():
                print(f"Error: {field_name}: {message}", file=sys.stderr)
            sys.exit(1)
        except WorkflowError as exc:
            logger.error("Processing failed: %s", exc)
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
