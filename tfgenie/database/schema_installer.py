"""Schema installer for the TF Genie database.

Provisions the database in two phases:

1. On SQL Server, connect to ``master`` and create the target database if
   ``sys.databases`` does not list it.
2. Connect to the target database and execute the schema script batch by
   batch. Batches are separated by ``GO`` lines; empty, comment-only and
   ``USE`` batches are dropped.

Every batch runs on its own. Errors saying an object already exists are
counted as skipped, so re-running the installer against a provisioned
database is harmless; any other error is logged and the next batch runs.
Nothing is wrapped in a transaction and nothing is rolled back.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tfgenie.utils.config import DatabaseConfig
from tfgenie.utils.logger import get_logger

from .connection import MASTER_DATABASE, build_url, create_db_engine

logger = get_logger(__name__)

EngineFactory = Callable[..., Engine]

SKIPPABLE_ERROR_PHRASES: tuple[str, ...] = (
    "already exists",
    "Cannot drop",
    "There is already an object",
)

_BATCH_SEPARATOR = re.compile(
    r"^[ \t]*GO[ \t]*;?[ \t]*$", re.MULTILINE | re.IGNORECASE
)
_USE_STATEMENT = re.compile(r"^USE\s", re.IGNORECASE)
_DATABASE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_STATEMENT_PREVIEW = 100


class SchemaFileNotFoundError(FileNotFoundError):
    """The schema script does not exist."""


@dataclass
class InstallReport:
    """Outcome of one installer run."""

    database_created: bool = False
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
    tables: list[str] = field(default_factory=list)
    users: list[dict[str, str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _strip_leading_comments(batch: str) -> str:
    lines = batch.strip().splitlines()
    while lines and (not lines[0].strip() or lines[0].lstrip().startswith("--")):
        lines.pop(0)
    return "\n".join(lines).strip()


def split_statements(sql_text: str) -> list[str]:
    """Split a schema script into executable batches.

    Args:
        sql_text: Full contents of the schema script.

    Returns:
        Non-empty batches in file order, without leading comment lines
        and without ``USE`` batches.
    """
    statements: list[str] = []
    for batch in _BATCH_SEPARATOR.split(sql_text):
        statement = _strip_leading_comments(batch)
        if not statement:
            continue
        if _USE_STATEMENT.match(statement):
            continue
        statements.append(statement)
    return statements


def is_skippable_error(message: str) -> bool:
    """Whether an error message means the object is already in place."""
    return any(phrase in message for phrase in SKIPPABLE_ERROR_PHRASES)


class SchemaInstaller:
    """Creates the database and applies the schema script.

    Args:
        config: Connection settings; ``config.schema_path`` names the script.
        engine_factory: Called as ``factory(config, database=None, echo=...)``
            to obtain engines. Defaults to :func:`create_db_engine`.
        echo: Log every SQL statement.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        engine_factory: EngineFactory = create_db_engine,
        echo: bool = False,
    ) -> None:
        self.config = config
        self.engine_factory = engine_factory
        self.echo = echo

    @property
    def is_sql_server(self) -> bool:
        return build_url(self.config).get_backend_name() == "mssql"

    def ensure_database(self) -> bool:
        """Create the target database from ``master`` if it does not exist.

        Returns:
            ``True`` if the database was created by this call.
        """
        name = self.config.database
        if not _DATABASE_NAME.match(name):
            raise ValueError(f"Invalid database name: {name!r}")

        engine = self.engine_factory(
            self.config, database=MASTER_DATABASE, echo=self.echo
        )
        try:
            with engine.connect() as conn:
                logger.info("Checking if %s database exists", name)
                row = conn.execute(
                    text("SELECT name FROM sys.databases WHERE name = :name"),
                    {"name": name},
                ).first()
                if row is not None:
                    logger.info("%s database already exists", name)
                    return False
                logger.info("Creating %s database", name)
                conn.execute(text(f"CREATE DATABASE [{name}]"))
                logger.info("%s database created", name)
                return True
        finally:
            engine.dispose()

    def run(self, schema_path: Path | None = None) -> InstallReport:
        """Provision the database and execute the schema script.

        Args:
            schema_path: Script to execute; defaults to ``config.schema_path``.

        Returns:
            Per-batch counts plus the tables and default users found
            afterwards.

        Raises:
            SchemaFileNotFoundError: If the script does not exist.
            SQLAlchemyError: If connecting to the server fails.
        """
        report = InstallReport()
        if self.is_sql_server:
            report.database_created = self.ensure_database()

        engine = self.engine_factory(self.config, echo=self.echo)
        try:
            with engine.connect():
                logger.info("Connected to %s database", self.config.database)

            path = Path(schema_path or self.config.schema_path)
            if not path.exists():
                raise SchemaFileNotFoundError(f"Schema file not found: {path}")

            logger.info("Reading database schema from %s", path)
            statements = split_statements(path.read_text(encoding="utf-8"))
            report.total = len(statements)
            logger.info("Executing %d SQL statements", report.total)

            for index, statement in enumerate(statements, 1):
                self._execute(engine, index, statement, report)

            logger.info(
                "Execution summary: %d successful, %d skipped, %d failed, %d total",
                report.successful,
                report.skipped,
                report.failed,
                report.total,
            )
            report.tables = sorted(inspect(engine).get_table_names())
            report.users = self._default_users(engine, report.tables)
        finally:
            engine.dispose()
        return report

    def _execute(
        self, engine: Engine, index: int, statement: str, report: InstallReport
    ) -> None:
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql(statement)
                conn.commit()
        except SQLAlchemyError as exc:
            message = str(getattr(exc, "orig", None) or exc)
            if is_skippable_error(message):
                report.skipped += 1
                logger.warning(
                    "Statement %d/%d skipped (already exists)", index, report.total
                )
                return
            report.failed += 1
            report.errors.append(message)
            logger.error("Error executing statement %d: %s", index, message)
            logger.error("Statement: %s...", statement[:_STATEMENT_PREVIEW])
            return

        report.successful += 1
        logger.info("Statement %d/%d executed successfully", index, report.total)

    def _default_users(
        self, engine: Engine, tables: list[str]
    ) -> list[dict[str, str]]:
        if "users" not in {t.lower() for t in tables}:
            return []
        try:
            with engine.connect() as conn:
                rows = conn.execute(text("SELECT email, name, role FROM users")).all()
        except SQLAlchemyError as exc:
            logger.warning("Could not list default users: %s", exc)
            return []
        return [{"email": r.email, "name": r.name, "role": r.role} for r in rows]
