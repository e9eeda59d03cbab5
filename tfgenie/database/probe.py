"""Connection probe for the TF Genie database."""

from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tfgenie.utils.config import DatabaseConfig
from tfgenie.utils.logger import get_logger

from .connection import create_db_engine
from .schema_installer import EngineFactory

logger = get_logger(__name__)

TROUBLESHOOTING_HINTS: tuple[str, ...] = (
    "SQL Server is running and reachable from this machine",
    "TCP/IP is enabled in SQL Server Configuration Manager",
    "SQL Server Browser service is running",
    "The firewall allows connections on the configured port (default 1433)",
    "Mixed mode (SQL Server) authentication is enabled",
    "The login is enabled and the password is correct",
)


@dataclass
class ProbeResult:
    """Outcome of a single connection attempt."""

    ok: bool
    error: str | None = None


def probe_connection(
    config: DatabaseConfig, engine_factory: EngineFactory = create_db_engine
) -> ProbeResult:
    """Open one connection to the configured database and run ``SELECT 1``.

    Args:
        config: Connection settings.
        engine_factory: Engine builder, see :class:`SchemaInstaller`.

    Returns:
        ``ok`` with no error on success, otherwise the driver error message.
    """
    engine = engine_factory(config)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return ProbeResult(ok=True)
    except SQLAlchemyError as exc:
        message = str(getattr(exc, "orig", None) or exc)
        logger.error("Database connection failed: %s", message)
        return ProbeResult(ok=False, error=message)
    finally:
        engine.dispose()
