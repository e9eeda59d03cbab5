"""SQLAlchemy engine construction for the TF Genie database.

Builds ``mssql+pyodbc`` URLs from :class:`DatabaseConfig` unless an
explicit ``url`` is configured (any SQLAlchemy URL works, which is how
the test suite runs against SQLite).
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url

from tfgenie.utils.config import DatabaseConfig
from tfgenie.utils.logger import get_logger

logger = get_logger(__name__)

MASTER_DATABASE = "master"


def build_url(config: DatabaseConfig, database: str | None = None) -> URL:
    """Build the connection URL for ``database`` (default: the configured one).

    Args:
        config: Connection settings.
        database: Database name override, e.g. ``master`` for provisioning.

    Returns:
        SQLAlchemy URL. When ``config.url`` is set it is used as is, with
        only the database name replaced if an override is given.
    """
    if config.url:
        url = make_url(config.url)
        return url.set(database=database) if database else url

    query = {
        "driver": config.driver,
        "Encrypt": "yes" if config.encrypt else "no",
        "TrustServerCertificate": "yes" if config.trust_server_certificate else "no",
    }
    return URL.create(
        "mssql+pyodbc",
        username=config.user,
        password=config.password,
        host=config.server,
        port=config.port,
        database=database or config.database,
        query=query,
    )


def safe_url(url: URL) -> str:
    """Render a URL with the password masked for logging."""
    return url.render_as_string(hide_password=True)


def create_db_engine(
    config: DatabaseConfig, database: str | None = None, echo: bool = False
) -> Engine:
    """Create an engine with the configured pool and timeouts.

    Statements run in autocommit mode so that DDL such as
    ``CREATE DATABASE`` works and each statement stands on its own.
    """
    url = build_url(config, database)
    logger.info("Connecting to %s", safe_url(url))

    kwargs: dict = {"echo": echo, "pool_pre_ping": True}
    if url.get_backend_name() == "mssql":
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=0,
            pool_timeout=config.connection_timeout,
            connect_args={"timeout": config.connection_timeout},
            isolation_level="AUTOCOMMIT",
        )
    return create_engine(url, **kwargs)
