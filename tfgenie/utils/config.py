"""Configuration management for the TF Genie workflow.

Application settings come from a YAML file validated with pydantic.
Database connection settings additionally read ``DB_*`` environment
variables so credentials never need to live in the YAML file.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseSettings):
    """SQL Server connection settings.

    Every field can be supplied as an environment variable with the
    ``DB_`` prefix, e.g. ``DB_SERVER`` or ``DB_TRUST_SERVER_CERTIFICATE``.
    """

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    server: str = "localhost"
    user: str = "sa"
    password: str = ""
    port: int = 1433
    database: str = "TF_genie"
    driver: str = "ODBC Driver 18 for SQL Server"
    encrypt: bool = False
    trust_server_certificate: bool = False
    connection_timeout: int = 30
    pool_size: int = 10
    url: str | None = None
    schema_path: str = "sql/tf_genie_schema.sql"


class WorkflowConfig(BaseModel):
    """Timings and defaults of the simulated processing steps."""

    ocr_delay_seconds: float = 3.0
    compare_delay_seconds: float = 2.0
    templates_path: str = "configs/templates.yaml"
    default_user: str = "admin@tradefi.com"
    store_master_records: bool = False


class ApiConfig(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    """Top-level application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    log_level: str = "INFO"
    sql_echo: bool = False


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration. The ``database`` section is
        built through :class:`DatabaseConfig` so that ``DB_*`` environment
        variables fill any key the file leaves out.
    """
    if path is None:
        path = Path("configs/config.yaml")

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    database = DatabaseConfig(**(raw.pop("database", None) or {}))
    return AppConfig(database=database, **raw)
