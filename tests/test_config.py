"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from tfgenie.utils.config import (
    ApiConfig,
    AppConfig,
    DatabaseConfig,
    WorkflowConfig,
    load_config,
)


class TestDatabaseConfig:
    """Tests for DatabaseConfig defaults and DB_* environment variables."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("DB_SERVER", "DB_USER", "DB_PORT", "DB_DATABASE"):
            monkeypatch.delenv(name, raising=False)
        cfg = DatabaseConfig()
        assert cfg.server == "localhost"
        assert cfg.user == "sa"
        assert cfg.port == 1433
        assert cfg.database == "TF_genie"
        assert cfg.encrypt is False
        assert cfg.trust_server_certificate is False
        assert cfg.url is None

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_SERVER", "sql.example.com")
        monkeypatch.setenv("DB_PORT", "1533")
        monkeypatch.setenv("DB_PASSWORD", "s3cret")
        monkeypatch.setenv("DB_TRUST_SERVER_CERTIFICATE", "true")
        cfg = DatabaseConfig()
        assert cfg.server == "sql.example.com"
        assert cfg.port == 1533
        assert cfg.password == "s3cret"
        assert cfg.trust_server_certificate is True

    def test_explicit_values_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_SERVER", "from-env")
        cfg = DatabaseConfig(server="explicit")
        assert cfg.server == "explicit"


class TestWorkflowConfig:
    """Tests for WorkflowConfig defaults."""

    def test_defaults(self) -> None:
        cfg = WorkflowConfig()
        assert cfg.ocr_delay_seconds == 3.0
        assert cfg.compare_delay_seconds == 2.0
        assert cfg.default_user == "admin@tradefi.com"
        assert cfg.store_master_records is False


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.database, DatabaseConfig)
        assert isinstance(cfg.workflow, WorkflowConfig)
        assert isinstance(cfg.api, ApiConfig)
        assert cfg.api.cors_origins == ["*"]
        assert cfg.log_level == "INFO"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DB_DATABASE", raising=False)
        cfg = load_config(Path("configs/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.database.database == "TF_genie"
        assert cfg.workflow.templates_path == "configs/templates.yaml"

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.workflow.ocr_delay_seconds == 3.0

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "database": {"server": "db.internal", "database": "TF_test"},
            "workflow": {"ocr_delay_seconds": 0.5},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.database.server == "db.internal"
        assert cfg.database.database == "TF_test"
        assert cfg.workflow.ocr_delay_seconds == 0.5
        assert cfg.log_level == "DEBUG"

    def test_environment_fills_missing_database_keys(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DB_USER", "tf_app")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("database:\n  database: TF_genie\n")
        cfg = load_config(config_file)
        assert cfg.database.user == "tf_app"

    def test_shipped_config_honors_database_env(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DB_DATABASE", "TF_staging")
        cfg = load_config(Path("configs/config.yaml"))
        assert cfg.database.database == "TF_staging"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)

    def test_load_none_defaults_to_standard_path(self) -> None:
        cfg = load_config()
        assert isinstance(cfg, AppConfig)
