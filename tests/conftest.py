"""Shared test fixtures for the TF Genie test suite."""

import random
from pathlib import Path

import pytest

from tfgenie.extraction.template_comparator import TemplateComparator
from tfgenie.ocr.mock_engine import MockOCREngine
from tfgenie.utils.config import DatabaseConfig, WorkflowConfig
from tfgenie.workflow.service import WorkflowService


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def workflow_config() -> WorkflowConfig:
    """Workflow settings without simulated delays."""
    return WorkflowConfig(ocr_delay_seconds=0, compare_delay_seconds=0)


@pytest.fixture
def service(workflow_config: WorkflowConfig) -> WorkflowService:
    """Workflow service with instant, seeded OCR and the built-in catalog."""
    return WorkflowService(
        workflow_config,
        ocr_engine=MockOCREngine(delay_seconds=0, rng=random.Random(7)),
        comparator=TemplateComparator(delay_seconds=0),
    )


@pytest.fixture
def sqlite_config(tmp_path: Path) -> DatabaseConfig:
    """Database settings pointing at a fresh SQLite file."""
    return DatabaseConfig(
        url=f"sqlite:///{tmp_path / 'tf_genie.db'}",
        schema_path=str(tmp_path / "schema.sql"),
    )

