"""Shared fixtures for CLI tests.

Every CLI invocation installs a log handler on the root logger; the
autouse fixture below restores the root logger afterwards so handlers bound
to a finished CliRunner stream never leak into later tests.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

import pytest

_SAMPLE_CONFIG: dict = {
    "pipelines": [
        {
            "name": "ingest",
            "output_sources": ["raw"],
            "schedule": "*/15 * * * *",
            "owner": "data-eng",
            "cluster": "ingestion",
            "links": {"airflow": "https://airflow.example.com/dags/ingest_dag/grid"},
        },
        {
            "name": "transform",
            "input_sources": ["raw"],
            "output_sources": ["clean"],
            "group": "processing",
            "links": {"airflow": "https://airflow.example.com/dags/processing_dag/grid"},
        },
        {
            "name": "load",
            "input_sources": ["clean"],
            "schedule": "@daily",
            "links": {"airflow": "https://airflow.example.com/dags/load_dag"},
        },
    ],
    "datasources": [
        {"name": "raw", "type": "kafka", "attributes": [{"name": "user_id"}]},
        {"name": "clean", "type": "table", "attributes": [{"name": "uid", "from": ["raw::user_id"]}]},
        {"name": "archive", "type": "s3"},
    ],
}


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch):
    """Keep engine INFO logs out of captured CLI output."""
    monkeypatch.setenv("PIPEVIZ_LOG_LEVEL", "ERROR")
    monkeypatch.delenv("PIPEVIZ_CONFIG_PATH", raising=False)
    monkeypatch.delenv("PIPEVIZ_DEFAULT_LINEAGE_DEPTH", raising=False)


@pytest.fixture()
def sample_config() -> dict:
    """A small ingest -> transform -> load catalog with one group."""
    return copy.deepcopy(_SAMPLE_CONFIG)


@pytest.fixture()
def config_file(tmp_path: Path, sample_config: dict) -> Path:
    path = tmp_path / "pipelines.json"
    path.write_text(json.dumps(sample_config), encoding="utf-8")
    return path
