from __future__ import annotations

import json

import pytest

from stockbook import create_app
from stockbook.config import TestConfig
from stockbook.store import RecordStore


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def store(data_dir, backup_dir):
    return RecordStore(data_dir, backup_dir=backup_dir)


@pytest.fixture
def read_file(data_dir):
    def _read(name: str) -> dict:
        return json.loads((data_dir / f"{name}.json").read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def app(data_dir, backup_dir):
    config = type(
        "IsolatedConfig",
        (TestConfig,),
        {"DATA_DIR": data_dir, "BACKUP_DIR": backup_dir},
    )
    return create_app(config)


@pytest.fixture
def runner(app):
    return app.test_cli_runner()
