from __future__ import annotations

import pytest

from stockbook.exceptions import CorruptDataError
from stockbook.store import OnCorruptData, RecordStore


def corrupt(data_dir, name="items"):
    (data_dir / f"{name}.json").write_text('{"items": [', encoding="utf-8")


def test_policy_parsing():
    assert OnCorruptData.parse(None) is OnCorruptData.reset_to_empty
    assert OnCorruptData.parse("FAIL-FAST") is OnCorruptData.fail_fast
    assert OnCorruptData.parse(OnCorruptData.restore_from_backup) is OnCorruptData.restore_from_backup
    with pytest.raises(ValueError):
        OnCorruptData.parse("ignore")


def test_reset_to_empty_keeps_damaged_file(store, data_dir, caplog):
    store.add("items", {"id": "item_001"})
    corrupt(data_dir)

    assert store.get_all("items") == []
    assert (data_dir / "items.json").read_text(encoding="utf-8") == '{"items": ['
    assert "Error reading items" in caplog.text


def test_non_object_document_is_corrupt(store, data_dir):
    (data_dir).mkdir(parents=True, exist_ok=True)
    (data_dir / "items.json").write_text("[1, 2]", encoding="utf-8")

    assert store.read_collection("items") == {"items": []}


def test_fail_fast_raises(data_dir):
    strict = RecordStore(data_dir, on_corrupt="fail_fast")
    strict.add("items", {"id": "item_001"})
    corrupt(data_dir)

    with pytest.raises(CorruptDataError) as excinfo:
        strict.find_by_id("items", "item_001")
    assert excinfo.value.name == "items"


def test_restore_from_backup(data_dir, backup_dir):
    restoring = RecordStore(data_dir, backup_dir=backup_dir, on_corrupt=OnCorruptData.restore_from_backup)
    restoring.add("items", {"id": "item_001", "name": "Steel Rod 6mm"})
    assert restoring.backup() is not None
    corrupt(data_dir)

    assert restoring.find_by_id("items", "item_001") == {"id": "item_001", "name": "Steel Rod 6mm"}
    assert RecordStore(data_dir, on_corrupt="fail_fast").get_all("items") == [
        {"id": "item_001", "name": "Steel Rod 6mm"}
    ]


def test_restore_without_backup_falls_back_to_empty(data_dir, backup_dir):
    restoring = RecordStore(data_dir, backup_dir=backup_dir, on_corrupt="restore_from_backup")
    restoring.add("items", {"id": "item_001"})
    corrupt(data_dir)

    assert restoring.get_all("items") == []
