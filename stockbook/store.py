"""File-backed record store.

Every collection is one JSON file under the data directory. Each operation
loads the whole file, applies its change in memory and writes the whole
document back (temp file + rename) while holding an in-process lock for that
collection. Expected conditions never raise: missing ids come back as
``False``/``None``, write failures as ``False``, and unreadable files are
handled by the configured ``OnCorruptData`` policy.
"""

from __future__ import annotations

import contextlib
import enum
import json
import logging
import os
import threading
from collections.abc import Callable, Iterator, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from .backup import create_snapshot, iter_snapshot_copies
from .registry import COLLECTIONS, CollectionSpec, Shape, get_spec
from .exceptions import CorruptDataError, InvalidPathError, StoreError
from .sequences import SequenceStore, claim, format_document_id, sequence_for
from .utils.paths import (
    FieldPath,
    deep_merge,
    drop_flat_keys,
    expand_patch,
    get_path,
    heal_flat_keys,
    set_path,
    split_path,
)
from .utils.protection import decode_json_text, encode_json_text

logger = logging.getLogger(__name__)

Record = dict[str, Any]
Criteria = Union[Mapping[FieldPath, Any], Callable[[Record], bool]]


class OnCorruptData(enum.Enum):
    fail_fast = "fail_fast"
    reset_to_empty = "reset_to_empty"
    restore_from_backup = "restore_from_backup"

    @classmethod
    def parse(cls, value: "OnCorruptData | str | None") -> "OnCorruptData":
        if isinstance(value, cls):
            return value
        if not value:
            return cls.reset_to_empty
        return cls(str(value).strip().lower().replace("-", "_"))


class RecordStore:
    def __init__(self, data_dir: str | Path | None = None, backup_dir: str | Path | None = None,
                 on_corrupt: OnCorruptData | str | None = None, protect_files: bool = False) -> None:
        self._data_dir: Optional[Path] = None
        self._backup_dir: Optional[Path] = None
        self.on_corrupt = OnCorruptData.reset_to_empty
        self.protect_files = False
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self.sequences = SequenceStore(self)
        if data_dir is not None:
            self.configure(data_dir, backup_dir=backup_dir, on_corrupt=on_corrupt, protect_files=protect_files)

    def configure(self, data_dir: str | Path, backup_dir: str | Path | None = None,
                  on_corrupt: OnCorruptData | str | None = None, protect_files: bool = False) -> None:
        self._data_dir = Path(data_dir)
        self._backup_dir = Path(backup_dir) if backup_dir else None
        self.on_corrupt = OnCorruptData.parse(on_corrupt)
        self.protect_files = bool(protect_files)

    def init_app(self, app) -> None:
        cfg = app.config
        self.configure(
            cfg["DATA_DIR"],
            backup_dir=cfg.get("BACKUP_DIR"),
            on_corrupt=cfg.get("ON_CORRUPT_DATA"),
            protect_files=cfg.get("JSON_PROTECTION", False),
        )
        app.extensions["record_store"] = self

    # -- plumbing -----------------------------------------------------------

    @property
    def data_dir(self) -> Path:
        if self._data_dir is None:
            raise RuntimeError("RecordStore is not configured; call init_app() or configure() first")
        return self._data_dir

    @property
    def backup_dir(self) -> Path:
        if self._backup_dir is None:
            return self.data_dir / "backups"
        return self._backup_dir

    def path_for(self, name: str) -> Path:
        return self.data_dir / get_spec(name).filename

    def locked(self, name: str) -> threading.RLock:
        get_spec(name)
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.RLock()
        return lock

    @contextlib.contextmanager
    def _all_locked(self) -> Iterator[None]:
        with contextlib.ExitStack() as stack:
            for name in sorted(COLLECTIONS):
                stack.enter_context(self.locked(name))
            yield

    @staticmethod
    def timestamp() -> str:
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def _body(spec: CollectionSpec, document: Record) -> Any:
        body = document.get(spec.key)
        expected = list if spec.shape is Shape.records else dict
        if not isinstance(body, expected):
            body = expected()
            document[spec.key] = body
        return body

    def _records(self, name: str, document: Record) -> list[Record]:
        spec = get_spec(name)
        if spec.shape is not Shape.records:
            raise StoreError(f"Collection {name!r} does not hold a record list")
        return self._body(spec, document)

    @staticmethod
    def _index_of(records: list[Record], record_id: Any) -> int:
        for index, record in enumerate(records):
            if isinstance(record, Mapping) and record.get("id") == record_id:
                return index
        return -1

    def _load(self, path: Path) -> Record:
        text = decode_json_text(path.read_text(encoding="utf-8"))
        document = json.loads(text)
        if not isinstance(document, dict):
            raise ValueError(f"expected a JSON object, got {type(document).__name__}")
        return document

    # -- raw documents ------------------------------------------------------

    def read_collection(self, name: str) -> Record:
        spec = get_spec(name)
        path = self.path_for(name)
        with self.locked(name):
            if not path.exists():
                document = spec.empty_document()
                self.write_collection(name, document)
                return document
            try:
                return self._load(path)
            except (OSError, ValueError) as exc:
                return self._recover(spec, path, exc)

    def _recover(self, spec: CollectionSpec, path: Path, exc: Exception) -> Record:
        policy = self.on_corrupt
        if policy is OnCorruptData.fail_fast:
            raise CorruptDataError(spec.name, path, exc) from exc

        if policy is OnCorruptData.restore_from_backup:
            for candidate in iter_snapshot_copies(self.backup_dir, spec.filename):
                try:
                    document = self._load(candidate)
                except (OSError, ValueError) as backup_exc:
                    logger.warning("Skipping unreadable backup %s: %s", candidate, backup_exc)
                    continue
                logger.warning("Restored %s from backup %s after read error: %s", spec.name, candidate, exc)
                self.write_collection(spec.name, document)
                return document
            logger.error("No usable backup for %s", spec.name)

        logger.error("Error reading %s (%s); using an empty collection: %s", spec.name, path, exc)
        return spec.empty_document()

    def write_collection(self, name: str, document: Record) -> bool:
        path = self.path_for(name)
        tmp_path = path.with_name(path.name + ".tmp")
        with self.locked(name):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                text = json.dumps(document, indent=2, ensure_ascii=False)
                if self.protect_files:
                    text = encode_json_text(text)
                tmp_path.write_text(text, encoding="utf-8")
                os.replace(tmp_path, path)
            except (OSError, TypeError, ValueError) as exc:
                logger.exception("Error writing %s: %s", name, exc)
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
                return False
        return True

    # -- queries ------------------------------------------------------------

    def get_all(self, name: str) -> list[Record]:
        return self._records(name, self.read_collection(name))

    def find_by_id(self, name: str, record_id: Any) -> Optional[Record]:
        records = self.get_all(name)
        index = self._index_of(records, record_id)
        return records[index] if index >= 0 else None

    def find_by(self, name: str, criteria: Criteria) -> list[Record]:
        records = self.get_all(name)
        if callable(criteria):
            return [record for record in records if criteria(record)]

        missing = object()
        checks = [(split_path(key), value) for key, value in criteria.items()]
        return [
            record
            for record in records
            if all(get_path(record, segments, missing) == value for segments, value in checks)
        ]

    # -- mutations ----------------------------------------------------------

    def add(self, name: str, record: Record) -> bool:
        spec = get_spec(name)
        with self.locked(name):
            document = self.read_collection(name)
            self._records(name, document).append(record)
            if spec.stamp_on_add:
                document["lastUpdated"] = self.timestamp()
            return self.write_collection(name, document)

    def update_by_id(self, name: str, record_id: Any, patch: Mapping[FieldPath, Any]) -> bool:
        tree = expand_patch(patch)
        with self.locked(name):
            document = self.read_collection(name)
            records = self._records(name, document)
            index = self._index_of(records, record_id)
            if index == -1:
                return False

            merged = deep_merge(records[index], tree)
            merged["updatedAt"] = self.timestamp()
            drop_flat_keys(merged, patch.keys())
            records[index] = merged
            return self.write_collection(name, document)

    def update_nested_property(self, name: str, record_id: Any, path: FieldPath, value: Any) -> bool:
        segments = split_path(path)
        with self.locked(name):
            document = self.read_collection(name)
            records = self._records(name, document)
            index = self._index_of(records, record_id)
            if index == -1:
                return False

            record = records[index]
            try:
                set_path(record, segments, value)
            except InvalidPathError as exc:
                logger.warning("Refusing nested update of %s/%s: %s", name, record_id, exc)
                return False
            drop_flat_keys(record, [segments])
            record["updatedAt"] = self.timestamp()
            return self.write_collection(name, document)

    def delete_by_id(self, name: str, record_id: Any) -> bool:
        with self.locked(name):
            document = self.read_collection(name)
            records = self._records(name, document)
            index = self._index_of(records, record_id)
            if index == -1:
                return False
            del records[index]
            return self.write_collection(name, document)

    def cleanup_flat_keys(self, name: str) -> int:
        with self.locked(name):
            document = self.read_collection(name)
            cleaned = sum(heal_flat_keys(record) for record in self._records(name, document)
                          if isinstance(record, dict))
            if cleaned and not self.write_collection(name, document):
                return 0
        return cleaned

    # -- identifiers ----------------------------------------------------------

    def next_record_id(self, name: str, prefix: str = "") -> str:
        highest = 0
        for record in self.get_all(name):
            record_id = str(record.get("id") or "")
            if not record_id.startswith(prefix):
                continue
            suffix = record_id[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:03d}"

    def generate_next_document_id(self, kind: str, is_gst: bool = False) -> Optional[str]:
        key = sequence_for(kind, is_gst)
        number = self.sequences.next(key)
        if number is None:
            logger.error("Failed to persist %s counter; no document id issued", key.counter)
            return None
        return format_document_id(key, number)

    def add_document_with_gst(self, kind: str, record: Record) -> bool:
        gst = bool(record.get("gstEnabled")) or record.get("documentType") == "GST"
        key = sequence_for(kind, gst)

        document_record = dict(record)
        document_record["gstEnabled"] = gst
        document_record["documentType"] = "GST" if gst else "NORMAL"

        with self.locked(key.collection):
            document = self.read_collection(key.collection)
            stamp = self.timestamp()
            if not document_record.get("id"):
                document_record["id"] = format_document_id(key, claim(document, key, stamp))
            document_record.setdefault(key.number_field, document_record["id"])
            document_record.setdefault("createdAt", stamp)
            self._records(key.collection, document).append(document_record)
            document["lastUpdated"] = stamp
            return self.write_collection(key.collection, document)

    # -- collection-specific helpers ----------------------------------------

    def _document_data(self, name: str, counters: tuple[str, ...]) -> Record:
        document = self.read_collection(name)
        data: Record = {name: self._records(name, document)}
        for counter in counters:
            data[counter] = document.get(counter) or 1
        return data

    def get_bills_data(self) -> Record:
        return self._document_data("bills", ("nextBillNumber", "nextGSTBillNumber", "nextNormalBillNumber"))

    def get_quotations_data(self) -> Record:
        return self._document_data(
            "quotations", ("nextQuotationNumber", "nextGSTQuotationNumber", "nextNormalQuotationNumber")
        )

    def get_company(self) -> Record:
        company = self.read_collection("company").get("company")
        return company if isinstance(company, dict) else {}

    def save_company(self, company: Record) -> bool:
        return self.write_collection("company", {"company": company})

    def get_users(self) -> list[Record]:
        users = []
        for user in self.get_all("users"):
            status = user.get("status") or ("active" if user.get("isActive") else "inactive")
            users.append(
                {
                    "id": user.get("id"),
                    "username": user.get("username"),
                    "password": user.get("password"),
                    "role": user.get("role"),
                    "fullName": user.get("fullName") or user.get("name") or user.get("username"),
                    "email": user.get("email") or "",
                    "status": status,
                    "createdAt": user.get("createdAt"),
                    "lastLogin": user.get("lastLogin"),
                }
            )
        return users

    def save_users(self, users: list[Record]) -> bool:
        return self.write_collection("users", {"users": users})

    # -- maintenance ----------------------------------------------------------

    def backup(self) -> Optional[Path]:
        with self._all_locked():
            return create_snapshot((self.path_for(name) for name in COLLECTIONS), self.backup_dir)
