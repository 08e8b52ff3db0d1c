"""Durable document-number sequences for bills and quotations.

Counters live next to the record array in ``bills.json`` and
``quotations.json``, one per (kind, GST flag) pair. They are read, advanced
and written back under the collection lock, so a number is only consumed
once the write has succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .exceptions import StoreError

if TYPE_CHECKING:
    from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceKey:
    kind: str
    gst: bool
    collection: str
    counter: str
    legacy_counter: str
    prefix: str
    width: int
    number_field: str


SEQUENCES: dict[tuple[str, bool], SequenceKey] = {
    ("bill", False): SequenceKey("bill", False, "bills", "nextNormalBillNumber", "nextBillNumber", "BILL-", 3, "billNumber"),
    ("bill", True): SequenceKey("bill", True, "bills", "nextGSTBillNumber", "nextBillNumber", "GST-BILL-", 3, "billNumber"),
    ("quotation", False): SequenceKey(
        "quotation", False, "quotations", "nextNormalQuotationNumber", "nextQuotationNumber", "QT-", 4, "quotationNumber"
    ),
    ("quotation", True): SequenceKey(
        "quotation", True, "quotations", "nextGSTQuotationNumber", "nextQuotationNumber", "GST-QT-", 4, "quotationNumber"
    ),
}

KINDS = ("bill", "quotation")


def sequence_for(kind: str, gst: bool) -> SequenceKey:
    try:
        return SEQUENCES[(kind, bool(gst))]
    except KeyError:
        raise StoreError(f"Unknown document kind: {kind!r}") from None


def format_document_id(key: SequenceKey, number: int) -> str:
    return f"{key.prefix}{number:0{key.width}d}"


def _highest_issued(document: dict, key: SequenceKey) -> int:
    highest = 0
    records = document.get(key.collection)
    for record in records if isinstance(records, list) else []:
        record_id = str(record.get("id") or "") if isinstance(record, dict) else ""
        suffix = record_id[len(key.prefix):]
        if record_id.startswith(key.prefix) and suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def _counter_value(document: dict, name: str) -> Optional[int]:
    """Stored counter, 1 when absent, None when it is not a number."""
    raw = document.get(name)
    if raw is None or raw == "":
        return 1
    try:
        return max(int(raw), 1)
    except (TypeError, ValueError):
        return None


def _next_number(document: dict, key: SequenceKey) -> int:
    number = _counter_value(document, key.counter)
    if number is None:
        number = _highest_issued(document, key) + 1
        logger.warning("Counter %s holds %r; resuming after issued ids at %d",
                       key.counter, document.get(key.counter), number)
    return number


def claim(document: dict, key: SequenceKey, timestamp: str) -> int:
    """Take the next number from ``document`` and advance its counters in place."""
    number = _next_number(document, key)
    document[key.counter] = number + 1
    legacy = _counter_value(document, key.legacy_counter)
    if legacy is None:
        logger.warning("Counter %s holds %r; restarting it", key.legacy_counter, document.get(key.legacy_counter))
        legacy = 1
    document[key.legacy_counter] = legacy + 1
    document["lastUpdated"] = timestamp
    return number


class SequenceStore:
    def __init__(self, store: "RecordStore") -> None:
        self.store = store

    def peek(self, key: SequenceKey) -> int:
        return _next_number(self.store.read_collection(key.collection), key)

    def next(self, key: SequenceKey) -> Optional[int]:
        with self.store.locked(key.collection):
            document = self.store.read_collection(key.collection)
            number = claim(document, key, self.store.timestamp())
            if not self.store.write_collection(key.collection, document):
                return None
        return number
