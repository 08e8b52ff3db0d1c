from __future__ import annotations

import threading

import pytest

from stockbook.exceptions import StoreError
from stockbook.sequences import format_document_id, sequence_for


def test_fresh_bill_sequence(store, read_file):
    assert store.generate_next_document_id("bill", False) == "BILL-001"
    assert store.generate_next_document_id("bill", False) == "BILL-002"

    document = read_file("bills")
    assert document["nextNormalBillNumber"] == 3
    assert document["bills"] == []


def test_gst_and_normal_counters_are_independent(store, read_file):
    assert store.generate_next_document_id("bill", True) == "GST-BILL-001"
    assert store.generate_next_document_id("bill", True) == "GST-BILL-002"
    assert store.generate_next_document_id("bill", False) == "BILL-001"
    assert store.generate_next_document_id("bill", True) == "GST-BILL-003"

    document = read_file("bills")
    assert document["nextGSTBillNumber"] == 4
    assert document["nextNormalBillNumber"] == 2
    assert document["nextBillNumber"] == 5


def test_quotation_formats(store, read_file):
    assert store.generate_next_document_id("quotation", False) == "QT-0001"
    assert store.generate_next_document_id("quotation", True) == "GST-QT-0001"
    assert store.generate_next_document_id("quotation", False) == "QT-0002"

    document = read_file("quotations")
    assert document["nextNormalQuotationNumber"] == 3
    assert document["nextGSTQuotationNumber"] == 2
    assert "nextNormalBillNumber" not in document


def test_counter_survives_a_new_store_instance(store, data_dir, backup_dir):
    from stockbook.store import RecordStore

    store.generate_next_document_id("bill", False)
    reopened = RecordStore(data_dir, backup_dir=backup_dir)

    assert reopened.generate_next_document_id("bill", False) == "BILL-002"


def test_existing_counter_is_honoured(store):
    store.write_collection("bills", {"bills": [], "nextNormalBillNumber": 41, "nextGSTBillNumber": 7})

    assert store.generate_next_document_id("bill", False) == "BILL-041"
    assert store.generate_next_document_id("bill", True) == "GST-BILL-007"


def test_padding_is_a_minimum_width():
    assert format_document_id(sequence_for("bill", False), 1000) == "BILL-1000"
    assert format_document_id(sequence_for("quotation", True), 12345) == "GST-QT-12345"


def test_unknown_kind_raises(store):
    with pytest.raises(StoreError):
        store.generate_next_document_id("invoice", False)


def test_failed_write_does_not_consume_a_number(store, monkeypatch):
    assert store.generate_next_document_id("bill", False) == "BILL-001"

    monkeypatch.setattr(store, "write_collection", lambda name, document: False)
    assert store.generate_next_document_id("bill", False) is None

    monkeypatch.undo()
    assert store.sequences.peek(sequence_for("bill", False)) == 2
    assert store.generate_next_document_id("bill", False) == "BILL-002"


def test_add_document_with_gst_issues_id_and_defaults(store):
    assert store.add_document_with_gst("bill", {"customerName": "Rahiman Sharif", "gstEnabled": True}) is True
    assert store.add_document_with_gst("bill", {"customerName": "Walk-in"}) is True

    gst_bill, normal_bill = store.get_all("bills")
    assert gst_bill["id"] == "GST-BILL-001"
    assert gst_bill["billNumber"] == "GST-BILL-001"
    assert gst_bill["documentType"] == "GST"
    assert gst_bill["gstEnabled"] is True
    assert gst_bill["createdAt"].endswith("Z")
    assert normal_bill["id"] == "BILL-001"
    assert normal_bill["documentType"] == "NORMAL"
    assert normal_bill["gstEnabled"] is False
    assert store.read_collection("bills")["lastUpdated"].endswith("Z")
    assert store.read_collection("bills")["nextGSTBillNumber"] == 2
    assert store.read_collection("bills")["nextNormalBillNumber"] == 2


def test_add_document_with_gst_keeps_caller_fields(store):
    quotation_id = store.generate_next_document_id("quotation", True)
    record = {
        "id": quotation_id,
        "quotationNumber": "Q/2026/1",
        "documentType": "GST",
        "createdAt": "2026-10-01T09:00:00.000Z",
    }

    assert store.add_document_with_gst("quotation", record) is True

    stored = store.find_by_id("quotations", "GST-QT-0001")
    assert stored["quotationNumber"] == "Q/2026/1"
    assert stored["createdAt"] == "2026-10-01T09:00:00.000Z"
    assert stored["gstEnabled"] is True
    assert store.read_collection("quotations")["nextGSTQuotationNumber"] == 2


def test_failed_document_save_does_not_consume_a_number(store, monkeypatch):
    store.read_collection("bills")

    monkeypatch.setattr(store, "write_collection", lambda name, document: False)
    assert store.add_document_with_gst("bill", {"customerName": "Walk-in"}) is False

    monkeypatch.undo()
    assert store.sequences.peek(sequence_for("bill", False)) == 1
    assert store.get_all("bills") == []
    assert store.add_document_with_gst("bill", {"customerName": "Walk-in"}) is True
    assert store.get_all("bills")[0]["id"] == "BILL-001"


def test_document_and_counter_are_written_together(store, monkeypatch):
    store.read_collection("bills")
    writes = []
    original = store.write_collection

    def counting_write(name, document):
        writes.append(name)
        return original(name, document)

    monkeypatch.setattr(store, "write_collection", counting_write)
    assert store.add_document_with_gst("bill", {"gstEnabled": True}) is True

    assert writes == ["bills"]


def test_non_numeric_counter_resumes_after_issued_ids(store, caplog):
    store.write_collection(
        "bills",
        {"bills": [{"id": "BILL-004"}, {"id": "GST-BILL-009"}, {"id": "bill_0012"}], "nextNormalBillNumber": "abc"},
    )

    assert store.generate_next_document_id("bill", False) == "BILL-005"
    assert store.read_collection("bills")["nextNormalBillNumber"] == 6
    assert "nextNormalBillNumber" in caplog.text


def test_concurrent_issuance_never_repeats_a_number(store, read_file):
    store.read_collection("bills")
    issued = []
    issued_lock = threading.Lock()

    def worker():
        for _ in range(20):
            document_id = store.generate_next_document_id("bill", False)
            with issued_lock:
                issued.append(document_id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(issued) == 160
    assert None not in issued
    assert len(set(issued)) == 160
    assert read_file("bills")["nextNormalBillNumber"] == 161
