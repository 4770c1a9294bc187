from __future__ import annotations

from roster_sync.models.record import (
    DEFAULT_STATUS,
    SAMPLE_RECORDS,
    UNKNOWN_TIMESTAMP,
    Record,
    Snapshot,
    StatusClass,
    classify_status,
)


def test_classify_status_logged_in_case_insensitive():
    assert classify_status("Đã đăng nhập") is StatusClass.LOGGED_IN
    assert classify_status("ĐÃ ĐĂNG NHẬP hôm nay") is StatusClass.LOGGED_IN


def test_classify_status_logged_out():
    assert classify_status("Chưa đăng nhập") is StatusClass.LOGGED_OUT
    assert classify_status("  chưa đăng nhập (mới)") is StatusClass.LOGGED_OUT


def test_classify_status_other_labels():
    assert classify_status(DEFAULT_STATUS) is StatusClass.OTHER
    assert classify_status("") is StatusClass.OTHER
    assert classify_status(42) is StatusClass.OTHER


def test_record_document_round_keys():
    rec = Record(7, "Nguyễn Văn A", "Phòng 1", "Khối A", "01/02/1990", "0901", "Đã đăng nhập")
    doc = rec.to_document()
    assert set(doc) == {"stt", "fullName", "unit", "parentUnit", "dob", "phone", "status"}
    assert doc["stt"] == 7
    assert doc["fullName"] == "Nguyễn Văn A"
    assert Record.from_document(doc) == rec


def test_record_from_document_defaults():
    rec = Record.from_document({"fullName": "B"}, position=4)
    assert rec.sequence_number == 5
    assert rec.unit == ""
    assert rec.status == DEFAULT_STATUS


def test_record_from_document_whole_float_stt_becomes_int():
    assert Record.from_document({"stt": 1.0, "fullName": "A"}).sequence_number == 1
    assert isinstance(Record.from_document({"stt": 12.0, "fullName": "A"}).sequence_number, int)
    assert Record.from_document({"stt": 1.5, "fullName": "A"}).sequence_number == "1.5"
    assert Record.from_document({"stt": True, "fullName": "A"}).sequence_number == "True"


def test_snapshot_from_document_tolerates_bad_data():
    snap = Snapshot.from_document({"data": "not-a-list"})
    assert snap.records == ()
    assert snap.last_updated == UNKNOWN_TIMESTAMP


def test_snapshot_document_shape():
    snap = Snapshot(records=SAMPLE_RECORDS, last_updated="10:00:00 - 01/01/2026")
    doc = snap.to_document()
    assert set(doc) == {"data", "lastUpdated"}
    assert len(doc["data"]) == 3
    assert Snapshot.from_document(doc) == snap


def test_sample_records_has_three_entries():
    assert len(SAMPLE_RECORDS) == 3
    assert all(r.full_name for r in SAMPLE_RECORDS)
