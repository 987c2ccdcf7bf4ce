from datetime import datetime

import pytest

from permitdb.models import IndexKey, Payment, ProcessingState, ProcessStatus, Record, Status
from permitdb.storage import Store, open_store


def make_record(number="P-1", client="a", county="one"):
    return Record(
        permit_link="https://permits.example.com/" + number,
        permit_number=number,
        client=client,
        opened=datetime(2023, 5, 1, 10, 20, 30, 123000),
        last_updated=datetime(2024, 1, 2, 3, 4, 5),
        status_updated=datetime(2024, 2, 3, 4, 5, 6),
        county=county,
        county_status=Status.PENDING,
        manual_status=Status.CLOSED,
        address="1 Main St",
    )


def make_state(day=1):
    return ProcessingState(
        processing_status=ProcessStatus.REVISIONS_RECEIVED,
        due_date=datetime(2025, 1, day, 12, 0, 0),
        assigned_to="Bob",
        last_modified=datetime(2025, 1, day, 9, 30, 0),
    )


def make_payment(amount=50000):
    return Payment(payment="card", date=datetime(2022, 3, 4, 5, 6, 7), amount=amount, status="paid")


@pytest.fixture
def store(tmp_path):
    opened = Store(tmp_path / "db", map_size=16 * 1024 * 1024)
    yield opened
    opened.close()


def test_record_round_trip(store):
    record = make_record()
    with store.write() as txn:
        txn.put_record("k1", record)
    with store.read() as txn:
        assert txn.get_record("k1") == record
        assert txn.get_record("missing") is None


def test_write_aborts_on_error(store):
    with pytest.raises(RuntimeError):
        with store.write() as txn:
            txn.put_record("k1", make_record())
            raise RuntimeError("boom")
    with store.read() as txn:
        assert txn.get_record("k1") is None
        assert txn.count_records() == 0


def test_iter_records_in_key_order(store):
    with store.write() as txn:
        for key in ["c", "a", "b"]:
            txn.put_record(key, make_record(number=key))
    with store.read() as txn:
        items = list(txn.iter_records())
    assert [key for key, _ in items] == ["a", "b", "c"]
    assert [record.permit_number for _, record in items] == ["a", "b", "c"]


def test_iter_records_prefix(store):
    keys = ["2023-05-01T1-x", "2023-05-01T2-y", "2023-05-02T1-z", "2023-04-30T1-w"]
    with store.write() as txn:
        for key in keys:
            txn.put_record(key, make_record(number=key))
    with store.read() as txn:
        found = [key for key, _ in txn.iter_records_prefix("2023-05-01")]
        assert found == ["2023-05-01T1-x", "2023-05-01T2-y"]
        assert list(txn.iter_records_prefix("2099")) == []


def test_count_and_delete_records(store):
    with store.write() as txn:
        txn.put_record("a", make_record())
        txn.put_record("b", make_record())
    with store.write() as txn:
        assert txn.delete_record("a") is True
        assert txn.delete_record("a") is False
    with store.read() as txn:
        assert txn.count_records() == 1


def test_index_round_trip(store):
    key = IndexKey("a", "one", Status.ACTIVE)
    with store.write() as txn:
        assert txn.get_index(key) is None
        txn.put_index(key, {"u2", "u1"})
    with store.read() as txn:
        assert txn.get_index(key) == {"u1", "u2"}
        assert txn.get_index(IndexKey("a", "one", Status.CLOSED)) is None


def test_processing_states(store):
    with store.write() as txn:
        txn.put_processing("P1-2025-01-01T09:30:00", make_state(1))
        txn.put_processing("P1-2025-01-02T09:30:00", make_state(2))
        txn.put_processing("P10-2025-01-01T09:30:00", make_state(3))
    with store.read() as txn:
        found = list(txn.iter_processing_prefix("P1-"))
        assert [state for _, state in found] == [make_state(1), make_state(2)]
        assert txn.get_processing("P10-2025-01-01T09:30:00") == make_state(3)
    with store.write() as txn:
        assert txn.delete_processing("P1-2025-01-01T09:30:00") is True
    with store.read() as txn:
        assert txn.get_processing("P1-2025-01-01T09:30:00") is None


def test_payments(store):
    with store.write() as txn:
        txn.put_payment("P1-a", make_payment(10000))
        txn.put_payment("P1-b", make_payment(20000))
        txn.put_payment("P2-a", make_payment(30000))
    with store.read() as txn:
        amounts = [payment.amount for _, payment in txn.iter_payments_prefix("P1-")]
        assert amounts == [10000, 20000]
        assert txn.get_payment("P2-a") == make_payment(30000)
    with store.write() as txn:
        assert txn.delete_payment("P2-a") is True
        assert txn.delete_payment("P2-a") is False


def test_data_persists_after_reopen(tmp_path):
    path = tmp_path / "persist"
    with open_store(path) as first:
        with first.write() as txn:
            txn.put_record("k", make_record(number="kept"))
    with open_store(path) as second:
        with second.read() as txn:
            assert txn.get_record("k") == make_record(number="kept")
    assert path.is_dir()