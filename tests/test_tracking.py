from datetime import datetime

import pytest

from permitdb.models import (
    NotFound,
    Payment,
    PaymentUpdate,
    ProcessingState,
    ProcessingStateUpdate,
    ProcessStatus,
)
from permitdb.storage import Store
from permitdb.tracking import (
    create_payment,
    create_processing_state,
    read_payment_details,
    read_processing_states,
    update_payment_details,
    update_processing_state,
)


@pytest.fixture
def store(tmp_path):
    with Store(tmp_path / "db", 10 * 1024 * 1024) as opened:
        yield opened


def _state(modified, assigned="alice"):
    return ProcessingState(
        processing_status=ProcessStatus.RevisionsReceived
        if hasattr(ProcessStatus, "RevisionsReceived")
        else ProcessStatus.REVISIONS_RECEIVED,
        due_date=datetime(2025, 1, 1, 0, 0, 0),
        assigned_to=assigned,
        last_modified=modified,
    )


def _payment(when, amount=12345):
    return Payment(payment="card", date=when, amount=amount, status="paid")


def test_processing_key_uses_timestamp_text(store):
    key = create_processing_state(store, "P1", _state(datetime(2024, 5, 6, 7, 8, 9, 123000)))
    assert key == "P1-2024-05-06T07:08:09.123"


def test_read_processing_states_groups_by_permit(store):
    first = _state(datetime(2024, 1, 1, 1, 0, 0))
    second = _state(datetime(2024, 2, 1, 1, 0, 0))
    other = _state(datetime(2024, 3, 1, 1, 0, 0))
    longer = _state(datetime(2024, 4, 1, 1, 0, 0))
    k1 = create_processing_state(store, "P1", first)
    k2 = create_processing_state(store, "P1", second)
    k3 = create_processing_state(store, "P2", other)
    create_processing_state(store, "P10", longer)

    result = read_processing_states(store, "P1,P2")
    assert result == [[(k1, first), (k2, second)], [(k3, other)]]


def test_read_processing_states_unknown_permit(store):
    assert read_processing_states(store, "nothing") == [[]]


def test_read_processing_states_accepts_iterable(store):
    state = _state(datetime(2024, 1, 1, 1, 0, 0))
    key = create_processing_state(store, "X", state)
    assert read_processing_states(store, ["X"]) == [[(key, state)]]


def test_update_processing_state_in_place(store):
    modified = datetime(2024, 1, 1, 1, 0, 0)
    key = create_processing_state(store, "P1", _state(modified))
    stamp = key[len("P1-"):]
    new_key, state = update_processing_state(
        store, "P1", stamp, ProcessingStateUpdate(assigned_to="bob")
    )
    assert new_key == key
    assert state.assigned_to == "bob"
    assert read_processing_states(store, "P1") == [[(key, state)]]


def test_update_processing_state_moves_key(store):
    key = create_processing_state(store, "P1", _state(datetime(2024, 1, 1, 1, 0, 0)))
    later = datetime(2024, 6, 1, 2, 3, 4)
    new_key, state = update_processing_state(
        store, "P1", key[len("P1-"):], ProcessingStateUpdate(last_modified=later)
    )
    assert new_key != key
    assert state.last_modified == later
    stored = read_processing_states(store, "P1")
    assert stored == [[(new_key, state)]]
    assert create_processing_state(store, "P1", state) == new_key


def test_update_processing_state_missing(store):
    with pytest.raises(NotFound, match="No record found with the permit number: P9"):
        update_processing_state(store, "P9", "2024-01-01T00:00:00", ProcessingStateUpdate())


def test_payment_round_trip(store):
    payment = _payment(datetime(2023, 3, 4, 5, 6, 7))
    key = create_payment(store, "P1", payment)
    assert key.startswith("P1-")
    assert read_payment_details(store, "P1") == [[(key, payment)]]


def test_read_payment_details_multiple(store):
    a = _payment(datetime(2023, 1, 1, 0, 0, 0), 100)
    b = _payment(datetime(2023, 1, 2, 0, 0, 0), 200)
    ka = create_payment(store, "A", a)
    kb = create_payment(store, "B", b)
    assert read_payment_details(store, "B,A,C") == [[(kb, b)], [(ka, a)], []]


def test_update_payment_fields(store):
    key = create_payment(store, "P1", _payment(datetime(2023, 1, 1, 0, 0, 0)))
    new_key, payment = update_payment_details(
        store, "P1", key[len("P1-"):], PaymentUpdate(amount=999, status="refunded")
    )
    assert new_key == key
    assert (payment.amount, payment.status, payment.payment) == (999, "refunded", "card")
    assert read_payment_details(store, "P1") == [[(key, payment)]]


def test_update_payment_moves_key(store):
    key = create_payment(store, "P1", _payment(datetime(2023, 1, 1, 0, 0, 0)))
    when = datetime(2023, 9, 9, 9, 9, 9)
    new_key, payment = update_payment_details(
        store, "P1", key[len("P1-"):], PaymentUpdate(date=when)
    )
    assert payment.date == when
    assert read_payment_details(store, "P1") == [[(new_key, payment)]]
    with pytest.raises(NotFound):
        update_payment_details(store, "P1", key[len("P1-"):], PaymentUpdate())


def test_update_payment_missing(store):
    with pytest.raises(NotFound, match="No record found with the permit number: Z"):
        update_payment_details(store, "Z", "2023-01-01T00:00:00", PaymentUpdate(amount=1))