"""Processing states and payments attached to permit numbers."""

from __future__ import annotations

from typing import Iterable, Union

from permitdb.models import (
    NotFound,
    Payment,
    PaymentUpdate,
    ProcessingState,
    ProcessingStateUpdate,
    format_datetime,
)
from permitdb.storage import Store

NO_RECORD_FOR_PERMIT = "No record found with the permit number: {permit_number}"

PermitNumbers = Union[str, Iterable[str]]


def _split(permit_numbers: PermitNumbers) -> list[str]:
    if isinstance(permit_numbers, str):
        return permit_numbers.split(",")
    return list(permit_numbers)


def _entry_key(permit_number: str, stamp: str) -> str:
    return f"{permit_number}-{stamp}"


def create_processing_state(store: Store, permit_number: str, state: ProcessingState) -> str:
    """Store ``state`` for ``permit_number`` keyed by its last modification; return the key."""
    key = _entry_key(permit_number, format_datetime(state.last_modified))
    with store.write() as txn:
        txn.put_processing(key, state)
    return key


def read_processing_states(
    store: Store, permit_numbers: PermitNumbers
) -> list[list[tuple[str, ProcessingState]]]:
    """Processing states per permit number (comma separated text or an iterable), in key order."""
    with store.read() as txn:
        return [
            list(txn.iter_processing_prefix(f"{number}-"))
            for number in _split(permit_numbers)
        ]


def update_processing_state(
    store: Store,
    permit_number: str,
    last_updated: str,
    update: ProcessingStateUpdate,
) -> tuple[str, ProcessingState]:
    """Apply ``update`` to the state stored under ``permit_number``-``last_updated``.

    A new ``last_modified`` moves the entry to a key built from it. Returns the
    key the state is stored under afterwards, and the state.
    """
    key = _entry_key(permit_number, last_updated)
    with store.write() as txn:
        state = txn.get_processing(key)
        if state is None:
            raise NotFound(NO_RECORD_FOR_PERMIT.format(permit_number=permit_number))
        if update.processing_status is not None:
            state.processing_status = update.processing_status
        if update.due_date is not None:
            state.due_date = update.due_date
        if update.assigned_to is not None:
            state.assigned_to = update.assigned_to
        if update.last_modified is not None:
            state.last_modified = update.last_modified
            txn.delete_processing(key)
            key = _entry_key(permit_number, format_datetime(update.last_modified))
        txn.put_processing(key, state)
    return key, state


def create_payment(store: Store, permit_number: str, payment: Payment) -> str:
    """Store ``payment`` for ``permit_number`` keyed by its date; return the key."""
    key = _entry_key(permit_number, format_datetime(payment.date))
    with store.write() as txn:
        txn.put_payment(key, payment)
    return key


def read_payment_details(
    store: Store, permit_numbers: PermitNumbers
) -> list[list[tuple[str, Payment]]]:
    """Payments per permit number (comma separated text or an iterable), in key order."""
    with store.read() as txn:
        return [
            list(txn.iter_payments_prefix(f"{number}-"))
            for number in _split(permit_numbers)
        ]


def update_payment_details(
    store: Store, permit_number: str, date: str, update: PaymentUpdate
) -> tuple[str, Payment]:
    """Apply ``update`` to the payment stored under ``permit_number``-``date``.

    A new ``date`` moves the entry to a key built from it. Returns the key the
    payment is stored under afterwards, and the payment.
    """
    key = _entry_key(permit_number, date)
    with store.write() as txn:
        payment = txn.get_payment(key)
        if payment is None:
            raise NotFound(NO_RECORD_FOR_PERMIT.format(permit_number=permit_number))
        if update.payment is not None:
            payment.payment = update.payment
        if update.status is not None:
            payment.status = update.status
        if update.amount is not None:
            payment.amount = update.amount
        if update.date is not None:
            payment.date = update.date
            txn.delete_payment(key)
            key = _entry_key(permit_number, format_datetime(update.date))
        txn.put_payment(key, payment)
    return key, payment