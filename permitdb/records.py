"""Creating, reading, updating and deleting permit records and querying them by date."""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Any, Mapping, Optional
from uuid import uuid4

from permitdb.models import (
    InvalidInput,
    NotFound,
    Record,
    RecordUpdate,
    format_datetime,
    parse_datetime,
)
from permitdb.storage import Store, Transaction

UPDATE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%.3f"
MISSING_RANGE = "Both start_date and end_date must exist"
NO_RECORD_WITH_UUID = "No Record found with the uuid: {uuid}"
NO_RECORD_TO_UPDATE = "Failed to update the Record\nNo Record Exists"
INVALID_UUID = "The UUID is not Valid"
NO_RECORD_TO_DELETE = "Couldn't Delete the record"
UUID_NOT_INDEXED = "The UUID is not in the DataBase"

_DATE_RE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_UPDATE_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{1,9})?")
_TEXT_FIELDS = ("permit_link", "permit_number", "client", "county", "address")
_STATUS_FIELDS = ("manual_status", "county_status")
_FILTER_FIELDS = ("county", "county_status", "client")


def date_range(start: date, end: date) -> list[str]:
    """Every day from ``start`` to ``end`` inclusive, as ``YYYY-MM-DD`` text."""
    days = (end - start).days
    return [(start + timedelta(days=offset)).strftime("%Y-%m-%d") for offset in range(days + 1)]


def _parse_date(text: Any, name: str) -> date:
    message = f"Invalid {name} format, expected YYYY-MM-DD"
    if not isinstance(text, str):
        raise InvalidInput(message)
    match = _DATE_RE.fullmatch(text)
    if match is None:
        raise InvalidInput(message)
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise InvalidInput(message) from None


def _parse_update_timestamp(text: str, name: str):
    message = (
        f"The format for {name} is wrong\n"
        f"Ensure you are using this format: {UPDATE_TIMESTAMP_FORMAT}"
    )
    if _UPDATE_TIMESTAMP_RE.fullmatch(text) is None:
        raise InvalidInput(message)
    try:
        return parse_datetime(text)
    except InvalidInput:
        raise InvalidInput(message) from None


def _text(mapping: Mapping[str, Any], name: str) -> str:
    value = mapping.get(name, "")
    if not isinstance(value, str):
        raise InvalidInput(f"field `{name}` must be a string")
    return value


def _required_range(mapping: Optional[Mapping[str, Any]]) -> tuple[date, date]:
    if mapping is None or "start_date" not in mapping or "end_date" not in mapping:
        raise InvalidInput(MISSING_RANGE)
    start = _parse_date(mapping["start_date"], "start_date")
    end = _parse_date(mapping["end_date"], "end_date")
    return start, end


def _records_opened_between(txn: Transaction, start: date, end: date) -> list[tuple[str, Record]]:
    return [
        item
        for day in date_range(start, end)
        for item in txn.iter_records_prefix(day)
    ]


def create_record(store: Store, record: Record) -> str:
    """Store a new record and index it; return its generated key."""
    key = f"{format_datetime(record.opened)}-{uuid4()}"
    index_key = record.index_key()
    with store.write() as txn:
        members = txn.get_index(index_key) or set()
        txn.put_record(key, record)
        members.add(key)
        txn.put_index(index_key, members)
    return key


def read_record_by_uuid(store: Store, uuid: str) -> Record:
    """Return the record stored under ``uuid``."""
    with store.read() as txn:
        record = txn.get_record(uuid)
    if record is None:
        raise NotFound(NO_RECORD_WITH_UUID.format(uuid=uuid))
    return record


def update_record(store: Store, uuid: str, update: RecordUpdate) -> Record:
    """Apply ``update`` to the record under ``uuid``, keeping the index in step."""
    with store.write() as txn:
        record = txn.get_record(uuid)
        if record is None:
            raise NotFound(NO_RECORD_TO_UPDATE)

        old_key = record.index_key()
        members = txn.get_index(old_key)
        if members is None:
            raise NotFound(INVALID_UUID)
        members.discard(uuid)
        txn.put_index(old_key, members)

        for name in _TEXT_FIELDS + _STATUS_FIELDS:
            value = getattr(update, name)
            if value is not None:
                setattr(record, name, value)
        for name in ("last_updated", "status_updated"):
            text = getattr(update, name)
            if text is not None:
                setattr(record, name, _parse_update_timestamp(text, name))

        new_key = record.index_key()
        new_members = txn.get_index(new_key) or set()
        new_members.add(uuid)
        txn.put_index(new_key, new_members)
        txn.put_record(uuid, record)
    return record


def delete_record(store: Store, uuid: str) -> Record:
    """Remove the record under ``uuid`` and its index entry; return what was removed."""
    with store.write() as txn:
        record = txn.get_record(uuid)
        if record is None:
            raise NotFound(NO_RECORD_TO_DELETE)
        index_key = record.index_key()
        members = txn.get_index(index_key)
        if members is None:
            raise NotFound(UUID_NOT_INDEXED)
        members.discard(uuid)
        txn.put_index(index_key, members)
        txn.delete_record(uuid)
    return record


def read_records_by_opened_date(
    store: Store, dates: Optional[Mapping[str, Any]]
) -> list[tuple[str, Record]]:
    """Records opened between ``start_date`` and ``end_date`` (inclusive), by day then key."""
    start, end = _required_range(dates)
    with store.read() as txn:
        return _records_opened_between(txn, start, end)


def read_permits_with_filter(
    store: Store, filters: Optional[Mapping[str, Any]]
) -> list[tuple[str, Record]]:
    """Records opened in a date range, narrowed by any non-empty county, status or client."""
    start, end = _required_range(filters)
    wanted = {name: _text(filters, name) for name in _FILTER_FIELDS}
    wanted = {name: value for name, value in wanted.items() if value}
    with store.read() as txn:
        records = _records_opened_between(txn, start, end)
    return [
        (key, record)
        for key, record in records
        if all(str(getattr(record, name)) == value for name, value in wanted.items())
    ]