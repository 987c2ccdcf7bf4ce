"""Paged, sorted and index-filtered listing of permit records."""

from __future__ import annotations

import logging
import re
import time
from datetime import timedelta
from itertools import islice
from typing import Any, Iterable, Mapping, Optional

from permitdb.helpers import data_with_response_time, data_with_response_time_for_slice
from permitdb.models import IndexKey, InvalidInput, NotFound, Record, Status
from permitdb.storage import Store, Transaction

DEFAULT_PAGE_SIZE = 50
INVALID_NUMBER = "Enter a valid page number. It must be an integer."
ZERO_PAGE_SIZE = "records_per_page must be greater than zero"
PAGES_IN_DB = "The DB only has {pages} Pages"
INVALID_STATUS = "The given status is not valid."
NO_RECORDS = "No Records Found"
UNREADABLE = "Couldn't read From DataBase"

_COUNT_RE = re.compile(r"\+?[0-9]+")
_PARAMS = ("page", "county", "client", "county_status", "records_per_page", "sort", "sort_key")
_SORT_KEYS = {
    "": "opened",
    "opened": "opened",
    "last_updated": "last_updated",
    "status_updated": "status_updated",
    "manual_status": "manual_status",
}

_log = logging.getLogger(__name__)


def _elapsed(started: float) -> timedelta:
    return timedelta(seconds=time.perf_counter() - started)


def _text(query: Mapping[str, Any], name: str) -> str:
    value = query.get(name, "")
    if not isinstance(value, str):
        raise InvalidInput(f"field `{name}` must be a string")
    return value


def _count(text: str) -> Optional[int]:
    return int(text) if _COUNT_RE.fullmatch(text) else None


def _required_count(text: str) -> int:
    value = _count(text)
    if value is None:
        raise InvalidInput(INVALID_NUMBER)
    return value


def _page_size(text: str) -> int:
    size = _required_count(text)
    if size == 0:
        raise InvalidInput(ZERO_PAGE_SIZE)
    return size


def _window(items: Iterable, skip: int, take: int) -> list:
    """``take`` items after skipping ``skip``; a skip before the start yields nothing."""
    if skip < 0:
        return []
    return list(islice(items, skip, skip + take))


def _unfiltered(
    txn: Transaction, started: float, entries: int, params: Mapping[str, str]
) -> dict:
    page_text = params["page"]
    size_text = params["records_per_page"]
    ascending = params["sort"] in ("", "asc")

    if page_text:
        page = _required_count(page_text)
        size = _page_size(size_text) if size_text else DEFAULT_PAGE_SIZE
        pages = entries // size
        if entries < page * size:
            raise NotFound(PAGES_IN_DB.format(pages=pages))
        if ascending:
            skip = 0 if page == 1 else page * size
        else:
            skip = (pages - page - 1) * size
        records = _window(txn.iter_records(), skip, size)
        return data_with_response_time(_elapsed(started), records, entries)

    if size_text:
        size = _page_size(size_text)
        pages = entries // size
        skip = 0 if ascending else pages - size
        records = _window(txn.iter_records(), skip, size)
        return data_with_response_time(_elapsed(started), records, entries)

    skip = 0 if ascending else entries - DEFAULT_PAGE_SIZE
    records = _window(txn.iter_records(), skip, DEFAULT_PAGE_SIZE)
    return data_with_response_time(_elapsed(started), records, entries)


def _filtered(txn: Transaction, started: float, params: Mapping[str, str]) -> dict:
    try:
        status = Status.parse(params["county_status"])
    except InvalidInput:
        raise InvalidInput(INVALID_STATUS) from None

    key = IndexKey(client=params["client"], county=params["county"], county_status=status)
    members = txn.get_index(key)
    if members is None:
        raise NotFound(NO_RECORDS)

    records: list[Record] = []
    for uuid in sorted(members):
        record = txn.get_record(uuid)
        if record is None:
            _log.warning("couldn't find the value for uuid: %s", uuid)
        else:
            records.append(record)

    sort = params["sort"]
    if sort in ("", "asc"):
        descending = False
    elif sort == "dsc":
        descending = True
    else:
        raise NotFound(NO_RECORDS)

    field = _SORT_KEYS.get(params["sort_key"])
    if field is None:
        raise NotFound(NO_RECORDS)

    records.sort(key=lambda record: getattr(record, field), reverse=descending)
    limit = _count(params["records_per_page"]) or 0
    if limit:
        records = records[:limit]
    return data_with_response_time_for_slice(_elapsed(started), records, len(members))


def read_records(store: Store, query: Optional[Mapping[str, Any]] = None) -> dict:
    """List records by page, or through the composite index when all filters are given.

    Without filters the records come in key order, a page at a time. With
    ``county``, ``client`` and ``county_status`` all set, the indexed records are
    sorted by ``sort_key`` in ``sort`` order and cut to ``records_per_page``.
    """
    started = time.perf_counter()
    with store.read() as txn:
        entries = txn.count_records()
        if not query:
            records = _window(txn.iter_records(), 0, DEFAULT_PAGE_SIZE)
            return data_with_response_time(_elapsed(started), records, entries)

        params = {name: _text(query, name) for name in _PARAMS}
        filters = (params["county"], params["client"], params["county_status"])
        if not any(filters):
            return _unfiltered(txn, started, entries, params)
        if all(filters):
            return _filtered(txn, started, params)
    raise NotFound(UNREADABLE)