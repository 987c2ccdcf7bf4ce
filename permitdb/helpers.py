"""Fake data generation, response shaping and a bulk loader for a running server."""

from __future__ import annotations

import os
import random
import string
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Iterable, Optional

import requests
from dotenv import find_dotenv, load_dotenv

from permitdb.models import Payment, ProcessingState, ProcessStatus, Record, Status

STATUSES = (Status.ACTIVE, Status.CLOSED, Status.INACTIVE, Status.PENDING, Status.UNDER_REVIEW)
COUNTIES = ("one", "two", "three", "four", "five")
CLIENTS = ("a", "b", "c", "d", "e")
PROCESS_STATUSES = (
    ProcessStatus.APPROVED_WITH_CONDITIONS,
    ProcessStatus.PENDING_ADDITIONAL_REVIEW,
    ProcessStatus.REVISIONS_RECEIVED,
)
CONCURRENCY_LIMIT = 1000
RECORD_COUNT = 5000
_ALPHABET = string.ascii_letters + string.digits


def _rng(rng) -> random.Random:
    return random.Random() if rng is None else rng


def _fake_string(rng: random.Random) -> str:
    return "".join(rng.choice(_ALPHABET) for _ in range(rng.randint(5, 20)))


def random_naive_datetime(rng=None) -> datetime:
    """A random timestamp in 2020..2026 with millisecond precision."""
    rng = _rng(rng)
    return datetime(
        rng.randint(2020, 2026),
        rng.randint(1, 12),
        rng.randint(1, 28),
        rng.randrange(24),
        rng.randrange(60),
        rng.randrange(60),
        rng.randrange(1000) * 1000,
    )


def fake_record(rng=None) -> Record:
    rng = _rng(rng)
    return Record(
        permit_link=_fake_string(rng),
        permit_number=_fake_string(rng),
        client=rng.choice(CLIENTS),
        opened=random_naive_datetime(rng),
        last_updated=random_naive_datetime(rng),
        status_updated=random_naive_datetime(rng),
        county=rng.choice(COUNTIES),
        county_status=rng.choice(STATUSES),
        manual_status=rng.choice(STATUSES),
        address=_fake_string(rng),
    )


def fake_processing_state(rng=None) -> ProcessingState:
    rng = _rng(rng)
    return ProcessingState(
        processing_status=rng.choice(PROCESS_STATUSES),
        due_date=random_naive_datetime(rng),
        assigned_to=_fake_string(rng),
        last_modified=random_naive_datetime(rng),
    )


def fake_payment(rng=None) -> Payment:
    rng = _rng(rng)
    return Payment(
        payment=_fake_string(rng),
        date=random_naive_datetime(rng),
        amount=rng.randrange(10_000, 100_000),
        status=_fake_string(rng),
    )


def _micros(duration: timedelta) -> int:
    return duration // timedelta(microseconds=1)


def data_with_response_time(
    duration: timedelta, records: Iterable[tuple[str, Record]], total_records: int
) -> dict:
    """Response body for keyed records."""
    return {
        "Response_time": _micros(duration),
        "Number_of_records": total_records,
        "data": [[key, record.to_dict()] for key, record in records],
    }


def data_with_response_time_for_slice(
    duration: timedelta, records: Iterable[Record], total_records: int
) -> dict:
    """Response body for bare records."""
    return {
        "Response_time": _micros(duration),
        "Number_of_records": total_records,
        "data": [record.to_dict() for record in records],
    }


def _post(url: str, payload: dict) -> None:
    try:
        response = requests.post(url, json=payload, timeout=30)
    except requests.RequestException as exc:
        print(f"Request error: {exc}", file=sys.stderr)
        return
    print(response.text)


def _seed_one(base: str) -> None:
    rng = random.Random()
    record = fake_record(rng)
    _post(f"{base}/create-record", record.to_dict())
    for _ in range(2):
        state = fake_processing_state(rng)
        _post(f"{base}/create-processing-status/{record.permit_number}", state.to_dict())
    for _ in range(2):
        payment = fake_payment(rng)
        _post(f"{base}/create-payment/{record.permit_number}", payment.to_dict())


def loader(
    host_url: Optional[str] = None,
    count: int = RECORD_COUNT,
    concurrency: int = CONCURRENCY_LIMIT,
) -> None:
    """Post ``count`` fake records, each with two processing states and two payments."""
    if host_url is None:
        load_dotenv(find_dotenv(usecwd=True))
        host_url = os.environ.get("HOST_URL")
    if not host_url:
        raise RuntimeError("HOST_URL must be set")
    base = f"http://{host_url.strip()}"
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
        futures = [pool.submit(_seed_one, base) for _ in range(count)]
        for future in futures:
            future.result()