"""HTTP interface for the permit store and the command that serves it."""

from __future__ import annotations

import argparse
import os
import time
from collections.abc import Mapping
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv
from flask import Flask, Response, jsonify, request

from permitdb import records as record_ops
from permitdb import tracking
from permitdb.helpers import loader
from permitdb.listing import INVALID_NUMBER, INVALID_STATUS, read_records
from permitdb.models import (
    InvalidInput,
    NotFound,
    Payment,
    PaymentUpdate,
    ProcessingState,
    ProcessingStateUpdate,
    Record,
    RecordUpdate,
    format_datetime,
)
from permitdb.records import MISSING_RANGE
from permitdb.storage import Store

DEFAULT_DATABASE = "database"
_LISTING_MESSAGES = (INVALID_NUMBER, INVALID_STATUS)


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _micros(started: float) -> int:
    return int((time.perf_counter() - started) * 1_000_000)


def _body() -> Any:
    data = request.get_json(silent=True)
    if data is None:
        raise InvalidInput("request body must be JSON")
    return data


def _optional_mapping() -> Optional[Mapping[str, Any]]:
    data = request.get_json(silent=True)
    return data if isinstance(data, Mapping) else None


def _pairs(items) -> list:
    return [[key, value.to_dict()] for key, value in items]


def _show_datetime(value) -> str:
    return format_datetime(value).replace("T", " ")


def _describe(record: Record, duration: int) -> str:
    lines = [
        f"permit_link: {record.permit_link}",
        f"permit_number: {record.permit_number}",
        f"client: {record.client}",
        f"opened_date: {_show_datetime(record.opened)}",
        f"last_updated: {_show_datetime(record.last_updated)}",
        f"status_updated: {_show_datetime(record.status_updated)}",
        f"county: {record.county}",
        f"county_status: {record.county_status}",
        f"manual_status: {record.manual_status}",
        f"address: {record.address}",
        f"Response Time: {duration}",
    ]
    return "\n".join(lines)


def create_app(store: Store) -> Flask:
    """Build the web application serving ``store``."""
    app = Flask(__name__)
    app.json.sort_keys = False

    @app.errorhandler(InvalidInput)
    def _invalid(exc: InvalidInput):
        return _text(str(exc), 400)

    @app.errorhandler(NotFound)
    def _missing(exc: NotFound):
        return _text(str(exc), 404)

    @app.post("/create-record")
    def create_record():
        record = Record.from_dict(_body())
        started = time.perf_counter()
        uuid = record_ops.create_record(store, record)
        return _text(
            f"Successfully Loaded into DataBase, uuid is: {uuid}\n"
            f"Response Time: {_micros(started)}"
        )

    @app.post("/create-processing-status/<permit_number>")
    def create_processing_state(permit_number: str):
        state = ProcessingState.from_dict(_body())
        started = time.perf_counter()
        key = tracking.create_processing_state(store, permit_number, state)
        return _text(
            f"Successfully added processing state for permit number: {permit_number}\n"
            f"Response Time: {_micros(started)}{key}"
        )

    @app.post("/create-payment/<permit_number>")
    def create_payment(permit_number: str):
        payment = Payment.from_dict(_body())
        started = time.perf_counter()
        tracking.create_payment(store, permit_number, payment)
        return _text(
            f"Successfully added payment data for permit_numer: {permit_number}\n"
            f"Response Time: {_micros(started)}"
        )

    @app.get("/read-payment-details/<permit_numbers>")
    def read_payment_details(permit_numbers: str):
        started = time.perf_counter()
        groups = tracking.read_payment_details(store, permit_numbers)
        return jsonify(
            {"Response Time": _micros(started), "Data": [_pairs(group) for group in groups]}
        )

    @app.get("/read-processing-status/<permit_numbers>")
    def read_processing_state(permit_numbers: str):
        started = time.perf_counter()
        groups = tracking.read_processing_states(store, permit_numbers)
        return jsonify(
            {"Response Time": _micros(started), "Data": [_pairs(group) for group in groups]}
        )

    @app.get("/read-record-by-uuid/<key>")
    def read_record_by_uuid(key: str):
        started = time.perf_counter()
        record = record_ops.read_record_by_uuid(store, key)
        return _text(_describe(record, _micros(started)))

    @app.get("/read-records-by-opened-date")
    def read_records_by_opened_date():
        started = time.perf_counter()
        dates = _body()
        if not isinstance(dates, Mapping):
            raise InvalidInput("expected a JSON object")
        try:
            found = record_ops.read_records_by_opened_date(store, dates)
        except InvalidInput as exc:
            if str(exc) == MISSING_RANGE:
                return _text(MISSING_RANGE)
            raise
        return jsonify({"Response Time": _micros(started), "Data": _pairs(found)})

    @app.get("/read-permits-with-filter")
    def read_permit_with_filter():
        started = time.perf_counter()
        try:
            found = record_ops.read_permits_with_filter(store, _optional_mapping())
        except InvalidInput as exc:
            if str(exc) == MISSING_RANGE:
                return _text(MISSING_RANGE)
            raise
        return jsonify({"Response Time": _micros(started), "Data": _pairs(found)})

    @app.get("/read-record")
    def read_record():
        try:
            return jsonify(read_records(store, _optional_mapping()))
        except NotFound as exc:
            return _text(str(exc))
        except InvalidInput as exc:
            if str(exc) in _LISTING_MESSAGES:
                return _text(str(exc))
            raise

    @app.put("/update-record/<uuid>")
    def update_records(uuid: str):
        update = RecordUpdate.from_dict(_body())
        started = time.perf_counter()
        try:
            record_ops.update_record(store, uuid, update)
        except (NotFound, InvalidInput) as exc:
            return _text(str(exc))
        return _text(f"Successfully Updated the Record\nResponse Time: {_micros(started)}")

    @app.put("/update-processing-status/<permit_number>/<last_updated>")
    def update_processing_status(permit_number: str, last_updated: str):
        update = ProcessingStateUpdate.from_dict(_body())
        started = time.perf_counter()
        try:
            tracking.update_processing_state(store, permit_number, last_updated, update)
        except NotFound as exc:
            return _text(str(exc))
        return _text(
            f"Successfully updated the processing state\nResponse Time: {_micros(started)}"
        )

    @app.put("/update-payment-details/<permit_number>/<date>")
    def update_payment_details(permit_number: str, date: str):
        update = PaymentUpdate.from_dict(_body())
        started = time.perf_counter()
        try:
            tracking.update_payment_details(store, permit_number, date, update)
        except NotFound as exc:
            return _text(str(exc))
        return _text(
            f"Successfully updated the processing state\nResponse Time: {_micros(started)}"
        )

    @app.delete("/delete-record/<uuid>")
    def delete_record(uuid: str):
        started = time.perf_counter()
        try:
            record_ops.delete_record(store, uuid)
        except NotFound as exc:
            return _text(str(exc))
        return _text(f"Successfully Deleted the record\nResponse Time: {_micros(started)}")

    @app.get("/load-the-db")
    def load_the_db():
        try:
            loader()
        except Exception:
            return _text("Failed to Load the Data")
        return _text("Successfully Loaded the records")

    return app


def _split_url(parser: argparse.ArgumentParser, url: str) -> tuple[str, int]:
    host, sep, port = url.strip().rpartition(":")
    if not sep or not host or not port.isdigit():
        parser.error(f"URL must look like host:port, got {url!r}")
    return host, int(port)


def main(argv=None) -> None:
    """Serve the permit store over HTTP at the address given by ``URL``."""
    parser = argparse.ArgumentParser(prog="permitdb", description=__doc__)
    parser.add_argument("--database", default=DEFAULT_DATABASE, help="store directory")
    parser.add_argument("--url", help="host:port to bind (default: the URL variable)")
    args = parser.parse_args(argv)

    load_dotenv(find_dotenv(usecwd=True))
    url = args.url or os.environ.get("URL")
    if not url:
        parser.error("URL must be set")
    host, port = _split_url(parser, url)

    with Store(args.database) as store:
        print("Environment Opened Successfully")
        create_app(store).run(host=host, port=port, threaded=True)


if __name__ == "__main__":
    main()