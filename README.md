# permitdb

permitdb is a small HTTP service that keeps permit records, their processing
states and their payments in an LMDB database. Records are indexed by client,
county and county status, and can be listed, paged, sorted and filtered by
opened date.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

The server reads its listen address, in the form `host:port`, from the `URL`
environment variable, which may also be set in a `.env` file found from the
working directory:

```
URL=127.0.0.1:8080
```

Then start it:

```
permitdb
```

Options:

- `--url host:port` binds to this address instead of the one in `URL`.
- `--database DIR` keeps the store in `DIR` (default: `database` under the
  current directory). The directory is created when it does not exist.

The server is Flask's own development server, run with one thread per request.

## Endpoints

| Method | Path | Purpose |
| ------ | ---- | ------- |
| POST | `/create-record` | store a new permit record; replies with its key |
| GET | `/read-record-by-uuid/<key>` | show one record as text |
| GET | `/read-record` | list records; JSON body may hold `page`, `records_per_page`, `sort` (`asc`/`dsc`), `sort_key`, `county`, `client`, `county_status` |
| GET | `/read-records-by-opened-date` | records opened between `start_date` and `end_date` (`YYYY-MM-DD`, both inclusive) |
| GET | `/read-permits-with-filter` | as above, optionally narrowed by `county`, `county_status` and `client` |
| PUT | `/update-record/<key>` | change some fields of a record |
| DELETE | `/delete-record/<key>` | remove a record |
| POST | `/create-processing-status/<permit_number>` | add a processing state |
| GET | `/read-processing-status/<numbers>` | processing states for comma-separated permit numbers |
| PUT | `/update-processing-status/<permit_number>/<last_modified>` | change a processing state |
| POST | `/create-payment/<permit_number>` | add a payment |
| GET | `/read-payment-details/<numbers>` | payments for comma-separated permit numbers |
| PUT | `/update-payment-details/<permit_number>/<date>` | change a payment |
| GET | `/load-the-db` | post generated sample data to the server named by `HOST_URL` |

A record looks like this:

```json
{
  "permit_link": "link",
  "permit_number": "P-1",
  "client": "a",
  "opened": "2024-03-01T10:00:00",
  "last_updated": "2024-03-02T10:00:00",
  "status_updated": "2024-03-03T10:00:00",
  "county": "one",
  "county_status": "Active",
  "manual_status": "Pending",
  "address": "1 Main Street"
}
```

Statuses are `Active`, `Inactive`, `Pending`, `Closed` and `UnderReview`;
processing statuses are `ApprovedWithConditions`, `PendingAdditionalReview`
and `RevisionsReceived`.

Timestamps are ISO text, `T` or space separated, with an optional fraction.
A record is stored under the key `<opened>-<uuid4>`, so the date queries find
records by the day their key starts with. Processing states are keyed
`<permit_number>-<last_modified>` and payments `<permit_number>-<date>`; the
update endpoints take the timestamp part of that key in the path. In
`/update-record`, `last_updated` and `status_updated` must be given as
`YYYY-MM-DDTHH:MM:SS` with an optional fraction.

Listing without filters goes through the records in key order, 50 to a page
unless `records_per_page` says otherwise. With `county`, `client` and
`county_status` all given, the indexed records are sorted by `sort_key`
(`opened`, `last_updated`, `status_updated` or `manual_status`; `opened` by
default) and cut to `records_per_page`.

Malformed request bodies are answered with status 400 and a plain-text
message; an unknown key in `/read-record-by-uuid` with status 404.

## Using it from Python

```python
from permitdb.storage import open_store
from permitdb.models import Record
from permitdb.records import create_record, read_record_by_uuid

data = {
    "permit_link": "link",
    "permit_number": "P-1",
    "client": "a",
    "opened": "2024-03-01T10:00:00",
    "last_updated": "2024-03-02T10:00:00",
    "status_updated": "2024-03-03T10:00:00",
    "county": "one",
    "county_status": "Active",
    "manual_status": "Pending",
    "address": "1 Main Street",
}

with open_store("database") as store:
    key = create_record(store, Record.from_dict(data))
    print(read_record_by_uuid(store, key))
```

- `permitdb.records`: `create_record`, `read_record_by_uuid`, `update_record`,
  `delete_record`, `read_records_by_opened_date`, `read_permits_with_filter`.
- `permitdb.listing.read_records(store, query)`: paged and index-filtered
  listing, returning the response body as a dict.
- `permitdb.tracking`: `create_processing_state`, `read_processing_states`,
  `update_processing_state`, `create_payment`, `read_payment_details`,
  `update_payment_details`.
- `permitdb.helpers`: `fake_record`, `fake_processing_state`, `fake_payment`
  for sample data, and `loader(host_url, count, concurrency)` to post it to a
  running server.

Missing entries raise `permitdb.models.NotFound`; bad input raises
`permitdb.models.InvalidInput`.

`permitdb.app.create_app(store)` builds the Flask application around an open
store, for embedding it in another WSGI server.

## What it does not do

There is no authentication or access control: anyone who can reach the
address can read and change every record. The sample-data loader does not
write to the store directly; it needs a server already running at `HOST_URL`.