"""Data types for permit records, processing states, payments and index keys."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional


class NotFound(LookupError):
    """A requested entry does not exist."""


class InvalidInput(ValueError):
    """Input data could not be understood."""


class _OrderedEnum(Enum):
    """Enum whose members order by declaration and print as their value."""

    def __str__(self) -> str:
        return self.value

    def _rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._rank() < other._rank()

    def __le__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._rank() <= other._rank()

    def __gt__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._rank() > other._rank()

    def __ge__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._rank() >= other._rank()

    @classmethod
    def _parse_name(cls, text):
        if isinstance(text, str):
            wanted = text.lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        raise InvalidInput(f"{text!r} is not a valid {cls.__name__}")

    @classmethod
    def _from_json(cls, value, name: str):
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise InvalidInput(f"field `{name}`: unknown variant {value!r}") from None


class Status(_OrderedEnum):
    """County status of a permit."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    PENDING = "Pending"
    CLOSED = "Closed"
    UNDER_REVIEW = "UnderReview"

    @classmethod
    def parse(cls, text) -> "Status":
        """Parse a status name, ignoring case."""
        return cls._parse_name(text)


class ProcessStatus(_OrderedEnum):
    """Processing stage of a permit."""

    APPROVED_WITH_CONDITIONS = "ApprovedWithConditions"
    PENDING_ADDITIONAL_REVIEW = "PendingAdditionalReview"
    REVISIONS_RECEIVED = "RevisionsReceived"

    @classmethod
    def parse(cls, text) -> "ProcessStatus":
        """Parse a processing stage name, ignoring case."""
        return cls._parse_name(text)


_DATETIME_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?"
)


def format_datetime(value: datetime) -> str:
    """Render a naive timestamp as ISO text with a minimal 3- or 6-digit fraction."""
    base = value.replace(microsecond=0, tzinfo=None).isoformat(timespec="seconds")
    micros = value.microsecond
    if micros == 0:
        return base
    if micros % 1000 == 0:
        return f"{base}.{micros // 1000:03d}"
    return f"{base}.{micros:06d}"


def parse_datetime(text) -> datetime:
    """Parse ISO timestamp text (``T`` or space separated, optional fraction)."""
    if not isinstance(text, str):
        raise InvalidInput(f"expected a timestamp string, got {text!r}")
    match = _DATETIME_RE.fullmatch(text)
    if match is None:
        raise InvalidInput(f"invalid timestamp: {text!r}")
    year, month, day, hour, minute, second, fraction = match.groups()
    micros = int((fraction or "").ljust(6, "0")[:6])
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micros
        )
    except ValueError as exc:
        raise InvalidInput(f"invalid timestamp: {text!r}") from exc


def _mapping(data) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise InvalidInput("expected a JSON object")
    return data


def _take(
    data: Mapping[str, Any],
    name: str,
    convert: Callable[[Any, str], Any],
    optional: bool = False,
):
    if name not in data:
        if optional:
            return None
        raise InvalidInput(f"missing field `{name}`")
    value = data[name]
    if optional and value is None:
        return None
    return convert(value, name)


def _as_str(value, name: str) -> str:
    if not isinstance(value, str):
        raise InvalidInput(f"field `{name}` must be a string")
    return value


def _as_datetime(value, name: str) -> datetime:
    try:
        return parse_datetime(value)
    except InvalidInput as exc:
        raise InvalidInput(f"field `{name}`: {exc}") from None


def _as_u64(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < 2**64:
        raise InvalidInput(f"field `{name}` must be an unsigned 64-bit integer")
    return value


@dataclass(frozen=True)
class IndexKey:
    """Key of the composite index: client, county and county status."""

    client: str
    county: str
    county_status: Status

    def to_bytes(self) -> bytes:
        payload = [self.client, self.county, self.county_status.value]
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "IndexKey":
        try:
            client, county, status = json.loads(bytes(raw).decode("utf-8"))
        except (UnicodeDecodeError, ValueError, TypeError) as exc:
            raise InvalidInput("malformed index key") from exc
        return cls(
            client=_as_str(client, "client"),
            county=_as_str(county, "county"),
            county_status=Status._from_json(status, "county_status"),
        )


@dataclass
class Record:
    """A permit record."""

    permit_link: str
    permit_number: str
    client: str
    opened: datetime
    last_updated: datetime
    status_updated: datetime
    county: str
    county_status: Status
    manual_status: Status
    address: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "permit_link": self.permit_link,
            "permit_number": self.permit_number,
            "client": self.client,
            "opened": format_datetime(self.opened),
            "last_updated": format_datetime(self.last_updated),
            "status_updated": format_datetime(self.status_updated),
            "county": self.county,
            "county_status": self.county_status.value,
            "manual_status": self.manual_status.value,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data) -> "Record":
        data = _mapping(data)
        return cls(
            permit_link=_take(data, "permit_link", _as_str),
            permit_number=_take(data, "permit_number", _as_str),
            client=_take(data, "client", _as_str),
            opened=_take(data, "opened", _as_datetime),
            last_updated=_take(data, "last_updated", _as_datetime),
            status_updated=_take(data, "status_updated", _as_datetime),
            county=_take(data, "county", _as_str),
            county_status=_take(data, "county_status", Status._from_json),
            manual_status=_take(data, "manual_status", Status._from_json),
            address=_take(data, "address", _as_str),
        )

    def index_key(self) -> IndexKey:
        return IndexKey(client=self.client, county=self.county, county_status=self.county_status)


@dataclass
class RecordUpdate:
    """Partial update of a record; timestamps stay as raw text until applied."""

    permit_link: Optional[str] = None
    permit_number: Optional[str] = None
    last_updated: Optional[str] = None
    status_updated: Optional[str] = None
    client: Optional[str] = None
    county: Optional[str] = None
    county_status: Optional[Status] = None
    manual_status: Optional[Status] = None
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data) -> "RecordUpdate":
        data = _mapping(data)
        return cls(
            permit_link=_take(data, "permit_link", _as_str, optional=True),
            permit_number=_take(data, "permit_number", _as_str, optional=True),
            last_updated=_take(data, "last_updated", _as_str, optional=True),
            status_updated=_take(data, "status_updated", _as_str, optional=True),
            client=_take(data, "client", _as_str, optional=True),
            county=_take(data, "county", _as_str, optional=True),
            county_status=_take(data, "county_status", Status._from_json, optional=True),
            manual_status=_take(data, "manual_status", Status._from_json, optional=True),
            address=_take(data, "address", _as_str, optional=True),
        )


@dataclass
class ProcessingState:
    """Processing state of a permit at a point in time."""

    processing_status: ProcessStatus
    due_date: datetime
    assigned_to: str
    last_modified: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "processing_status": self.processing_status.value,
            "due_date": format_datetime(self.due_date),
            "assigned_to": self.assigned_to,
            "last_modified": format_datetime(self.last_modified),
        }

    @classmethod
    def from_dict(cls, data) -> "ProcessingState":
        data = _mapping(data)
        return cls(
            processing_status=_take(data, "processing_status", ProcessStatus._from_json),
            due_date=_take(data, "due_date", _as_datetime),
            assigned_to=_take(data, "assigned_to", _as_str),
            last_modified=_take(data, "last_modified", _as_datetime),
        )


@dataclass
class ProcessingStateUpdate:
    """Partial update of a processing state."""

    processing_status: Optional[ProcessStatus] = None
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    last_modified: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data) -> "ProcessingStateUpdate":
        data = _mapping(data)
        return cls(
            processing_status=_take(
                data, "processing_status", ProcessStatus._from_json, optional=True
            ),
            due_date=_take(data, "due_date", _as_datetime, optional=True),
            assigned_to=_take(data, "assigned_to", _as_str, optional=True),
            last_modified=_take(data, "last_modified", _as_datetime, optional=True),
        )


@dataclass
class Payment:
    """A payment made for a permit."""

    payment: str
    date: datetime
    amount: int
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment": self.payment,
            "date": format_datetime(self.date),
            "amount": self.amount,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data) -> "Payment":
        data = _mapping(data)
        return cls(
            payment=_take(data, "payment", _as_str),
            date=_take(data, "date", _as_datetime),
            amount=_take(data, "amount", _as_u64),
            status=_take(data, "status", _as_str),
        )


@dataclass
class PaymentUpdate:
    """Partial update of a payment."""

    payment: Optional[str] = None
    date: Optional[datetime] = None
    amount: Optional[int] = None
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data) -> "PaymentUpdate":
        data = _mapping(data)
        return cls(
            payment=_take(data, "payment", _as_str, optional=True),
            date=_take(data, "date", _as_datetime, optional=True),
            amount=_take(data, "amount", _as_u64, optional=True),
            status=_take(data, "status", _as_str, optional=True),
        )