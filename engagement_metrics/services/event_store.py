import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator, Tuple

import structlog
from pydantic import ValidationError

from engagement_metrics.core.errors import InvalidArgument
from engagement_metrics.schemas.event import Event

logger = structlog.get_logger()

REQUIRED_HEADERS = {'occurred_on', 'account_id', 'user_id'}


def read_events_csv(file_path: str | Path) -> Iterator[Event]:
    """
    Read events from a CSV file

    CSV Format:
        occurred_on,account_id,user_id

    Raises:
        InvalidArgument: missing file, missing headers or a malformed row
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise InvalidArgument(f"File not found: {file_path}")

    raw = file_path.read_bytes()
    try:
        # utf-8-sig drops a leading byte-order mark
        text = raw.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        line = raw[:e.start].count(b'\n') + 1
        raise InvalidArgument(f"{file_path}:{line}: not valid UTF-8: {e.reason}") from e

    reader = csv.DictReader(io.StringIO(text, newline=''))

    if not REQUIRED_HEADERS.issubset(reader.fieldnames or []):
        raise InvalidArgument(
            f"CSV must have headers {sorted(REQUIRED_HEADERS)}, found {reader.fieldnames}"
        )

    for row in reader:
        try:
            yield Event(
                occurred_on=date.fromisoformat(row['occurred_on'].strip()),
                account_id=row['account_id'],
                user_id=row['user_id']
            )
        except (AttributeError, ValueError, ValidationError) as e:
            raise InvalidArgument(
                f"{file_path}:{reader.line_num}: invalid event row {row}: {e}"
            ) from e


class EventStore:
    """Read-only in-memory event collection"""

    def __init__(self, events: Iterable[Event] = ()):
        self._events: Tuple[Event, ...] = tuple(events)

    @classmethod
    def from_csv(cls, file_path: str | Path) -> "EventStore":
        store = cls(read_events_csv(file_path))
        logger.info("event_store_loaded", path=str(file_path), count=len(store))
        return store

    @property
    def events(self) -> Tuple[Event, ...]:
        return self._events

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)
