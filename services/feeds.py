"""Read-only views over the sensor feed CSV."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from models.records import SensorReading
from storage.csv_store import CsvSchema, RecordStore

FEEDS_SCHEMA = CsvSchema(
    filename="feeds.csv",
    columns=("created_at", "entry_id", "field1", "field2", "field3"),
    numeric_columns=frozenset({"field1", "field2", "field3"}),
)

HISTORY_SIZE = 20
RECENT_SIZE = 10


@dataclass
class FeedSnapshot:
    latest: Optional[SensorReading] = None
    history: List[SensorReading] = field(default_factory=list)
    recent: List[SensorReading] = field(default_factory=list)


def _tail(readings: List[SensorReading], count: int) -> List[SensorReading]:
    if count <= 0:
        return []
    return readings[-count:]


class SensorFeedReader:
    """Derives latest/history/recent views; holds no state of its own."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def readings(self) -> List[SensorReading]:
        return [SensorReading.from_row(row) for row in self.store.load(FEEDS_SCHEMA)]

    def latest(self) -> Optional[SensorReading]:
        readings = self.readings()
        return readings[-1] if readings else None

    def history(self, count: int = HISTORY_SIZE) -> List[SensorReading]:
        return _tail(self.readings(), count)

    def recent(self, count: int = RECENT_SIZE) -> List[SensorReading]:
        return list(reversed(_tail(self.readings(), count)))

    def snapshot(
        self,
        history_size: int = HISTORY_SIZE,
        recent_size: int = RECENT_SIZE,
    ) -> FeedSnapshot:
        readings = self.readings()
        if not readings:
            return FeedSnapshot()
        return FeedSnapshot(
            latest=readings[-1],
            history=_tail(readings, history_size),
            recent=list(reversed(_tail(readings, recent_size))),
        )
