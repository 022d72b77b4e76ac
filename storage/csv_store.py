"""Whole-file CSV persistence for flat records under a fixed column schema."""

from __future__ import annotations

import csv
import logging
import math
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Callable, Dict, Iterable, List, Protocol, TypeVar

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
T = TypeVar("T")


class StorageError(Exception):
    """Raised when a backing file cannot be read or written."""


@dataclass(frozen=True)
class CsvSchema:
    """Column layout of one CSV file.

    ``columns`` is the header written on every save, in order. Columns listed
    in ``numeric_columns`` load as floats, with unusable cells read as 0.0.
    """

    filename: str
    columns: tuple[str, ...]
    numeric_columns: frozenset[str] = field(default_factory=frozenset)

    def coerce(self, column: str, raw: str | None) -> Any:
        if column not in self.numeric_columns:
            return raw if raw is not None else ""
        try:
            value = float((raw or "").strip())
        except ValueError:
            return 0.0
        return value if math.isfinite(value) else 0.0


class RecordStore(Protocol):
    def load(self, schema: CsvSchema) -> List[Record]: ...

    def save(self, schema: CsvSchema, records: Iterable[Record]) -> None: ...

    def update(self, schema: CsvSchema, mutate: Callable[[List[Record]], T]) -> T: ...


class CsvRecordStore:
    """Reads and rewrites whole CSV files below ``root_path``.

    Each file has its own re-entrant lock, so ``update`` performs a
    read-modify-write without losing concurrent changes made in this process.
    """

    def __init__(self, root_path: Path) -> None:
        self.root_path = root_path
        self._locks: Dict[str, RLock] = {}
        self._locks_guard = Lock()

    def path_for(self, schema: CsvSchema) -> Path:
        return self.root_path / schema.filename

    def load(self, schema: CsvSchema) -> List[Record]:
        path = self.path_for(schema)
        with self._lock_for(schema):
            if not path.exists():
                return []
            try:
                with path.open("r", encoding="utf-8", newline="") as handle:
                    reader = csv.DictReader(handle)
                    records = [
                        {column: schema.coerce(column, row.get(column)) for column in schema.columns}
                        for row in reader
                        if any((value or "").strip() for value in row.values() if isinstance(value, str))
                    ]
            except (OSError, csv.Error, UnicodeDecodeError) as exc:
                raise StorageError(f"Failed to read {schema.filename}: {exc}") from exc

        logger.debug(
            "Read CSV rows",
            extra={"file_name": schema.filename, "row_count": len(records)},
        )
        return records

    def save(self, schema: CsvSchema, records: Iterable[Record]) -> None:
        path = self.path_for(schema)
        with self._lock_for(schema):
            rows = list(records)
            tmp_name: str | None = None
            try:
                self.root_path.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    newline="",
                    dir=self.root_path,
                    prefix=f".{schema.filename}.",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    tmp_name = handle.name
                    writer = csv.DictWriter(
                        handle,
                        fieldnames=list(schema.columns),
                        extrasaction="ignore",
                    )
                    writer.writeheader()
                    writer.writerows(rows)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except (OSError, csv.Error) as exc:
                if tmp_name is not None:
                    Path(tmp_name).unlink(missing_ok=True)
                raise StorageError(f"Failed to write {schema.filename}: {exc}") from exc

        logger.info(
            "Wrote CSV rows",
            extra={"file_name": schema.filename, "row_count": len(rows)},
        )

    def update(self, schema: CsvSchema, mutate: Callable[[List[Record]], T]) -> T:
        """Load, apply ``mutate`` in place and save, all under the file lock.

        Nothing is written when ``mutate`` raises.
        """
        with self._lock_for(schema):
            records = self.load(schema)
            result = mutate(records)
            self.save(schema, records)
            return result

    def ensure(self, schema: CsvSchema) -> bool:
        """Create a header-only file if none exists; report whether it did."""
        with self._lock_for(schema):
            if self.path_for(schema).exists():
                return False
            self.save(schema, [])
            return True

    def _lock_for(self, schema: CsvSchema) -> RLock:
        with self._locks_guard:
            lock = self._locks.get(schema.filename)
            if lock is None:
                lock = self._locks[schema.filename] = RLock()
            return lock
