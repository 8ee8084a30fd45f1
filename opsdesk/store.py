"""Session-scoped record lists with whole-list replacement on every change."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping, Optional

from .screens import ListScreen
from .seed import seed_records

LOGGER = logging.getLogger(__name__)

Record = Dict[str, object]


def to_number(value: Optional[str]) -> object:
    text = str(value or "").strip().replace(",", "")
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return 0


def coerce_form(screen: ListScreen, form: Mapping[str, str]) -> Record:
    """Turn submitted form strings into a record for ``screen``.

    Checkboxes are only present in the form when ticked. Choice values outside
    the configured options fall back to the first option.
    """
    record: Record = {}
    for name, _label in screen.columns:
        kind = screen.field_kind(name)
        raw = form.get(name)
        if kind == "bool":
            record[name] = raw is not None and str(raw).strip().lower() in {"1", "on", "true", "yes"}
        elif kind == "number":
            record[name] = to_number(raw)
        elif kind == "choice":
            options = screen.choices[name]
            text = str(raw or "").strip()
            record[name] = text if text in options else options[0]
        else:
            record[name] = str(raw or "").strip()
    return record


class RecordStore:
    """Per-session record lists keyed by screen key.

    Each add, update and delete runs under the store lock.
    """

    def __init__(self, records: Optional[Dict[str, List[Record]]] = None):
        self._records: Dict[str, List[Record]] = records if records is not None else seed_records()
        self._lock = threading.Lock()

    def records(self, screen_key: str) -> List[Record]:
        return self._records.get(screen_key, [])

    def counts(self) -> Dict[str, int]:
        return {key: len(rows) for key, rows in self._records.items()}

    def get(self, screen_key: str, record_id: int) -> Record:
        for record in self.records(screen_key):
            if record.get("id") == record_id:
                return record
        raise KeyError(f"{screen_key} record {record_id} not found")

    def add(self, screen_key: str, values: Mapping[str, object]) -> Record:
        record = dict(values)
        with self._lock:
            current = self.records(screen_key)
            next_id = max([int(r.get("id") or 0) for r in current] or [0]) + 1
            record["id"] = next_id
            self._records[screen_key] = current + [record]
        LOGGER.info("Added %s record %s", screen_key, next_id)
        return record

    def update(self, screen_key: str, record_id: int, values: Mapping[str, object]) -> Record:
        updated = dict(values)
        updated["id"] = record_id
        with self._lock:
            self.get(screen_key, record_id)
            self._records[screen_key] = [updated if r.get("id") == record_id else r for r in self.records(screen_key)]
        LOGGER.info("Updated %s record %s", screen_key, record_id)
        return updated

    def delete(self, screen_key: str, record_id: int) -> None:
        with self._lock:
            self.get(screen_key, record_id)
            self._records[screen_key] = [r for r in self.records(screen_key) if r.get("id") != record_id]
        LOGGER.info("Deleted %s record %s", screen_key, record_id)
