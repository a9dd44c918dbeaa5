# src/marketcache/adapters/persistence/file_store.py
"""
File Store - Durable Record Persistence

This module implements the durable tier: one record per identity, created
with idempotent find-or-create semantics and never expired. Records live in
memory behind a lock and, when a path is given, are mirrored to a JSON file
with an atomic write after every insert.

Files that USE this module:
- marketcache.app (builds the rate and price record stores)
- marketcache.application.lookup (reads and upserts records)
- tests.* (in-memory stores stand in for the durable tier)

Files that this module USES:
- marketcache.domain (Rate/Price models and StoreError)
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from marketcache.domain.errors import StoreError
from marketcache.domain.models import Price, Rate

log = logging.getLogger(__name__)

R = TypeVar("R")
Identity = Tuple[Hashable, ...]


def _identity_key(identity: Identity) -> str:
    """Flatten an identity tuple into a JSON object key."""
    parts = []
    for part in identity:
        if part is None:
            parts.append("")
        elif isinstance(part, date):
            parts.append(part.isoformat())
        else:
            parts.append(str(part))
    return "|".join(parts)


class JsonRecordStore(Generic[R]):
    """Thread-safe record store keyed by identity, optionally backed by a JSON file."""

    def __init__(
        self,
        path: Optional[Path],
        identity_of: Callable[[R], Identity],
        to_json: Callable[[R], Dict[str, Any]],
        from_json: Callable[[Dict[str, Any]], R],
    ):
        """
        Initialize record store.

        Args:
            path: JSON file to mirror records to, or None for memory only
            identity_of: Returns a record's identity tuple
            to_json: Serializes a record
            from_json: Deserializes a record
        """
        self.path = Path(path) if path is not None else None
        self._identity_of = identity_of
        self._to_json = to_json
        self._from_json = from_json
        self._records: Dict[str, R] = {}
        self._lock = threading.Lock()
        if self.path is not None:
            self._load()

    def find_by(self, identity: Identity) -> Optional[R]:
        with self._lock:
            return self._records.get(_identity_key(identity))

    def find_or_create(self, identity: Identity, value: R) -> R:
        """
        Return the record for `identity`, storing `value` if there is none.

        Concurrent identical calls yield one record; an existing record is
        never overwritten.

        Raises:
            ValueError: If `value` does not have the given identity
            StoreError: If the backing file cannot be written
        """
        if self._identity_of(value) != tuple(identity):
            raise ValueError(f"Record identity {self._identity_of(value)} does not match {identity}")

        key = _identity_key(identity)
        with self._lock:
            existing = self._records.get(key)
            if existing is not None:
                return existing
            self._records[key] = value
            if self.path is not None:
                try:
                    self._save()
                except StoreError:
                    del self._records[key]
                    raise
            return value

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def _load(self) -> None:
        """
        Load records from disk.

        A corrupt file is backed up to *.corrupt and the store starts empty.
        """
        p = self.path
        if not p.exists():
            return
        try:
            with p.open("r", encoding="utf-8") as f:
                data = json.load(f)
            for item in data.get("records", []):
                record = self._from_json(item)
                self._records[_identity_key(self._identity_of(record))] = record
            log.debug("Loaded %d records from %s", len(self._records), p)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            backup_path = p.with_suffix(p.suffix + ".corrupt")
            log.warning("Record file %s unreadable, backed up to %s: %s", p, backup_path, e)
            shutil.copy2(p, backup_path)
            self._records.clear()

    def _save(self) -> None:
        """
        Write all records to disk using temp file + atomic rename.

        Caller holds the lock.
        """
        p = self.path
        p.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(suffix=".json.tmp", dir=str(p.parent), text=True)
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(
                    {"records": [self._to_json(r) for r in self._records.values()]},
                    f,
                    ensure_ascii=False,
                    indent=2,
                )
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, str(p))
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StoreError(f"Failed to save record file {p}: {e}") from e


def rate_record_store(path: Optional[Path] = None) -> JsonRecordStore[Rate]:
    """Durable store for exchange rates, identity (from, to, date)."""
    return JsonRecordStore(path, lambda r: r.identity, Rate.to_json, Rate.from_json)


def price_record_store(path: Optional[Path] = None) -> JsonRecordStore[Price]:
    """Durable store for security prices, identity (symbol, exchange, date)."""
    return JsonRecordStore(path, lambda p: p.identity, Price.to_json, Price.from_json)
