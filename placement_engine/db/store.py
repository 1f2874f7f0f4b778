"""
Record Store - transactional document interface used by the engine.

Every record lives in a named collection under a string key and carries a
`_version` counter. A Transaction remembers the version of everything it
reads and buffers every write; commit succeeds only if none of those
versions moved in the meantime (optimistic concurrency). Otherwise it
raises ConflictRetryable and nothing is applied.

Implementations:
- InMemoryRecordStore: process-local, used by tests and `record_store=memory`
- MongoRecordStore (db/mongo_store.py): MongoDB sessions + version CAS
"""

import copy
import threading
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from placement_engine.core.exceptions import ConflictRetryable, NotFound, OperationTimeout
from placement_engine.core.logger import get_logger
from placement_engine.utils.retry import deadline_expired

logger = get_logger()

VERSION_FIELD = "_version"

# Write operations buffered by a transaction
INSERT = "insert"
UPDATE = "update"
UPSERT = "upsert"
DELETE = "delete"


def _public(key: str, doc: Optional[dict]) -> Optional[dict]:
    """Strip bookkeeping fields and expose the key as `id`."""
    if doc is None:
        return None
    out = {k: v for k, v in doc.items() if k not in (VERSION_FIELD, "_id")}
    out["id"] = key
    return out


def _matches(doc: dict, where: Optional[dict], contains: Optional[dict]) -> bool:
    for field, value in (where or {}).items():
        if doc.get(field) != value:
            return False
    for field, value in (contains or {}).items():
        if value not in (doc.get(field) or []):
            return False
    return True


class Transaction:
    """
    Unit of work over a RecordStore.

    Reads go straight to the store and record versions; writes are
    buffered until commit. Pending writes are overlaid on later reads of
    the same record so a transaction sees its own changes.
    """

    def __init__(self, store: "RecordStore", deadline: Optional[float] = None):
        self.store = store
        self.deadline = deadline
        self.reads: Dict[Tuple[str, str], int] = {}
        self.writes: "OrderedDict[Tuple[str, str], Tuple[str, dict]]" = OrderedDict()
        self.committed = False

    # ---------- reads ----------

    def get(self, collection: str, key: str) -> Optional[dict]:
        self._check_deadline()
        doc = self.store._read(collection, key)
        self._remember(collection, key, doc)
        return self._overlay(collection, key, doc)

    def find(
        self,
        collection: str,
        where: Optional[dict] = None,
        contains: Optional[dict] = None,
    ) -> List[dict]:
        """Equality (`where`) and array-membership (`contains`) query."""
        self._check_deadline()
        results = []
        for key, doc in self.store._query(collection, where, contains):
            self._remember(collection, key, doc)
            overlaid = self._overlay(collection, key, doc)
            if overlaid is not None:
                results.append(overlaid)
        return results

    # ---------- writes ----------

    def insert(self, collection: str, doc: dict, key: Optional[str] = None) -> str:
        key = key or self.store.new_key()
        self.reads.setdefault((collection, key), 0)
        self.writes[(collection, key)] = (INSERT, copy.deepcopy(doc))
        return key

    def update(self, collection: str, key: str, changes: dict):
        """Buffer a partial update. Unread records are read now (blind write)."""
        if (collection, key) not in self.reads:
            doc = self.store._read(collection, key)
            self._remember(collection, key, doc)
            if doc is None:
                raise NotFound(collection, key)
        op, pending = self.writes.get((collection, key), (UPDATE, {}))
        if op == DELETE:
            raise NotFound(collection, key)
        merged = dict(pending)
        merged.update(copy.deepcopy(changes))
        self.writes[(collection, key)] = (op, merged)

    def upsert(self, collection: str, key: str, fields: dict):
        """Merge `fields` into the record, creating it if absent."""
        if (collection, key) not in self.reads:
            self._remember(collection, key, self.store._read(collection, key))
        op, pending = self.writes.get((collection, key), (UPSERT, {}))
        merged = dict(pending)
        merged.update(copy.deepcopy(fields))
        self.writes[(collection, key)] = (op if op != DELETE else UPSERT, merged)

    def touch(self, collection: str, key: str, defaults: Optional[dict] = None):
        """
        Read a guard record and bump its version on commit.

        Two transactions touching the same guard cannot both commit, which
        serialises operations that only read query results.
        """
        self.get(collection, key)
        self.upsert(collection, key, defaults or {})

    def delete(self, collection: str, key: str):
        if (collection, key) not in self.reads:
            self._remember(collection, key, self.store._read(collection, key))
        self.writes[(collection, key)] = (DELETE, {})

    # ---------- lifecycle ----------

    def commit(self):
        if self.committed:
            return
        self._check_deadline()
        if self.writes:
            self.store._commit(self)
            logger.record_commit()
        self.committed = True

    def _check_deadline(self):
        if deadline_expired(self.deadline):
            raise OperationTimeout()

    def _remember(self, collection: str, key: str, doc: Optional[dict]):
        version = doc.get(VERSION_FIELD, 0) if doc is not None else 0
        self.reads.setdefault((collection, key), version)

    def _overlay(self, collection: str, key: str, doc: Optional[dict]) -> Optional[dict]:
        pending = self.writes.get((collection, key))
        if pending is None:
            return _public(key, doc)
        op, fields = pending
        if op == DELETE:
            return None
        merged = dict(doc or {}) if op != INSERT else {}
        merged.update(copy.deepcopy(fields))
        return _public(key, merged)


class RecordStore(ABC):
    """
    Abstract transactional store.

    Implementations provide three primitives: `_read`, `_query` and
    `_commit`. Everything else is expressed through transactions.
    """

    @abstractmethod
    def _read(self, collection: str, key: str) -> Optional[dict]:
        """Return the raw stored document (with `_version`) or None."""

    @abstractmethod
    def _query(
        self, collection: str, where: Optional[dict], contains: Optional[dict]
    ) -> Iterator[Tuple[str, dict]]:
        """Yield (key, raw document) pairs in stable insertion order."""

    @abstractmethod
    def _commit(self, tx: Transaction):
        """Atomically validate `tx.reads` and apply `tx.writes`."""

    def new_key(self) -> str:
        return uuid.uuid4().hex

    @contextmanager
    def transaction(self, deadline: Optional[float] = None):
        """
        Context manager for a unit of work.
        Usage:
            with store.transaction() as tx:
                doc = tx.get("admissions", admission_id)
                tx.update("admissions", admission_id, {...})
        Commits on normal exit; an exception discards every buffered write.
        """
        tx = Transaction(self, deadline=deadline)
        yield tx
        tx.commit()

    # ---------- single-record conveniences ----------

    def get(self, collection: str, key: str) -> Optional[dict]:
        return _public(key, self._read(collection, key))

    def find(
        self,
        collection: str,
        where: Optional[dict] = None,
        contains: Optional[dict] = None,
    ) -> List[dict]:
        return [_public(key, doc) for key, doc in self._query(collection, where, contains)]

    def insert(self, collection: str, doc: dict, key: Optional[str] = None) -> str:
        with self.transaction() as tx:
            return tx.insert(collection, doc, key=key)

    def update(self, collection: str, key: str, changes: dict):
        with self.transaction() as tx:
            tx.update(collection, key, changes)

    def merge(self, collection: str, key: str, fields: dict):
        with self.transaction() as tx:
            tx.upsert(collection, key, fields)

    def delete(self, collection: str, key: str) -> bool:
        with self.transaction() as tx:
            if tx.get(collection, key) is None:
                return False
            tx.delete(collection, key)
        return True

    def ping(self) -> bool:
        return True


class InMemoryRecordStore(RecordStore):
    """
    Process-local store. The lock guards only the store's own data
    structures and is never held while engine code runs.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.Lock()

    def _read(self, collection: str, key: str) -> Optional[dict]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(key)
            return copy.deepcopy(doc)

    def _query(self, collection, where, contains):
        with self._lock:
            snapshot = [
                (key, copy.deepcopy(doc))
                for key, doc in self._collections.get(collection, {}).items()
                if _matches(doc, where, contains)
            ]
        return iter(snapshot)

    def _commit(self, tx: Transaction):
        with self._lock:
            for (collection, key), expected in tx.reads.items():
                current = self._collections.get(collection, {}).get(key)
                version = current.get(VERSION_FIELD, 0) if current is not None else 0
                if version != expected:
                    raise ConflictRetryable(collection, key)

            for (collection, key), (op, fields) in tx.writes.items():
                records = self._collections.setdefault(collection, {})
                current = records.get(key)
                if op == DELETE:
                    records.pop(key, None)
                    continue
                if op == INSERT or current is None:
                    doc = {}
                    version = 0
                else:
                    doc = current
                    version = current.get(VERSION_FIELD, 0)
                doc.update(copy.deepcopy(fields))
                doc[VERSION_FIELD] = version + 1
                records[key] = doc

    def clear(self):
        with self._lock:
            self._collections.clear()
