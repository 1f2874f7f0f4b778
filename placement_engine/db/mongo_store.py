"""
MongoDB-backed RecordStore.

Each record is a document whose `_id` is the record key. Commits run
inside a client session transaction: records read but not written are
re-checked for their `_version`, written records use a compare-and-swap
filter on `_version`. Any mismatch aborts the whole session transaction
and surfaces as ConflictRetryable.
"""

from typing import Iterator, Optional, Tuple

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from placement_engine.core.exceptions import ConflictRetryable, StoreUnavailable
from placement_engine.core.logger import get_logger
from placement_engine.db.store import (
    DELETE,
    INSERT,
    VERSION_FIELD,
    RecordStore,
    Transaction,
)

logger = get_logger()


class MongoRecordStore(RecordStore):
    """RecordStore over a pymongo Database."""

    def __init__(self, db: Database):
        self.db = db
        self.client = db.client

    def new_key(self) -> str:
        # ObjectIds sort by creation time, which keeps scans in insertion order
        return str(ObjectId())

    def _read(self, collection: str, key: str) -> Optional[dict]:
        try:
            return self.db[collection].find_one({"_id": key})
        except PyMongoError as e:
            raise StoreUnavailable(f"Read failed on {collection}") from e

    def _query(self, collection, where, contains) -> Iterator[Tuple[str, dict]]:
        # Array-membership is plain equality on an array field in MongoDB
        mongo_filter = dict(where or {})
        mongo_filter.update(contains or {})
        try:
            docs = list(self.db[collection].find(mongo_filter).sort("_id", 1))
        except PyMongoError as e:
            raise StoreUnavailable(f"Query failed on {collection}") from e
        return iter([(doc["_id"], doc) for doc in docs])

    def _commit(self, tx: Transaction):
        try:
            with self.client.start_session() as session:
                with session.start_transaction():
                    self._verify_reads(tx, session)
                    self._apply_writes(tx, session)
        except ConflictRetryable:
            raise
        except DuplicateKeyError as e:
            raise ConflictRetryable("insert", str(e.details.get("keyValue") if e.details else "")) from e
        except PyMongoError as e:
            if e.has_error_label("TransientTransactionError"):
                raise ConflictRetryable("transaction", "transient") from e
            logger.error("MongoDB commit failed", error=str(e))
            raise StoreUnavailable("Record store commit failed") from e

    def _verify_reads(self, tx: Transaction, session):
        for (collection, key), expected in tx.reads.items():
            if (collection, key) in tx.writes:
                continue  # checked by the CAS filter below
            current = self.db[collection].find_one(
                {"_id": key}, {VERSION_FIELD: 1}, session=session
            )
            version = current.get(VERSION_FIELD, 0) if current is not None else 0
            if version != expected:
                raise ConflictRetryable(collection, key)

    def _apply_writes(self, tx: Transaction, session):
        for (collection, key), (op, fields) in tx.writes.items():
            expected = tx.reads.get((collection, key), 0)
            coll = self.db[collection]

            if op == DELETE:
                result = coll.delete_one({"_id": key, VERSION_FIELD: expected}, session=session)
                if expected and result.deleted_count == 0:
                    raise ConflictRetryable(collection, key)
                continue

            if op == INSERT or expected == 0:
                doc = dict(fields)
                doc["_id"] = key
                doc[VERSION_FIELD] = 1
                coll.insert_one(doc, session=session)
                continue

            result = coll.update_one(
                {"_id": key, VERSION_FIELD: expected},
                {"$set": fields, "$inc": {VERSION_FIELD: 1}},
                session=session,
            )
            if result.matched_count == 0:
                raise ConflictRetryable(collection, key)

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError:
            return False
