"""
Database module - record store selection.
"""
from functools import lru_cache

from placement_engine.core.config import get_settings
from placement_engine.db.store import InMemoryRecordStore, RecordStore, Transaction


@lru_cache()
def get_record_store() -> RecordStore:
    """
    Dependency for FastAPI route injection.
    Usage:
        @router.get("/x")
        async def handler(store: RecordStore = Depends(get_record_store)):
            ...
    """
    settings = get_settings()
    if settings.record_store == "memory":
        return InMemoryRecordStore()

    from placement_engine.db.mongo_store import MongoRecordStore
    from placement_engine.db.mongodb import get_mongo_db
    return MongoRecordStore(get_mongo_db())


__all__ = [
    "get_record_store",
    "RecordStore",
    "InMemoryRecordStore",
    "Transaction",
]
