"""
MongoDB Connection Utility

MongoDB stores every engine record:
- transcripts (candidate profiles, keyed by student id)
- institutions (faculties and courses embedded)
- applications, admissions
- jobs, notifications
- applicant_guards (per-student version guards for transactions)

Multi-document transactions need a replica set (a single-node
replica set is enough for development).
"""
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from placement_engine.core.config import get_settings
from placement_engine.core.logger import get_logger

settings = get_settings()
logger = get_logger()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the engine database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


# Collection name constants (avoid typos)
COLLECTIONS = {
    "transcripts": "transcripts",
    "institutions": "institutions",
    "applications": "applications",
    "admissions": "admissions",
    "jobs": "jobs",
    "notifications": "notifications",
    "applicant_guards": "applicant_guards",
}


def init_mongo_indexes(db: Database = None):
    """
    Create indexes for the engine's queries.
    Call this once during app startup.
    """
    db = db if db is not None else get_mongo_db()

    # Cap and cascade lookups
    db[COLLECTIONS["applications"]].create_index([
        ("student_id", ASCENDING),
        ("institution_id", ASCENDING),
    ])
    db[COLLECTIONS["applications"]].create_index([
        ("student_id", ASCENDING),
        ("status", ASCENDING),
    ])

    # array-contains queries
    db[COLLECTIONS["admissions"]].create_index("admitted_students")
    db[COLLECTIONS["admissions"]].create_index([
        ("institution_id", ASCENDING),
        ("waiting_list", ASCENDING),
    ])

    db[COLLECTIONS["notifications"]].create_index("user_id")
    db[COLLECTIONS["jobs"]].create_index("company_id")

    logger.info("MongoDB indexes created")
