"""
Placement Engine
Admission allocation and job matching for students, institutions and companies.

Architecture:
- MongoDB: every record, written through optimistic transactions
- Services: scoring, catalog, admission ledger, allocation, job matching
- FastAPI: thin HTTP layer over the services
"""

__version__ = "1.0.0"
