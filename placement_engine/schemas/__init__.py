"""
Schemas module - engine records and API request/response schemas.

Everything lives in schemas.py; import from there.
"""
