"""
Pydantic schemas and raw record shapes.

Schemas:
    raw: Dataclasses produced by the scrapers (parsed, not validated)
    records: Pydantic models that validate raw records before upsert
    api: API endpoint request/response schemas

Usage:
    from schemas.records import PlayerRecord, validate_record
    from schemas.api import ImportStatusResponse
"""
