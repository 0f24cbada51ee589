"""Wire contracts — pydantic models for request bodies and JSON responses.

Status and role fields reuse the enums in core/domain_types.py; response
models are built from ORM rows (from_attributes).
"""
