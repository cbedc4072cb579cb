"""Pydantic Schemas: request validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary (user input)
    - Responses are plain dicts built by the services

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
