"""API Layer: FastAPI routes, dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Routes resolve the principal, call one handler, and schedule its
      notifications; no business logic lives here
"""
