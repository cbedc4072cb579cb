"""Infrastructure: adapters for the database, auth tokens, push gateway and logging.

Invariants:
    - Each adapter implements a Protocol from core/repository_protocols.py
    - Adapter-specific exceptions never escape; they are mapped to core errors
"""
