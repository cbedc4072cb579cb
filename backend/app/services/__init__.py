"""Services Layer: idempotent toggles, conversation resolution, notification
dispatch, and the route-facing handlers built on them.

Invariants:
    - Services talk to persistence only through the DocumentStore protocol
    - A UniquenessConflict from the store is an expected outcome, handled here
"""
