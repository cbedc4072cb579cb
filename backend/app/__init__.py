"""Commons Application Package: social actions and notification delivery.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
