"""Services — domain operations composed from record store primitives.

Invariants:
    - Services receive their store handle at construction (no module-level state)
"""
