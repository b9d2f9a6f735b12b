"""Core — pure domain logic: error hierarchy and validation rules.

Invariants:
    - No I/O in this package (no store, no network, no logging handlers)
"""
