"""API Layer — FastAPI routes and error handlers.

Invariants:
    - Routes registered explicitly in main.create_app (no auto-discovery)
    - Every error body uses the {"Error": "<message>"} envelope

Design Decisions:
    - Thin routes delegate to UserRepository
"""
