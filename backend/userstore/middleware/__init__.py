"""Middleware — ordered request pipeline wrapping every routed call.

Invariants:
    - Stage order is fixed at startup (see build_pipeline): error containment,
      correlation id, rate limiting, request logging, authentication
    - Each stage invokes its continuation zero or one times
"""
