"""Schemas — Pydantic models at the API and storage boundaries."""
