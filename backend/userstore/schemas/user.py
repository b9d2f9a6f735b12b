"""User Schemas — stored record and inbound candidate payload.

Invariants:
    - User.id is always a positive integer (ids are minted by the store, never 0)
    - UserPayload accepts an id field but the repository never trusts it
    - The JSON produced by User.model_dump_json() is the stored value format

Design Decisions:
    - UserPayload fields are all optional: required-field rules live in
      core/validation.py so they produce the {"Error": ...} envelope instead of
      a schema error list
"""

from pydantic import BaseModel, Field


class User(BaseModel):
    """Persisted user record."""
    id: int = Field(ge=1)
    name: str
    email: str | None = None


class UserPayload(BaseModel):
    """Create/update request body."""
    id: int | None = None
    name: str | None = None
    email: str | None = None
