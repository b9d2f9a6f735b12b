"""User Repository — CRUD and search for user records on top of a RecordStore.

Invariants:
    - Keys are "user:<id>"; "user:nextId" holds the id counter and is never enumerated
    - Ids come only from increment(): unique, increasing, never reused (deleted ids stay burned)
    - Validation runs before any store call on create; a rejected candidate consumes no id
    - A candidate's id field is never trusted: create mints one, update forces the path id
    - No in-memory cache: the store is the single source of truth for every call
    - list/search skip unreadable entries (counted and logged), single reads surface them as
      StoreFailureError

Design Decisions:
    - exists-then-get and exists-then-set are two calls, not one: a concurrent delete between
      them yields not-found (or, for update, a recreated key), never a corrupt value
      (ADR: same guarantees as a plain key-value store, no multi-key transactions)
    - Enumeration uses the store's cursor scan, never a blocking full-keyspace listing
    - Results of list/search sorted by id so responses are stable across scans
"""

import logging
import re

from pydantic import ValidationError as SchemaError

from userstore.core.errors import ResourceNotFoundError, StoreFailureError
from userstore.core.validation import validate_search_term, validate_user_fields
from userstore.infrastructure.record_store import RecordStore
from userstore.schemas.user import User, UserPayload

logger = logging.getLogger(__name__)

USER_KEY_PREFIX = "user:"
NEXT_ID_KEY = "user:nextId"

_USER_KEY_RE = re.compile(r"^user:([1-9][0-9]*)$")


def user_key(user_id: int) -> str:
    return f"{USER_KEY_PREFIX}{user_id}"


def is_user_key(key: str) -> bool:
    """True for "user:<positive int>" keys; False for the counter and anything else."""
    return _USER_KEY_RE.match(key) is not None


def _serialize(user: User) -> bytes:
    return user.model_dump_json().encode("utf-8")


def _deserialize(raw: bytes) -> User:
    return User.model_validate_json(raw)


class UserRepository:
    """Maps user operations onto RecordStore primitives."""

    def __init__(self, store: RecordStore):
        self._store = store

    async def create(self, candidate: UserPayload) -> User:
        """Validate, mint an id, and write the record."""
        name, email = validate_user_fields(candidate.name, candidate.email)
        user_id = await self._store.increment(NEXT_ID_KEY)
        user = User(id=user_id, name=name, email=email)
        if not await self._store.set(user_key(user_id), _serialize(user)):
            # The minted id is not reclaimed; gaps in the sequence are accepted.
            raise StoreFailureError(
                "User could not be added due to an internal issue.", "set",
            )
        logger.info(f"Created user {user_id}")
        return user

    async def get(self, user_id: int) -> User:
        key = user_key(user_id)
        if not await self._store.exists(key):
            raise ResourceNotFoundError("User", user_id)
        raw = await self._store.get(key)
        if raw is None:
            # Deleted between the two calls.
            raise ResourceNotFoundError("User", user_id)
        try:
            return _deserialize(raw)
        except SchemaError as e:
            logger.error(
                f"Stored value for {key} is corrupt: {e}",
                extra={"operation": "deserialize"},
            )
            raise StoreFailureError(f"corrupt value at {key}", "deserialize")

    async def update(self, user_id: int, candidate: UserPayload) -> User:
        """Overwrite an existing record; the path id always wins."""
        key = user_key(user_id)
        if not await self._store.exists(key):
            raise ResourceNotFoundError("User", user_id)
        name, email = validate_user_fields(candidate.name, candidate.email)
        user = User(id=user_id, name=name, email=email)
        if not await self._store.set(key, _serialize(user)):
            raise StoreFailureError(
                "User could not be updated due to an internal issue.", "set",
            )
        logger.info(f"Updated user {user_id}")
        return user

    async def delete(self, user_id: int) -> None:
        if not await self._store.delete(user_key(user_id)):
            raise ResourceNotFoundError("User", user_id)
        logger.info(f"Deleted user {user_id}")

    async def search(self, term: str | None) -> list[User]:
        """Case-insensitive substring match on name. Blank terms are rejected before scanning."""
        needle = validate_search_term(term).casefold()
        return await self._collect(
            lambda user: needle in user.name.casefold(),
        )

    async def _collect(self, predicate=None) -> list[User]:
        users: list[User] = []
        skipped = 0
        async for key in self._store.scan(USER_KEY_PREFIX):
            if not is_user_key(key):
                continue
            raw = await self._store.get(key)
            if raw is None:
                continue
            try:
                user = _deserialize(raw)
            except SchemaError:
                skipped += 1
                continue
            if predicate is None or predicate(user):
                users.append(user)
        if skipped:
            logger.warning(
                f"Skipped {skipped} unreadable user record(s) during scan",
                extra={"skipped": skipped},
            )
        users.sort(key=lambda u: u.id)
        return users

    # Defined last: the method name shadows the builtin for annotations below it.
    async def list(self) -> list[User]:
        return await self._collect()
