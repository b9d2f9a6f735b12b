"""User Routes — CRUD and search endpoints over UserRepository.

Invariants:
    - /users/search is declared before /users/{user_id} so "search" is never read as an id
    - user_id is typed int: non-numeric ids are rejected as request errors, not store lookups
    - POST returns 201 with a Location header; PUT and DELETE return 204 with no body
    - Every route reaches the repository only after the pipeline admitted the request

Design Decisions:
    - Repository built per request from app.state.record_store (ADR: explicit handle
      owned by the lifespan, no module-level connection)
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status

from userstore.schemas.user import User, UserPayload
from userstore.services.user_repository import UserRepository

router = APIRouter(prefix="/users", tags=["users"])


def get_repository(request: Request) -> UserRepository:
    """FastAPI dependency for the user repository."""
    return UserRepository(request.app.state.record_store)


@router.get("", response_model=list[User])
async def list_users(repo: UserRepository = Depends(get_repository)):
    return await repo.list()


@router.get("/search", response_model=list[User])
async def search_users(
    name: str | None = Query(None),
    repo: UserRepository = Depends(get_repository),
):
    """Case-insensitive partial match on name."""
    return await repo.search(name)


@router.get("/{user_id}", response_model=User)
async def get_user(user_id: int, repo: UserRepository = Depends(get_repository)):
    return await repo.get(user_id)


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserPayload,
    response: Response,
    repo: UserRepository = Depends(get_repository),
):
    user = await repo.create(body)
    response.headers["Location"] = f"/users/{user.id}"
    return user


@router.put("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_user(
    user_id: int,
    body: UserPayload,
    repo: UserRepository = Depends(get_repository),
):
    await repo.update(user_id, body)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, repo: UserRepository = Depends(get_repository)):
    await repo.delete(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
