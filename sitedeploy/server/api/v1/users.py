"""
User Endpoints.

Users are recorded for build attribution; the e-mail of the user triggering a
build decides whether a notification is sent.
"""

from typing import List

from fastapi import APIRouter, HTTPException, status

from sitedeploy.core.database.entities.users import User
from sitedeploy.server.schemas import UserCreate, UserRead
from sitedeploy.server.services.deps import ReposDep

router = APIRouter()


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    responses={409: {"description": "E-mail already registered"}},
)
async def create_user(user_in: UserCreate, repos: ReposDep) -> UserRead:
    if await repos.users.get_by_email(user_in.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"User already exists: {user_in.email}")
    user = await repos.users.create(User(name=user_in.name, email=user_in.email))
    return UserRead.model_validate(user)


@router.get("", response_model=List[UserRead], summary="List Users")
async def list_users(repos: ReposDep) -> List[UserRead]:
    return [UserRead.model_validate(user) for user in await repos.users.list()]


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get User",
    responses={404: {"description": "User not found"}},
)
async def get_user(user_id: int, repos: ReposDep) -> UserRead:
    user = await repos.users.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserRead.model_validate(user)
