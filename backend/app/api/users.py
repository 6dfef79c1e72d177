"""User registration and profile API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_auth_service, get_current_user
from app.core import get_db
from app.schemas.auth import CurrentUser
from app.schemas.user import (
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    UserEditRequest,
    UserEnvelope,
    UserResponse,
)
from app.services.auth import AuthService
from app.services.user import UserService

router = APIRouter(
    prefix="/user",
    tags=["user"],
)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    """Dependency to get user service."""
    return UserService(db)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Create a new account. Returns 409 if the email is already registered."""
    user = await auth_service.register(data)
    return RegisterResponse(data=RegisteredUser(name=user.name, email=user.email))


@router.put("/edit", response_model=UserEnvelope)
async def edit_profile(
    data: UserEditRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    """Update the current user's name and/or password."""
    user = await service.edit(current_user.user_id, data)
    return UserEnvelope(
        data=[UserResponse.model_validate(user)],
        message="User profile updated successfully.",
    )


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    """Get the current user's profile."""
    user = await service.get(current_user.user_id)
    return UserEnvelope(
        data=[UserResponse.model_validate(user)],
        message="User fetched successfully.",
    )
