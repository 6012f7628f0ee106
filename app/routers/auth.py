from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from app.dependencies import CurrentUser, DbSession, TokenPayload
from app.schemas.auth import MessageResponse, RefreshTokenRequest, RegisterRequest, TokenResponse
from app.schemas.user import UserResponse
from app.services import profile_service

router = APIRouter()


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def register(request: RegisterRequest, db: DbSession):
    """
    Create an account together with its empty studio profile.

    - **display_name**: Unique display name (3-50 chars), usable to sign in
    - **email**: Valid email address
    - **password**: Password (min 6 characters)
    """
    return await profile_service.sign_up(
        db,
        email=request.email,
        password=request.password,
        display_name=request.display_name,
    )


@router.post("/login", response_model=TokenResponse, summary="Sign in")
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DbSession,
):
    """
    OAuth2 password flow. **username** may be the email or the display name.
    """
    user = await profile_service.sign_in(db, form_data.username, form_data.password)
    return profile_service.issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse, summary="Rotate the token pair")
async def refresh_token(request: RefreshTokenRequest, db: DbSession):
    """Each refresh token can be exchanged once."""
    return await profile_service.refresh_session(db, request.refresh_token)


@router.post("/logout", response_model=MessageResponse, summary="Sign out")
async def logout(payload: TokenPayload):
    """Revoke the current access token and close the studio session."""
    await profile_service.sign_out(payload)
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=UserResponse, summary="Current account")
async def get_me(current_user: CurrentUser):
    return current_user
