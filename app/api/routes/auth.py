"""
Authentication endpoints: registration, email verification, login and
password management.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from app.api.deps import SessionDep, CurrentUserDep
from app.api.formatting import format_user
from app.core.auth import decode_token, is_token_expired
from app.models.schemas import UserResponse
from app.services.auth_service import AuthService, issue_tokens


router = APIRouter()


# Request/Response Models
class RegisterRequest(BaseModel):
    """Registration request."""

    name: str = Field(..., description="Display name, 2-50 characters")
    email: EmailStr
    password: str = Field(..., min_length=6, description="Minimum 6 characters")


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refreshToken: str


class EmailRequest(BaseModel):
    """Request carrying only an email address."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """New password for a reset token."""

    password: str = Field(..., min_length=6, description="Minimum 6 characters")


class ChangePasswordRequest(BaseModel):
    """Password change for the signed-in user."""

    currentPassword: str
    newPassword: str = Field(..., min_length=6, description="Minimum 6 characters")


class TokenResponse(BaseModel):
    """Authentication token response."""

    accessToken: str
    refreshToken: str
    tokenType: str = "bearer"


class LoginResponse(TokenResponse):
    """Tokens plus the signed-in user."""

    user: UserResponse


class MessageResponse(BaseModel):
    """Plain confirmation."""

    message: str


def token_response(tokens) -> TokenResponse:
    return TokenResponse(
        accessToken=tokens.access_token,
        refreshToken=tokens.refresh_token,
    )


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(request: RegisterRequest, session: SessionDep):
    """
    Register a new user account.

    A verification link is emailed; login is refused until it is used.
    """
    await AuthService(session).register(
        name=request.name,
        email=request.email,
        password=request.password,
    )
    return MessageResponse(
        message=(
            "Registration successful! Please check your email to verify "
            "your account before logging in."
        )
    )


@router.get("/verify-email/{token}", response_model=MessageResponse)
async def verify_email(token: str, session: SessionDep):
    """Confirm an email address with the emailed token."""
    await AuthService(session).verify_email(token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(request: EmailRequest, session: SessionDep):
    """Send a fresh verification link."""
    await AuthService(session).resend_verification(request.email)
    return MessageResponse(message="Verification email sent successfully")


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, session: SessionDep):
    """
    Login with email and password.

    Returns JWT access and refresh tokens.
    """
    user, tokens = await AuthService(session).login(request.email, request.password)
    return LoginResponse(
        accessToken=tokens.access_token,
        refreshToken=tokens.refresh_token,
        user=format_user(user),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: RefreshRequest, session: SessionDep):
    """
    Refresh access token using refresh token.

    Returns new access and refresh tokens.
    """
    token_data = decode_token(request.refreshToken)

    if not token_data or is_token_expired(token_data):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    if token_data.token_type != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    # Verify user still exists and is active
    user = await AuthService(session).get_user_by_id(token_data.user_id)

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    return token_response(issue_tokens(user))


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: CurrentUserDep):
    """
    Get current authenticated user's profile.

    Requires valid access token.
    """
    return format_user(current_user)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: EmailRequest, session: SessionDep):
    """Email a password reset link, valid for a few minutes."""
    await AuthService(session).forgot_password(request.email)
    return MessageResponse(message="Password reset email sent")


@router.put("/reset-password/{token}", response_model=TokenResponse)
async def reset_password(token: str, request: ResetPasswordRequest, session: SessionDep):
    """Set a new password with a reset token and sign in."""
    tokens = await AuthService(session).reset_password(token, request.password)
    return token_response(tokens)


@router.put("/password", response_model=TokenResponse)
async def change_password(
    request: ChangePasswordRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
):
    """Change the signed-in user's password."""
    tokens = await AuthService(session).change_password(
        current_user,
        request.currentPassword,
        request.newPassword,
    )
    return token_response(tokens)
