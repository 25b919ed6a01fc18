"""Authentication API routes."""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Response, Request, status
from pydantic import BaseModel, EmailStr, Field
import logging

from ..auth import AuthService, AuthenticationError, get_auth_service
from ..middleware import get_bearer_token, require_auth
from ..models import User, TokenPair


logger = logging.getLogger(__name__)


# Request/Response models
class RegisterRequest(BaseModel):
    """User registration request."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: Optional[str] = Field(None, min_length=2, max_length=50)


class LoginRequest(BaseModel):
    """User login request."""
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class UserResponse(BaseModel):
    """User information response."""
    id: int
    email: str
    name: Optional[str] = None
    created_at: str
    last_login: Optional[str] = None
    is_active: bool


class TokenResponse(BaseModel):
    """Token response."""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class AuthResponse(TokenResponse):
    """Tokens plus the user they belong to."""
    message: str
    user: UserResponse


class VerifyResponse(BaseModel):
    valid: bool
    user: UserResponse


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


# Router
router = APIRouter(prefix="/api/auth", tags=["authentication"])


def get_device_info(request: Request) -> str:
    """Extract device info from request headers."""
    user_agent = request.headers.get("user-agent", "unknown")
    return user_agent[:200]


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, honouring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def user_response(user: User) -> UserResponse:
    return UserResponse(**user.to_dict())


def set_refresh_cookie(response: Response, tokens: TokenPair) -> None:
    """Set refresh token in an httpOnly cookie."""
    response.set_cookie(
        key="refresh_token",
        value=tokens.refresh_token,
        httponly=True,
        secure=True,
        samesite="strict",
        max_age=tokens.refresh_expires_in
    )


def auth_response(message: str, user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        message=message,
        user=user_response(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.access_expires_in,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    body: RegisterRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Register a new user and sign them in.

    Raises:
        HTTPException: 409 if the email is taken, 400 for invalid input
    """
    try:
        user = auth_service.register_user(
            email=body.email,
            password=body.password,
            name=body.name
        )
    except ValueError as e:
        if "already exists" in str(e):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    tokens = auth_service.create_tokens(user, get_device_info(request), get_client_ip(request))
    set_refresh_cookie(response, tokens)

    logger.info(f"User registered: {user.email}")
    return auth_response("User registered successfully", user, tokens)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request,
    body: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Authenticate user and return tokens.

    Raises:
        HTTPException: 401 if authentication fails
    """
    try:
        user = auth_service.authenticate_user(email=body.email, password=body.password)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )

    tokens = auth_service.create_tokens(user, get_device_info(request), get_client_ip(request))
    set_refresh_cookie(response, tokens)

    logger.info(f"User logged in: {user.email}")
    return auth_response("Login successful", user, tokens)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Exchange a refresh token for a new token pair.

    The token is taken from the request body, the Authorization header, or
    the refresh cookie, in that order.
    """
    token = (body.refresh_token if body else None) \
        or get_bearer_token(request) \
        or request.cookies.get("refresh_token")

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No refresh token provided",
            headers={"WWW-Authenticate": "Bearer"}
        )

    tokens = auth_service.refresh_tokens(token, get_device_info(request), get_client_ip(request))
    if not tokens:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    set_refresh_cookie(response, tokens)
    logger.debug("Tokens refreshed")

    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.access_expires_in
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Logout by revoking the access token and the refresh cookie."""
    access_token = get_bearer_token(request)
    if access_token:
        auth_service.revoke_token(access_token)

    refresh = request.cookies.get("refresh_token")
    if refresh:
        auth_service.revoke_token(refresh)

    response.delete_cookie(
        key="refresh_token",
        httponly=True,
        secure=True,
        samesite="strict"
    )

    logger.debug("User logged out")
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: User = Depends(require_auth)):
    """Get current user information."""
    return user_response(user)


@router.get("/verify", response_model=VerifyResponse)
async def verify(user: User = Depends(require_auth)):
    """Confirm that the bearer token is valid."""
    return VerifyResponse(valid=True, user=user_response(user))
