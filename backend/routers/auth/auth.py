from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import UserProfile
from utils.response_helpers import user_profile_to_dict
from .schemas import (
    UserRegister,
    UserLogin,
    AuthResponse,
    UserResponse,
    TokenResponse,
    RefreshRequest,
)
from .helpers import auth_helpers
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer()

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticated caller as {"user_id", "email", "role"}

    Also stored on request.state for the RBAC dependencies
    """
    claims = auth_helpers.verify_token(credentials.credentials)

    try:
        user_id = uuid.UUID(str(claims.user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: malformed user ID"
        )

    role = claims.role
    if role is None:
        # Tokens issued before the role was set carry no usable role
        result = await db.execute(
            select(UserProfile.role).where(UserProfile.user_id == user_id)
        )
        role = result.scalar_one_or_none()
        if role is None:
            logger.warning(f"No role for user {user_id}, treating as vendor")
            role = "vendor"

    current_user = {"user_id": user_id, "email": claims.email, "role": role}
    request.state.current_user = current_user
    return current_user


async def get_current_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> UserProfile:
    """Load the marketplace profile of the authenticated user"""
    result = await db.execute(
        select(UserProfile).where(UserProfile.user_id == current_user["user_id"])
    )
    profile = result.scalar_one_or_none()

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found"
        )

    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated. Please contact support."
        )

    return profile


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    try:
        existing_user = await db.execute(
            select(UserProfile).where(UserProfile.email == user_data.email)
        )
        if existing_user.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User with this email already exists"
            )

        auth_response = auth_helpers.supabase.auth.sign_up({
            "email": user_data.email,
            "password": user_data.password,
            "options": {
                "data": {
                    "name": user_data.name,
                    "role": user_data.role.value
                }
            }
        })

        if auth_response.user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Failed to create user account"
            )

        new_user_profile = UserProfile(
            user_id=uuid.UUID(str(auth_response.user.id)),
            email=user_data.email,
            name=user_data.name,
            role=user_data.role.value,
            phone=user_data.phone,
            business_name=user_data.business_name,
            business_type=user_data.business_type,
            specialties=user_data.specialties,
            operating_hours=user_data.operating_hours.model_dump() if user_data.operating_hours else None,
        )
        if user_data.location:
            for field, value in user_data.location.model_dump().items():
                setattr(new_user_profile, field, value)
        if user_data.delivery_radius is not None:
            new_user_profile.delivery_radius = user_data.delivery_radius

        db.add(new_user_profile)
        await db.commit()
        await db.refresh(new_user_profile)

        user_response = UserResponse.model_validate(user_profile_to_dict(new_user_profile))
        logger.info(f"Registered {new_user_profile.role} {new_user_profile.id}")

        if auth_response.session is None:
            return AuthResponse(
                access_token="",
                refresh_token="",
                user=user_response,
                message="User created successfully. Please check your email to verify your account before logging in."
            )

        return AuthResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
            user=user_response
        )

    except Exception as e:
        await db.rollback()
        logger.error(f"Registration failed: {str(e)}")
        if isinstance(e, HTTPException):
            raise e
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )

@router.post("/login", response_model=AuthResponse)
async def login(
    user_data: UserLogin
):
    try:
        auth_response = auth_helpers.supabase.auth.sign_in_with_password({
            "email": user_data.email,
            "password": user_data.password
        })

        if auth_response.user is None or auth_response.session is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        return AuthResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
        )

    except Exception as e:
        logger.error(f"Login failed: {str(e)}")
        if isinstance(e, HTTPException):
            raise e
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshRequest
):
    session = await auth_helpers.refresh_token(refresh_data.refresh_token)
    return TokenResponse(access_token=session.access_token)

@router.post("/logout")
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security)
):
    try:
        auth_helpers.revoke_session(credentials.credentials)
        return {"message": "Successfully logged out"}

    except Exception as e:
        logger.error(f"Logout failed: {str(e)}")
        return {"message": "Logout completed"}

@router.get("/profile", response_model=UserResponse)
async def get_user_profile(
    profile: UserProfile = Depends(get_current_profile)
):
    """Get the current user's profile"""
    return UserResponse.model_validate(user_profile_to_dict(profile))
