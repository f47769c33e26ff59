from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import UserProfile
from routers.auth.auth import get_current_user, get_current_profile
from routers.auth.schemas import UserResponse
from dependencies.rbac import require_profile_read, require_profile_write
from utils.response_helpers import user_profile_to_dict
from .schemas import UserProfileUpdate
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user = Depends(get_current_user),
    _: bool = Depends(require_profile_read),
    profile: UserProfile = Depends(get_current_profile)
):
    """Get current user's marketplace profile"""
    return UserResponse.model_validate(user_profile_to_dict(profile))


@router.put("/me", response_model=UserResponse)
async def update_current_user_profile(
    profile_update: UserProfileUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_profile_write),
    profile: UserProfile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """Update current user's profile, location and business settings"""
    try:
        update_data = profile_update.model_dump(exclude_unset=True)

        location = update_data.pop("location", None)
        if location:
            for field, value in location.items():
                setattr(profile, field, value)

        for field, value in update_data.items():
            setattr(profile, field, value)

        await db.commit()
        await db.refresh(profile)

        return UserResponse.model_validate(user_profile_to_dict(profile))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating user profile: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )
