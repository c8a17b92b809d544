"""
Users API - Own profile and internal user lookup (user service)
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from taskhub.database import get_db
from taskhub.schemas import ProfileUpdate, UserResponse
from taskhub.models import User
from taskhub.core.dependencies import get_session_user
from taskhub.core.security import hash_password, verify_password

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/profile")
def get_profile(
    current_user: User = Depends(get_session_user)
):
    logger.debug(f"➡️  Profile request from: {current_user.email}")
    return {
        "status": "success",
        "user": UserResponse.model_validate(current_user).model_dump(mode="json"),
    }


@router.put("/profile")
def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_session_user),
    db: Session = Depends(get_db)
):
    """
    Update own name and/or password.

    Changing the password requires the current one.

    Raises:
        401: current_password missing or wrong
        422: password confirmation mismatch
    """
    logger.info(f"➡️  Profile update from: {current_user.email}")

    if profile_data.password:
        if not profile_data.current_password or not verify_password(
            profile_data.current_password, current_user.password_hash
        ):
            logger.warning(f"⚠️  Wrong current password for {current_user.email}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={
                    "status": "error",
                    "error": "authentication_failed",
                    "message": "Current password is incorrect",
                },
            )
        if (
            profile_data.password_confirmation is not None
            and profile_data.password_confirmation != profile_data.password
        ):
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content={
                    "status": "error",
                    "error": "validation_failed",
                    "message": "Profile update failed",
                    "details": {"password_confirmation": ["doesn't match Password"]},
                },
            )
        current_user.password_hash = hash_password(profile_data.password)

    if profile_data.name is not None:
        current_user.name = profile_data.name

    try:
        db.commit()
        db.refresh(current_user)
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ Profile updated: {current_user.email}")
    return {
        "status": "success",
        "user": UserResponse.model_validate(current_user).model_dump(mode="json"),
        "message": "Profile updated successfully",
    }


@router.get("/{user_id}")
def get_user_by_id(
    user_id: int,
    db: Session = Depends(get_db)
):
    """
    Get user by ID - internal lookup used by sibling services.

    Raises:
        404: User not found
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️  User {user_id} not found")
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"status": "error", "error": "user_not_found", "message": "User not found"},
        )

    return {
        "status": "success",
        "user": UserResponse.model_validate(user).model_dump(mode="json", exclude={"updated_at"}),
    }
