"""
Authentication API - Registration, login, logout and session verification
(user service)
"""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from taskhub.database import get_db
from taskhub.schemas import UserRegister, UserLogin, UserResponse
from taskhub.models import User
from taskhub.models.session import UserSession, create_session, destroy_user_sessions
from taskhub.models.user import find_by_email, normalize_email, validate_registration
from taskhub.core.config import is_production, settings
from taskhub.core.security import hash_password, mask_token, verify_password
from taskhub.core.dependencies import get_current_session

logger = logging.getLogger(__name__)
router = APIRouter()


def user_json(user: User) -> dict:
    """Public view of a user - password_hash never leaves the service"""
    return UserResponse.model_validate(user).model_dump(mode="json", exclude={"updated_at"})


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=is_production(),
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db)
):
    """
    Register new user account and sign it in.

    Returns:
        201 {success, user, session_token} plus the session cookie

    Raises:
        422 {success: false, errors: [...]}: Account rules violated
    """
    logger.info(f"➡️  Registration attempt for email: {user_data.email}")

    errors = validate_registration(
        db,
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
        password_confirmation=user_data.password_confirmation,
    )
    if errors:
        logger.warning(f"⚠️  Registration rejected for {user_data.email}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"success": False, "errors": errors},
        )

    new_user = User(
        email=normalize_email(user_data.email),
        password_hash=hash_password(user_data.password),
        name=user_data.name.strip(),
    )

    try:
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
    except Exception:
        db.rollback()
        raise

    user_session = create_session(db, new_user)
    logger.info(f"✅ User registered successfully: {new_user.email}")

    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "user": user_json(new_user), "session_token": user_session.token},
    )
    set_session_cookie(response, user_session.token)
    return response


@router.post("/login")
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and open a fresh session.

    Every earlier session of the user is destroyed first, so one account has
    at most one live session.

    Raises:
        401: Invalid email or password
    """
    logger.info(f"➡️  Login attempt for email: {credentials.email}")

    user = find_by_email(db, credentials.email)
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"⚠️  Login failed for: {credentials.email}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid email or password"},
        )

    removed = destroy_user_sessions(db, user.id)
    if removed:
        logger.info(f"🧹 Destroyed {removed} previous sessions of user {user.id}")
    user_session = create_session(db, user)

    logger.info(f"✅ Login successful: {user.email}")

    response = JSONResponse(
        content={"success": True, "user": user_json(user), "session_token": user_session.token},
    )
    set_session_cookie(response, user_session.token)
    return response


@router.post("/logout")
def logout(
    user_session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Delete the current session and clear the cookie"""
    logger.info(f"➡️  Logout of session {mask_token(user_session.token)}")

    db.delete(user_session)
    db.commit()

    response = JSONResponse(content={"success": True, "message": "Logged out successfully"})
    clear_session_cookie(response)
    return response


@router.get("/verify")
def verify(
    user_session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """
    Confirm a session is live and say whose it is.

    Called by every other service for every authenticated request. Each
    successful check renews the session for another full window.
    """
    user_session.extend_expiry()
    db.commit()

    logger.debug(f"✅ Session {mask_token(user_session.token)} verified for user {user_session.user_id}")
    return {"success": True, "user": user_json(user_session.user)}
