from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import logging

from lms_core.config import get_db
from lms_core.models import UserInDB
from lms_core.utils.auth_utils import verify_token

logger = logging.getLogger(__name__)

# Tokens are issued by the auth service; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def get_current_user_dependency(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> UserInDB:
    """Dependency to get current authenticated user"""
    payload = verify_token(token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_email = payload.get("sub")
    user = db.query(UserInDB).filter(UserInDB.email == user_email).first()

    if user is None or not user.is_active:
        logger.warning(f"Token for unknown or inactive user: {user_email}")
        raise HTTPException(status_code=401, detail="User not found or inactive")

    return user
