# services/auth.py
from datetime import datetime, timedelta, timezone
import logging
import os
from typing import Any, Dict, Optional

from fastapi import Cookie, Depends, HTTPException, Response, status
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from database import get_db
from models.user import User

logger = logging.getLogger(__name__)

# ========================
# Config
# ========================

# Load from env in prod; fall back only for local dev
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-prod")
ALGORITHM = "HS256"
SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "7"))

SESSION_COOKIE_NAME = "session"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def is_production() -> bool:
    return (os.getenv("APP_ENV") or "development").lower() == "production"

# ========================
# Password helpers
# ========================

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

# ========================
# JWT helpers
# ========================

def create_session_token(
    user: User,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=SESSION_TTL_DAYS))
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Decode & verify the session JWT. Raises HTTPException(401) on failure.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
        )

# ========================
# Cookie helpers
# ========================

def _cookie_flags() -> Dict[str, Any]:
    prod = is_production()
    return {
        "httponly": True,
        "secure": prod,
        # cross-site frontend in prod needs SameSite=None (which requires Secure)
        "samesite": "none" if prod else "lax",
        "path": "/",
    }

def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=SESSION_TTL_DAYS * 24 * 60 * 60,
        **_cookie_flags(),
    )

def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, **_cookie_flags())

# ========================
# User dependencies
# ========================

def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user

def _get_user_by_sub(db: Session, sub: Any) -> User:
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid session")
    return user

def get_current_user(
    db: Session = Depends(get_db),
    session: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> User:
    if not session:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_session_token(session)
    return _get_user_by_sub(db, payload.get("sub"))
