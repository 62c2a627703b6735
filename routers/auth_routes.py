import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from middleware.rate_limit import AUTH_RATE_LIMIT, limiter
from models.user import User
from schemas.auth import AuthOut, LoginIn, SignupIn, UserOut
from services.auth import (
    authenticate,
    clear_session_cookie,
    create_session_token,
    get_current_user,
    get_password_hash,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth/signup", response_model=AuthOut)
@limiter.limit(AUTH_RATE_LIMIT)
def signup(
    request: Request,
    response: Response,
    payload: SignupIn,
    db: Session = Depends(get_db),
):
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise HTTPException(status_code=409, detail="Email already in use")

    user = User(email=payload.email, hashed_password=get_password_hash(payload.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already in use")
    db.refresh(user)
    logger.info("user_signed_up user_id=%s", user.id)

    set_session_cookie(response, create_session_token(user))
    return AuthOut(user=UserOut.model_validate(user))


@router.post("/auth/login", response_model=AuthOut)
@limiter.limit(AUTH_RATE_LIMIT)
def login(
    request: Request,
    response: Response,
    payload: LoginIn,
    db: Session = Depends(get_db),
):
    user = authenticate(db, payload.email, payload.password)
    if not user:
        logger.warning("login_failed")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    set_session_cookie(response, create_session_token(user))
    return AuthOut(user=UserOut.model_validate(user))


@router.post("/auth/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/me", response_model=AuthOut)
def me(current_user: User = Depends(get_current_user)):
    return AuthOut(user=UserOut.model_validate(current_user))
