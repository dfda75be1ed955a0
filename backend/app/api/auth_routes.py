# backend/app/api/auth_routes.py

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps_auth import CurrentUser, get_current_user, get_db
from app.core.errors import AuthError
from app.core.logging_config import get_logger
from app.core.security import create_access_token, verify_password
from app.models.user import User
from app.services import accounts

router = APIRouter()
logger = get_logger("api.auth")


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: int
    email: str
    display_name: str
    phone: Optional[str] = None
    role: str
    is_active: bool

    class Config:
        from_attributes = True


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    phone: Optional[str] = None


def _authenticate(db: Session, email: str, password: str) -> LoginOut:
    user = accounts.find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("login_failed")
        raise AuthError("Invalid email or password")
    if not user.is_active:
        raise AuthError("Account is inactive")

    token = create_access_token({"sub": str(user.id), "role": user.role})
    logger.info("login_succeeded", extra={"user_id": user.id})

    return LoginOut(
        access_token=token,
        user=UserOut.model_validate(user),
    )


# JSON login used by the web client
@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return _authenticate(db, payload.email, payload.password)


# OAuth2 form endpoint (Swagger Authorize uses this); username carries the email
@router.post("/token", response_model=LoginOut)
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    return _authenticate(db, form_data.username or "", form_data.password or "")


@router.post("/logout")
def logout(_user: CurrentUser = Depends(get_current_user)):
    # tokens are stateless; the client drops its copy
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserOut.model_validate(db.get(User, current_user.id))


@router.patch("/me", response_model=UserOut)
def update_me(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    u = db.get(User, current_user.id)
    u = accounts.update_profile(db, u, display_name=payload.display_name, phone=payload.phone)
    return UserOut.model_validate(u)
