# backend/app/api/deps_auth.py

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import SessionLocal
from app.core.errors import AuthError, PermissionDeniedError
from app.core.security import decode_token
from app.models.user import WRITE_ROLES, User as UserModel

# Only used by Swagger UI for the "Authorize" flow.
# Normal Authorization: Bearer <token> parsing is unaffected.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


class CurrentUser(BaseModel):
    id: int
    email: str
    display_name: str
    role: str  # "admin" | "user" | "viewer"
    is_active: bool = True

    @property
    def identity(self) -> str:
        return self.display_name or self.email


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    # token must be the raw JWT (OAuth2PasswordBearer strips "Bearer ")
    if not token or not isinstance(token, str):
        raise AuthError()

    try:
        payload = decode_token(token)
    except ValueError:
        raise AuthError("Session expired or invalid")

    # sub is the user id
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthError()

    user = db.get(UserModel, user_id)
    if not user:
        raise AuthError()
    if not user.is_active:
        raise AuthError("Account is inactive")

    return CurrentUser(
        id=user.id,
        email=user.email,
        display_name=user.display_name or "",
        role=user.role,
        is_active=user.is_active,
    )


def require_writer(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role not in WRITE_ROLES:
        raise PermissionDeniedError("Write access required")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "admin":
        raise PermissionDeniedError("Admin role required")
    return user
