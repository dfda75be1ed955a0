# backend/app/api/user_routes.py

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.api.deps_auth import CurrentUser, get_db, require_admin
from app.core.config import settings
from app.core.errors import InventoryError
from app.core.logging_config import get_logger, log_fields
from app.models.user import User as UserModel
from app.services import accounts

router = APIRouter()
functions_router = APIRouter()
logger = get_logger("api.users")

Role = Literal["admin", "user", "viewer"]

# ---------- SCHEMAS ----------


class UserAccountOut(BaseModel):
    id: int
    email: str
    display_name: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None


class UserUpdate(BaseModel):
    role: Optional[Role] = None
    display_name: Optional[str] = None


class UserUpdateOut(BaseModel):
    user: UserAccountOut
    partial: bool
    warnings: List[str]


class ActiveUpdate(BaseModel):
    is_active: bool


class CreateUserIn(BaseModel):
    email: str = ""
    password: str = ""
    display_name: str = ""
    role: str = "user"


class ChangePasswordIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    new_password: str = Field(default="", alias="newPassword")


def account_out(u: UserModel) -> UserAccountOut:
    return UserAccountOut(
        id=u.id,
        email=u.email,
        display_name=accounts.display_name_for(u),
        role=u.role,
        is_active=u.is_active,
        created_at=u.created_at,
    )


# ---------- USER MANAGEMENT (admin only) ----------


@router.get("/users", response_model=List[UserAccountOut])
def list_users(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
):
    return [account_out(u) for u in accounts.list_accounts(db, search)]


@router.patch("/users/{user_id}", response_model=UserUpdateOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
):
    result = accounts.update_account(
        db,
        user_id,
        role=payload.role,
        display_name=payload.display_name,
        metadata_updates_enabled=settings.account_metadata_updates_enabled,
    )
    return UserUpdateOut(
        user=account_out(result.user),
        partial=result.partial,
        warnings=result.warnings,
    )


@router.patch("/users/{user_id}/active", response_model=UserAccountOut)
def set_user_active(
    user_id: int,
    payload: ActiveUpdate,
    db: Session = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
):
    return account_out(accounts.set_active(db, user_id, payload.is_active))


# ---------- PRIVILEGED ACCOUNT FUNCTIONS ----------
# Answer {"success": bool, "error"?: str}; failures also carry a non-2xx status.


def _failure(e: InventoryError) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.message})


@functions_router.post("/create-user")
def create_user_function(
    payload: CreateUserIn,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    try:
        u = accounts.create_account(
            db,
            email=payload.email,
            password=payload.password,
            display_name=payload.display_name,
            role=payload.role,
        )
    except InventoryError as e:
        logger.info("create_user_failed", extra=log_fields(admin_id=admin.id, error=e.message))
        return _failure(e)

    return {"success": True, "user_id": u.id}


@functions_router.post("/change-user-password")
def change_password_function(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    try:
        accounts.reset_password(db, payload.user_id, payload.new_password)
    except InventoryError as e:
        logger.info("change_password_failed", extra=log_fields(admin_id=admin.id, error=e.message))
        return _failure(e)

    return {"success": True}
