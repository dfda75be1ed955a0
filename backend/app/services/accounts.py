"""User accounts: identity (``users``) plus access control (``user_roles``)."""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    StorageError,
    ValidationError,
)
from app.core.logging_config import get_logger, log_fields
from app.core.security import MIN_PASSWORD_LENGTH, hash_password
from app.models.user import ROLES, User, UserRole
from app.services.paging import text_filter

logger = get_logger("services.accounts")

UNNAMED = "Unnamed"


@dataclass
class AccountUpdate:
    user: User
    warnings: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


def display_name_for(u: User) -> str:
    if u.display_name:
        return u.display_name
    if u.email:
        return u.email.split("@")[0]
    return UNNAMED


def _check_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", field="role")
    return role


def _check_password(password: str) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    return password


def get_account(db: Session, user_id: int) -> User:
    u = db.get(User, user_id)
    if not u:
        raise NotFoundError("User", user_id)
    return u


def list_accounts(db: Session, search: Optional[str] = None) -> list[User]:
    q = db.query(User).options(joinedload(User.access)).order_by(User.created_at.desc(), User.id.desc())
    clause = text_filter([User.email, User.display_name], search)
    if clause is not None:
        q = q.filter(clause)
    return q.all()


def create_account(
    db: Session,
    *,
    email: str,
    password: str,
    display_name: str,
    role: str = "user",
) -> User:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("a valid email is required", field="email")
    _check_password(password)
    _check_role(role)

    if find_by_email(db, email):
        raise ConflictError("A user with this email already exists", field="email")

    u = User(
        email=email,
        display_name=(display_name or "").strip(),
        password_hash=hash_password(password),
    )
    u.access = UserRole(role=role, is_active=True)
    db.add(u)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("A user with this email already exists", field="email") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Could not create the user: {e}") from e

    db.refresh(u)
    logger.info("account_created", extra=log_fields(user_id=u.id, role=role))
    return u


def reset_password(db: Session, user_id: int, new_password: str) -> User:
    _check_password(new_password)
    u = get_account(db, user_id)
    u.password_hash = hash_password(new_password)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Could not change the password: {e}") from e

    logger.info("account_password_reset", extra=log_fields(user_id=u.id))
    return u


def _ensure_access(u: User) -> UserRole:
    if u.access is None:
        u.access = UserRole(role="user", is_active=True)
    return u.access


def update_account(
    db: Session,
    user_id: int,
    *,
    role: Optional[str] = None,
    display_name: Optional[str] = None,
    metadata_updates_enabled: bool = True,
) -> AccountUpdate:
    """Change role, then display name.

    The role write is committed on its own. The display name goes through the
    privileged metadata path, which may be switched off; in that case the role
    change stands and the result carries a warning instead of an error. If the
    display-name write itself fails after the role was committed, the caller
    gets ``PartialFailureError`` and has to reload before retrying.
    """
    u = get_account(db, user_id)
    result = AccountUpdate(user=u)
    committed: list[str] = []

    if role is not None:
        _check_role(role)
        _ensure_access(u).role = role
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Could not update the role: {e}") from e
        committed.append("role")

    new_name = (display_name or "").strip()
    if display_name is not None and new_name != (u.display_name or ""):
        if not metadata_updates_enabled:
            result.warnings.append("Display name not updated: privileged metadata updates are unavailable")
        else:
            try:
                u.display_name = new_name
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(
                    "account_update_failed",
                    extra=log_fields(user_id=user_id, completed=",".join(committed) or None, error=str(e)),
                )
                if committed:
                    raise PartialFailureError(
                        "The role was updated but the display name was not; "
                        "reload the user before retrying",
                        completed=committed,
                        failed="display_name",
                    ) from e
                raise StorageError(f"Could not update the display name: {e}") from e

    if result.partial:
        logger.warning("account_update_partial", extra=log_fields(user_id=user_id, warnings="; ".join(result.warnings)))

    db.refresh(u)
    return result


def set_active(db: Session, user_id: int, is_active: bool) -> User:
    u = get_account(db, user_id)
    _ensure_access(u).is_active = bool(is_active)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Could not update the account status: {e}") from e

    db.refresh(u)
    logger.info("account_active_changed", extra=log_fields(user_id=u.id, is_active=u.is_active))
    return u


def update_profile(
    db: Session,
    u: User,
    *,
    display_name: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    if display_name is not None:
        name = display_name.strip()
        if len(name) < 3 or len(name) > 50:
            raise ValidationError("display name must be 3 to 50 characters", field="display_name")
        u.display_name = name
    if phone is not None:
        u.phone = phone.strip() or None

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Could not update the profile: {e}") from e

    db.refresh(u)
    return u


def find_by_email(db: Session, email: str) -> Optional[User]:
    email = (email or "").strip().lower()
    return db.query(User).filter(User.email == email).first()
