"""Stock entries and exits.

A movement changes ``products.stock`` and appends one row to
``movement_history``. Both writes happen in the same database transaction:
either the product and its history row are committed together or neither is.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import InsufficientStockError, NotFoundError, StorageError, ValidationError
from app.core.logging_config import get_logger, log_fields
from app.models.movement import ENTRY, EXIT, SYSTEM_USER, MovementRecord
from app.models.product import Product
from app.services.stock import classify

logger = get_logger("services.movements")

INITIAL_STOCK_INVOICE = "Creación de producto"


class Direction(str, Enum):
    IN = "in"
    OUT = "out"

    @property
    def action_type(self) -> str:
        return ENTRY if self is Direction.IN else EXIT


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    MUTATING = "mutating"
    PERSISTED = "persisted"
    ABORTED = "aborted"
    RECORDING_HISTORY = "recording_history"
    COMPLETE = "complete"
    # reserved for stores without multi-statement transactions; the
    # SQLAlchemy path rolls back to ABORTED instead
    PARTIAL_FAILURE = "partial_failure"


TERMINAL_STATES = frozenset(
    {
        SubmissionState.REJECTED,
        SubmissionState.ABORTED,
        SubmissionState.COMPLETE,
        SubmissionState.PARTIAL_FAILURE,
    }
)


@dataclass
class MovementResult:
    product: Product
    movement: MovementRecord
    state: SubmissionState = SubmissionState.COMPLETE
    trail: list[SubmissionState] = field(default_factory=list)


def build_details(direction: Direction, detail: Optional[str]) -> dict:
    value = (detail or "").strip() or None
    if direction is Direction.IN:
        return {"invoice_number": value}
    return {"destination": value}


def new_movement(
    *,
    product: Product,
    direction: Direction,
    quantity: int,
    detail: Optional[str],
    acting_user: Optional[str],
    now: datetime,
) -> MovementRecord:
    return MovementRecord(
        product_id=product.id,
        product_name=product.name,
        action_type=direction.action_type,
        quantity=quantity,
        details=build_details(direction, detail),
        date=now.date(),
        time=now.time().replace(microsecond=0),
        user_name=(acting_user or "").strip() or SYSTEM_USER,
    )


class MovementRecorder:
    """Validates and applies one entry/exit submission."""

    def __init__(self, db: Session, now: Callable[[], datetime] = datetime.now):
        self.db = db
        self.now = now
        self.trail: list[SubmissionState] = [SubmissionState.IDLE]

    @property
    def state(self) -> SubmissionState:
        return self.trail[-1]

    def _to(self, state: SubmissionState) -> None:
        self.trail.append(state)

    def record(
        self,
        product_id: int,
        direction: Direction,
        quantity: int,
        detail: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> MovementResult:
        # each submission starts its own trail
        self.trail = [SubmissionState.IDLE]
        direction = Direction(direction)
        self._to(SubmissionState.VALIDATING)

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            self._to(SubmissionState.REJECTED)
            raise ValidationError("quantity must be a positive integer", field="quantity")

        p = self.db.get(Product, product_id)
        if p is None:
            self._to(SubmissionState.REJECTED)
            raise NotFoundError("Product", product_id)

        current = int(p.stock or 0)
        if direction is Direction.OUT and quantity > current:
            self._to(SubmissionState.REJECTED)
            logger.info(
                "movement_rejected",
                extra=log_fields(product_id=p.id, available=current, requested=quantity),
            )
            raise InsufficientStockError(available=current, requested=quantity)

        new_stock = current + quantity if direction is Direction.IN else current - quantity

        self._to(SubmissionState.MUTATING)
        try:
            p.stock = new_stock
            p.status = classify(new_stock, p.min_stock, p.max_stock).value
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._to(SubmissionState.ABORTED)
            logger.error("movement_stock_update_failed", extra=log_fields(product_id=product_id, error=str(e)))
            raise StorageError(f"Could not update stock: {e}") from e

        self._to(SubmissionState.PERSISTED)
        self._to(SubmissionState.RECORDING_HISTORY)
        try:
            movement = new_movement(
                product=p,
                direction=direction,
                quantity=quantity,
                detail=detail,
                acting_user=acting_user,
                now=self.now(),
            )
            self.db.add(movement)
            self.db.commit()
        except SQLAlchemyError as e:
            # same transaction: the stock change is rolled back with it
            self.db.rollback()
            self._to(SubmissionState.ABORTED)
            logger.error("movement_history_append_failed", extra=log_fields(product_id=product_id, error=str(e)))
            raise StorageError(f"Could not record the movement: {e}") from e

        self.db.refresh(p)
        self.db.refresh(movement)
        self._to(SubmissionState.COMPLETE)

        logger.info(
            "movement_recorded",
            extra=log_fields(
                product_id=p.id,
                action_type=movement.action_type,
                quantity=quantity,
                stock=p.stock,
                status=p.status,
            ),
        )
        return MovementResult(product=p, movement=movement, state=self.state, trail=list(self.trail))


def record_movement(
    db: Session,
    product_id: int,
    direction: Direction,
    quantity: int,
    detail: Optional[str] = None,
    acting_user: Optional[str] = None,
    now: Callable[[], datetime] = datetime.now,
) -> MovementResult:
    return MovementRecorder(db, now=now).record(
        product_id, direction, quantity, detail=detail, acting_user=acting_user
    )
