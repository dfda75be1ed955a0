from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    Integer,
    String,
    Time,
    event,
)

from app.core.database import Base
from app.core.errors import InventoryError
from app.core.logging_config import get_logger

logger = get_logger("models.movement")

ENTRY = "Entrada"
EXIT = "Salida"
ACTION_TYPES = (ENTRY, EXIT)

SYSTEM_USER = "Sistema"


class MovementRecord(Base):
    """One stock entry or exit. Append-only."""

    __tablename__ = "movement_history"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        CheckConstraint("action_type IN ('Entrada', 'Salida')", name="ck_movement_action_type"),
    )

    # append key: history is ordered by id, never by a timestamp
    id = Column(Integer, primary_key=True, index=True)

    # plain integer, not a FK: history survives product deletion
    product_id = Column(Integer, nullable=True, index=True)
    # snapshot of the name at the time of the movement
    product_name = Column(String, nullable=False)

    action_type = Column(String, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    # {"invoice_number": ...} for entries, {"destination": ...} for exits
    details = Column(JSON, nullable=False, default=dict)

    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)

    user_name = Column(String, nullable=False, default=SYSTEM_USER)


class ImmutableRecordError(InventoryError):
    code = "IMMUTABLE_RECORD"
    status_code = 409
    default_message = "Movement history is append-only"


@event.listens_for(MovementRecord, "before_update")
def _block_movement_update(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "MovementRecord", "entity_id": target.id, "operation": "UPDATE"},
    )
    raise ImmutableRecordError()


@event.listens_for(MovementRecord, "before_delete")
def _block_movement_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={"entity_type": "MovementRecord", "entity_id": target.id, "operation": "DELETE"},
    )
    raise ImmutableRecordError()
