from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    CheckConstraint,
    Index,
)

from app.core.database import Base
from app.models.clock import utcnow


class Product(Base):
    __tablename__ = "products"

    __table_args__ = (
        # SAFETY CONSTRAINTS
        CheckConstraint("stock >= 0", name="ck_stock_non_negative"),
        CheckConstraint("min_stock > 0", name="ck_min_stock_positive"),
        CheckConstraint("max_stock > 0", name="ck_max_stock_positive"),

        # PERFORMANCE INDEXES
        Index("ix_products_name", "name"),
        Index("ix_products_category", "category"),
    )

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default="")

    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=1)
    max_stock = Column(Integer, nullable=False, default=100)

    # derived from stock/min/max on every write (see services.stock.classify)
    status = Column(String, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
