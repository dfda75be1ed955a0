from datetime import date
from typing import Optional

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from app.models.movement import ENTRY, EXIT, MovementRecord
from app.models.product import Product
from app.services.stock import StockStatus, classify

TOP_PRODUCTS_LIMIT = 5


def monthly_totals(db: Session, action_type: str) -> list[dict]:
    year = extract("year", MovementRecord.date)
    month = extract("month", MovementRecord.date)

    rows = (
        db.query(year.label("y"), month.label("m"), func.sum(MovementRecord.quantity).label("total"))
        .filter(MovementRecord.action_type == action_type)
        .group_by(year, month)
        .order_by(year, month)
        .all()
    )
    return [
        {"month": f"{int(r.y):04d}-{int(r.m):02d}", "total": int(r.total or 0)}
        for r in rows
    ]


def top_products(db: Session, action_type: str, limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    total = func.sum(MovementRecord.quantity)
    rows = (
        db.query(MovementRecord.product_name, total.label("total"))
        .filter(MovementRecord.action_type == action_type)
        .group_by(MovementRecord.product_name)
        .order_by(total.desc(), MovementRecord.product_name.asc())
        .limit(limit)
        .all()
    )
    return [{"product_name": r.product_name, "total": int(r.total or 0)} for r in rows]


def stock_counts(db: Session) -> dict:
    rows = db.query(Product.stock, Product.min_stock, Product.max_stock).all()
    statuses = [classify(int(r.stock or 0), r.min_stock, r.max_stock) for r in rows]
    return {
        "total_products": len(rows),
        "low_stock_count": sum(1 for s in statuses if s is StockStatus.LOW_STOCK),
        "out_of_stock_count": sum(1 for s in statuses if s is StockStatus.OUT_OF_STOCK),
    }


def dashboard(db: Session) -> dict:
    return {
        **stock_counts(db),
        "total_movements": db.query(MovementRecord).count(),
        "monthly_entries": monthly_totals(db, ENTRY),
        "monthly_exits": monthly_totals(db, EXIT),
        "top_entries": top_products(db, ENTRY),
        "top_exits": top_products(db, EXIT),
    }


def _sum_quantity(db: Session, action_type: str) -> int:
    total = (
        db.query(func.coalesce(func.sum(MovementRecord.quantity), 0))
        .filter(MovementRecord.action_type == action_type)
        .scalar()
    )
    return int(total or 0)


def history_metrics(db: Session, action_type: Optional[str] = None, today: Optional[date] = None) -> dict:
    """Global (unpaginated) figures shown above the history table.

    A filter on one action type zeroes the other total.
    """
    today = today or date.today()

    today_count = db.query(MovementRecord).filter(MovementRecord.date == today).count()

    total_entries = _sum_quantity(db, ENTRY) if action_type in (None, ENTRY) else 0
    total_exits = _sum_quantity(db, EXIT) if action_type in (None, EXIT) else 0

    return {
        "today_movements": today_count,
        "total_entries": total_entries,
        "total_exits": total_exits,
    }
