from datetime import datetime
from typing import Iterable, Literal, Optional

from pydantic import BaseModel

from app.models.clock import utcnow
from app.services.stock import StockStatus, classify

AlertType = Literal["out_of_stock", "low_stock", "over_stock"]

_ALERTS: dict[StockStatus, tuple[AlertType, str, str]] = {
    StockStatus.OUT_OF_STOCK: ("out_of_stock", "Out of stock", "{name} is out of stock"),
    StockStatus.LOW_STOCK: ("low_stock", "Low stock", "{name} is running low ({stock} units)"),
    StockStatus.OVER_STOCK: ("over_stock", "Over stock", "{name} has excess stock ({stock} units)"),
}


class StockAlert(BaseModel):
    id: str
    type: AlertType
    title: str
    message: str
    product_id: int
    product_name: str
    stock: int
    created_at: datetime


def build_stock_alerts(products: Iterable, now: Optional[datetime] = None) -> list[StockAlert]:
    """One alert per product whose status is anything but In Stock."""
    now = now or utcnow()
    alerts: list[StockAlert] = []

    for p in products:
        stock = int(p.stock or 0)
        status = classify(stock, p.min_stock, p.max_stock)
        if status not in _ALERTS:
            continue

        kind, title, template = _ALERTS[status]
        alerts.append(
            StockAlert(
                id=f"{kind}_{p.id}",
                type=kind,
                title=title,
                message=template.format(name=p.name, stock=stock),
                product_id=p.id,
                product_name=p.name,
                stock=stock,
                created_at=now,
            )
        )

    return alerts
