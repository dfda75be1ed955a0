from dataclasses import dataclass
from enum import Enum


class StockStatus(str, Enum):
    OUT_OF_STOCK = "Out of Stock"
    LOW_STOCK = "Low Stock"
    IN_STOCK = "In Stock"
    OVER_STOCK = "Over Stock"


class GaugeTier(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFORMATIONAL = "informational"
    NORMAL = "normal"


# share of the min..max range above the minimum that still counts as "warning"
WARNING_BAND = 0.3


@dataclass(frozen=True)
class Gauge:
    percentage: float
    tier: GaugeTier


def classify(stock: int, min_stock: int, max_stock: int) -> StockStatus:
    # order matters: first match wins, ranges are not validated here
    if stock > max_stock:
        return StockStatus.OVER_STOCK
    if stock > min_stock:
        return StockStatus.IN_STOCK
    if stock > 0:
        return StockStatus.LOW_STOCK
    return StockStatus.OUT_OF_STOCK


def gauge_percentage(stock: int, min_stock: int, max_stock: int) -> float:
    if max_stock <= min_stock:
        return 100.0 if stock > 0 else 0.0
    pct = (stock - min_stock) / (max_stock - min_stock) * 100
    return float(min(100.0, max(0.0, pct)))


def gauge_tier(stock: int, min_stock: int, max_stock: int) -> GaugeTier:
    if stock == 0:
        return GaugeTier.CRITICAL
    if stock <= min_stock:
        return GaugeTier.CRITICAL
    if stock <= min_stock + WARNING_BAND * (max_stock - min_stock):
        return GaugeTier.WARNING
    if stock > max_stock:
        return GaugeTier.INFORMATIONAL
    return GaugeTier.NORMAL


def gauge(stock: int, min_stock: int, max_stock: int) -> Gauge:
    """Fill level and colour tier for a stock bar.

    Independent of ``classify``: a product can be "In Stock" while its bar is
    in the warning band.
    """
    return Gauge(
        percentage=gauge_percentage(stock, min_stock, max_stock),
        tier=gauge_tier(stock, min_stock, max_stock),
    )


def compute_stock_fields(p) -> dict:
    stock = int(p.stock or 0)
    min_stock = int(p.min_stock or 0)
    max_stock = int(p.max_stock or 0)

    g = gauge(stock, min_stock, max_stock)
    return {
        "status": classify(stock, min_stock, max_stock).value,
        "gauge": {"percentage": g.percentage, "tier": g.tier.value},
    }
