from datetime import datetime

from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.core.security import hash_password
from app.models.product import Product
from app.models.user import User, UserRole
from app.services.movements import INITIAL_STOCK_INVOICE, Direction, new_movement
from app.services.stock import classify

logger = get_logger("core.seed")

# Change these creds anytime (local defaults)
DEFAULT_USERS = [
    {"email": "admin@example.com", "display_name": "Admin", "role": "admin", "password": "admin123"},
    {"email": "user@example.com", "display_name": "Operator", "role": "user", "password": "user123"},
    {"email": "viewer@example.com", "display_name": "Viewer", "role": "viewer", "password": "viewer123"},
]

DEMO_PRODUCTS = [
    {"name": "Harina de trigo", "category": "Ingredientes", "stock": 12, "min_stock": 10, "max_stock": 50},
    {"name": "Azúcar", "category": "Ingredientes", "stock": 6, "min_stock": 10, "max_stock": 40},
    {"name": "Pan integral", "category": "Productos terminados", "stock": 0, "min_stock": 5, "max_stock": 30},
    {"name": "Levadura", "category": "Ingredientes", "stock": 80, "min_stock": 5, "max_stock": 60},
]


def seed_users_if_empty(db: Session) -> int:
    if db.query(User).count() > 0:
        return 0

    for s in DEFAULT_USERS:
        u = User(
            email=s["email"],
            display_name=s["display_name"],
            password_hash=hash_password(s["password"]),
        )
        u.access = UserRole(role=s["role"], is_active=True)
        db.add(u)

    db.commit()
    logger.info("seeded_users", extra={"count": len(DEFAULT_USERS)})
    return len(DEFAULT_USERS)


def seed_demo_products(db: Session) -> int:
    if db.query(Product).count() > 0:
        return 0

    now = datetime.now()
    for s in DEMO_PRODUCTS:
        p = Product(**s, status=classify(s["stock"], s["min_stock"], s["max_stock"]).value)
        db.add(p)
        db.flush()
        if p.stock > 0:
            db.add(
                new_movement(
                    product=p,
                    direction=Direction.IN,
                    quantity=p.stock,
                    detail=INITIAL_STOCK_INVOICE,
                    acting_user=None,
                    now=now,
                )
            )

    db.commit()
    logger.info("seeded_products", extra={"count": len(DEMO_PRODUCTS)})
    return len(DEMO_PRODUCTS)


if __name__ == "__main__":
    from app.core.database import Base, SessionLocal, engine
    from app.core.logging_config import configure_logging

    configure_logging()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_users_if_empty(db)
        seed_demo_products(db)
    finally:
        db.close()
