"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. ``StaticPool`` keeps a
single connection so the test's own session and the sessions opened by the
API (through the overridden ``get_db`` dependency) see the same data.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps_auth import get_db
from app.core.database import Base, make_engine
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models.product import Product
from app.models.user import User, UserRole
from app.services.stock import classify


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role="user", password="secret123", display_name="", is_active=True):
    u = User(email=email, display_name=display_name, password_hash=hash_password(password))
    u.access = UserRole(role=role, is_active=is_active)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def make_product(db, name="Harina", category="Ingredientes", stock=0, min_stock=5, max_stock=50):
    p = Product(
        name=name,
        category=category,
        stock=stock,
        min_stock=min_stock,
        max_stock=max_stock,
        status=classify(stock, min_stock, max_stock).value,
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin(db):
    return make_user(db, "admin@example.com", role="admin", display_name="Admin")


@pytest.fixture()
def operator(db):
    return make_user(db, "operator@example.com", role="user", display_name="Operator")


@pytest.fixture()
def viewer(db):
    return make_user(db, "viewer@example.com", role="viewer", display_name="Viewer")


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def operator_headers(operator):
    return auth_headers(operator)


@pytest.fixture()
def viewer_headers(viewer):
    return auth_headers(viewer)
