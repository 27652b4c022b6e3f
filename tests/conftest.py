"""Shared test fixtures.

The app runs against an in-memory sqlite database whose tables are rebuilt
for every test. Carts and rate-limit counters are process-wide, so they are
reset as well.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key")

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from duka.core.exceptions import StoreError
from duka.core.jwt import create_access_token
from duka.core.rate_limiter import limiter
from duka.core.store import SqlDocumentStore
from duka.database import Base, SessionLocal, engine, get_db
from duka.main import app
from duka.schemas.product import Product, ProductCreate
from duka.services import product_service
from duka.services.cart import cart_sessions


# ─── Store that can be told to fail ─────────────────────────────────────────


class FlakyStore(SqlDocumentStore):
    """SqlDocumentStore that records every call and rejects chosen ones.

    ``failures`` maps an operation name (``create``, ``update``, ``increment``, ``list``)
    to collections or document ids that should raise ``StoreError``.
    ``list`` calls are recorded but left out of ``writes``.
    """

    def __init__(self, db: Session, failures: dict[str, set[str]] | None = None):
        super().__init__(db)
        self.failures = failures or {}
        self.calls: list[tuple[str, str, str | None]] = []

    def _check(self, operation: str, collection: str, document_id: str | None = None):
        self.calls.append((operation, collection, document_id))
        targets = self.failures.get(operation, set())
        if collection in targets or document_id in targets:
            raise StoreError(f"{operation} on {collection} rejected")

    @property
    def writes(self) -> list[tuple[str, str, str | None]]:
        return [call for call in self.calls if call[0] != "list"]

    def create_document(self, collection, fields):
        self._check("create", collection)
        return super().create_document(collection, fields)

    def update_document(self, collection, document_id, fields):
        self._check("update", collection, document_id)
        return super().update_document(collection, document_id, fields)

    def atomic_increment(self, collection, document_id, deltas):
        self._check("increment", collection, document_id)
        return super().atomic_increment(collection, document_id, deltas)

    def list_documents(self, collection, *args, **kwargs):
        self._check("list", collection)
        return super().list_documents(collection, *args, **kwargs)


# ─── Database & app ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _fresh_state() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    limiter.reset()
    cart_sessions.reset()
    yield


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def store(db: Session) -> FlakyStore:
    return FlakyStore(db)


@pytest.fixture()
def flaky_store(db: Session):
    def _make(**failures: set[str]) -> FlakyStore:
        return FlakyStore(db, failures)

    return _make


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient sharing the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    token = create_access_token({"sub": "cashier-1", "email": "cashier@duka.test"})
    return {"Authorization": f"Bearer {token}"}


# ─── Catalog ────────────────────────────────────────────────────────────────


@pytest.fixture()
def make_product(store: FlakyStore):
    def _make(
        name: str = "Widget",
        selling_price: str = "100",
        quantity: int = 10,
        sold: int = 0,
        price: str = "60",
        **extra,
    ) -> Product:
        return product_service.create_product(
            store,
            ProductCreate(
                name=name,
                price=Decimal(price),
                selling_price=Decimal(selling_price),
                quantity=quantity,
                sold=sold,
                **extra,
            ),
        )

    return _make


@pytest.fixture()
def widget(make_product) -> Product:
    return make_product()
