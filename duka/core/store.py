# =========================================================
# DOCUMENT STORE
#
# The only contract the services have with persistence:
# create / get / update / delete / list documents and an
# atomic numeric increment. SqlDocumentStore keeps each
# document as a JSON row in the `documents` table.
# =========================================================

import logging
import uuid
from abc import ABC, abstractmethod

from fastapi import Depends
from sqlalchemy import Integer, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from duka.core.exceptions import DocumentNotFoundError, StoreError
from duka.database import get_db
from duka.models.documents import Document

logger = logging.getLogger("duka")

PRODUCTS = "products"
SALES = "sales"
CUSTOMER_BALANCES = "customer_balances"
CATEGORIES = "categories"


class DocumentStore(ABC):

    @abstractmethod
    def create_document(self, collection: str, fields: dict) -> str:
        ...

    @abstractmethod
    def get_document(self, collection: str, document_id: str) -> dict:
        ...

    @abstractmethod
    def update_document(self, collection: str, document_id: str, fields: dict) -> None:
        ...

    @abstractmethod
    def delete_document(self, collection: str, document_id: str) -> None:
        ...

    @abstractmethod
    def list_documents(
        self,
        collection: str,
        filters: dict | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[dict], str | None]:
        ...

    @abstractmethod
    def atomic_increment(self, collection: str, document_id: str, deltas: dict) -> None:
        """Apply ``{field: delta}`` to numeric fields without a read-modify-write
        by the caller."""


def _sort_documents(items: list[dict], field: str, descending: bool) -> list[dict]:
    present = [item for item in items if item.get(field) is not None]
    missing = [item for item in items if item.get(field) is None]

    present.sort(key=lambda item: item[field], reverse=descending)

    return present + missing


def paginate_documents(
    items: list[dict],
    limit: int | None,
    cursor: str | None,
) -> tuple[list[dict], str | None]:
    """Slice an ordered result set after the document whose id is ``cursor``."""
    start = 0

    if cursor is not None:
        ids = [item["id"] for item in items]
        if cursor not in ids:
            raise StoreError(f"Unknown cursor: {cursor}")
        start = ids.index(cursor) + 1

    if limit is None:
        return items[start:], None

    page = items[start:start + limit]
    has_more = start + limit < len(items)

    return page, (page[-1]["id"] if has_more and page else None)


class SqlDocumentStore(DocumentStore):

    def __init__(self, db: Session):
        self.db = db

    def _row(self, collection: str, document_id: str, for_update: bool = False) -> Document:
        query = self.db.query(Document).filter(
            Document.collection == collection,
            Document.id == document_id,
        )

        if for_update:
            query = query.with_for_update()

        row = query.first()

        if row is None:
            raise DocumentNotFoundError(collection, document_id)

        return row

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Store {action} failed: {exc}")
            raise StoreError(f"Unable to {action}") from exc

    @staticmethod
    def _to_dict(row: Document) -> dict:
        return {"id": row.id, **(row.data or {})}

    def create_document(self, collection, fields):
        data = {key: value for key, value in fields.items() if key != "id"}
        row = Document(id=uuid.uuid4().hex, collection=collection, data=data)

        self.db.add(row)
        self._commit(f"create {collection} document")

        return row.id

    def get_document(self, collection, document_id):
        return self._to_dict(self._row(collection, document_id))

    def update_document(self, collection, document_id, fields):
        row = self._row(collection, document_id, for_update=True)

        changes = {key: value for key, value in fields.items() if key != "id"}

        # Assign a new dict so the JSON column registers the change
        row.data = {**(row.data or {}), **changes}
        self._commit(f"update {collection}/{document_id}")

    def delete_document(self, collection, document_id):
        row = self._row(collection, document_id)

        self.db.delete(row)
        self._commit(f"delete {collection}/{document_id}")

    def list_documents(
        self,
        collection,
        filters=None,
        order_by=None,
        descending=False,
        limit=None,
        cursor=None,
    ):
        rows = (
            self.db.query(Document)
            .filter(Document.collection == collection)
            .order_by(Document.created_at, Document.id)
            .all()
        )

        items = [self._to_dict(row) for row in rows]

        if filters:
            items = [
                item for item in items
                if all(item.get(key) == value for key, value in filters.items())
            ]

        if order_by:
            items = _sort_documents(items, order_by, descending)

        return paginate_documents(items, limit, cursor)

    def atomic_increment(self, collection, document_id, deltas):
        if self.db.get_bind().dialect.name == "sqlite":
            self._increment_in_sql(collection, document_id, deltas)
            return

        row = self._row(collection, document_id, for_update=True)

        data = dict(row.data or {})
        for field, delta in deltas.items():
            data[field] = (data.get(field) or 0) + delta

        row.data = data
        self._commit(f"increment {collection}/{document_id}")

    def _increment_in_sql(self, collection, document_id, deltas):
        # SQLite has no row locks; a single UPDATE is serialized by the database lock
        arguments = []
        for field, delta in deltas.items():
            path = f'$."{field}"'
            current = func.json_extract(Document.data, path, type_=Integer)
            arguments += [path, func.coalesce(current, 0) + delta]

        statement = (
            update(Document)
            .where(Document.collection == collection, Document.id == document_id)
            .values(data=func.json_set(Document.data, *arguments))
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.db.execute(statement)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Store increment {collection}/{document_id} failed: {exc}")
            raise StoreError(f"Unable to increment {collection}/{document_id}") from exc

        if result.rowcount == 0:
            self.db.rollback()
            raise DocumentNotFoundError(collection, document_id)

        self._commit(f"increment {collection}/{document_id}")


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)
