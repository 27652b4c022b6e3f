"""SqlDocumentStore contract."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from duka.core.exceptions import DocumentNotFoundError, StoreError
from duka.core.store import SqlDocumentStore
from duka.database import Base


@pytest.fixture()
def docs(db) -> SqlDocumentStore:
    return SqlDocumentStore(db)


class TestDocuments:
    def test_create_and_get(self, docs) -> None:
        doc_id = docs.create_document("things", {"name": "kettle", "id": "ignored"})

        assert docs.get_document("things", doc_id) == {"id": doc_id, "name": "kettle"}

    def test_get_is_scoped_to_collection(self, docs) -> None:
        doc_id = docs.create_document("things", {"name": "kettle"})

        with pytest.raises(DocumentNotFoundError):
            docs.get_document("other", doc_id)

    def test_update_merges_fields(self, docs) -> None:
        doc_id = docs.create_document("things", {"name": "kettle", "size": 1})
        docs.update_document("things", doc_id, {"size": 2, "colour": "red"})

        assert docs.get_document("things", doc_id) == {
            "id": doc_id,
            "name": "kettle",
            "size": 2,
            "colour": "red",
        }

    def test_update_missing_document(self, docs) -> None:
        with pytest.raises(DocumentNotFoundError):
            docs.update_document("things", "nope", {"size": 2})

    def test_delete(self, docs) -> None:
        doc_id = docs.create_document("things", {"name": "kettle"})
        docs.delete_document("things", doc_id)

        with pytest.raises(DocumentNotFoundError):
            docs.get_document("things", doc_id)


class TestAtomicIncrement:
    def test_applies_every_delta(self, docs) -> None:
        doc_id = docs.create_document("products", {"sold": 2, "balance": 8})

        docs.atomic_increment("products", doc_id, {"sold": 3, "balance": -3})

        assert docs.get_document("products", doc_id)["sold"] == 5
        assert docs.get_document("products", doc_id)["balance"] == 5

    def test_missing_field_starts_at_zero(self, docs) -> None:
        doc_id = docs.create_document("products", {})
        docs.atomic_increment("products", doc_id, {"sold": 1})
        assert docs.get_document("products", doc_id)["sold"] == 1

    def test_concurrent_sales_do_not_lose_updates(self, tmp_path) -> None:
        file_engine = create_engine(
            f"sqlite:///{tmp_path / 'shop.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=file_engine)
        Sessions = sessionmaker(bind=file_engine)

        with Sessions() as session:
            doc_id = SqlDocumentStore(session).create_document(
                "products", {"sold": 0, "balance": 1000}
            )

        def sell(_):
            with Sessions() as session:
                worker_store = SqlDocumentStore(session)
                for _ in range(25):
                    worker_store.atomic_increment("products", doc_id, {"sold": 1, "balance": -1})

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(sell, range(8)))

        with Sessions() as session:
            product = SqlDocumentStore(session).get_document("products", doc_id)

        file_engine.dispose()

        assert (product["sold"], product["balance"]) == (200, 800)

    def test_missing_document(self, docs) -> None:
        with pytest.raises(DocumentNotFoundError):
            docs.atomic_increment("products", "nope", {"sold": 1})


class TestListing:
    def _seed(self, docs) -> list[str]:
        return [
            docs.create_document("things", {"name": name, "rank": rank, "kind": kind})
            for name, rank, kind in [
                ("a", 3, "x"),
                ("b", 1, "y"),
                ("c", 2, "x"),
                ("d", None, "x"),
            ]
        ]

    def test_filter_by_equality(self, docs) -> None:
        self._seed(docs)
        items, cursor = docs.list_documents("things", filters={"kind": "x"})
        assert sorted(item["name"] for item in items) == ["a", "c", "d"]
        assert cursor is None

    def test_order_puts_missing_values_last(self, docs) -> None:
        self._seed(docs)
        items, _ = docs.list_documents("things", order_by="rank")
        assert [item["name"] for item in items] == ["b", "c", "a", "d"]

        items, _ = docs.list_documents("things", order_by="rank", descending=True)
        assert [item["name"] for item in items] == ["a", "c", "b", "d"]

    def test_cursor_pagination(self, docs) -> None:
        self._seed(docs)

        page, cursor = docs.list_documents("things", order_by="rank", limit=3)
        assert [item["name"] for item in page] == ["b", "c", "a"]
        assert cursor == page[-1]["id"]

        page, cursor = docs.list_documents("things", order_by="rank", limit=3, cursor=cursor)
        assert [item["name"] for item in page] == ["d"]
        assert cursor is None

    def test_unknown_cursor(self, docs) -> None:
        self._seed(docs)
        with pytest.raises(StoreError):
            docs.list_documents("things", cursor="bogus")
