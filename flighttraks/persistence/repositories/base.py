"""Generic async Firestore repository for user-scoped collections."""

from __future__ import annotations

from typing import Any, Generic, TypeVar, Type

from flighttraks.contracts.common import FirestoreModel
from flighttraks.persistence.errors import DocumentNotFoundError
from flighttraks.persistence.firestore_client import get_firestore_client

T = TypeVar("T", bound=FirestoreModel)


def db() -> Any:
    """Firestore client used by every repository (patched in tests)."""
    return get_firestore_client()


class BaseRepository(Generic[T]):
    """CRUD for a Firestore subcollection under ``/users/{user_id}/``.

    Serialization relies entirely on the contract's ``to_firestore()``
    and ``from_firestore()`` methods, without a separate mapping layer.
    """

    def __init__(self, model_class: Type[T], collection_name: str):
        self._model_class = model_class
        self._collection_name = collection_name

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _collection_ref(self, user_id: str):
        return (
            db().collection("users")
            .document(user_id)
            .collection(self._collection_name)
        )

    def _hydrate(self, doc) -> T:
        data = doc.to_dict()
        data["id"] = doc.id
        return self._model_class.from_firestore(data)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, user_id: str, doc_id: str) -> T | None:
        """Fetch a single document by ID. Returns *None* if missing."""
        doc = await self._collection_ref(user_id).document(doc_id).get()
        if not doc.exists:
            return None
        return self._hydrate(doc)

    async def get_or_raise(self, user_id: str, doc_id: str) -> T:
        """Fetch a single document by ID or raise ``DocumentNotFoundError``."""
        entity = await self.get(user_id, doc_id)
        if entity is None:
            raise DocumentNotFoundError(self._collection_name, doc_id)
        return entity

    async def list_all(self, user_id: str) -> list[T]:
        """Stream every document in the collection."""
        results: list[T] = []
        async for doc in self._collection_ref(user_id).stream():
            results.append(self._hydrate(doc))
        return results

    async def list_where(self, user_id: str, field: str, value: Any) -> list[T]:
        """Return all documents whose ``field`` equals ``value``."""
        query = self._collection_ref(user_id).where(field, "==", value)
        results: list[T] = []
        async for doc in query.stream():
            results.append(self._hydrate(doc))
        return results

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, user_id: str, entity: T) -> str:
        """Create a document.

        If ``to_firestore()`` includes an ``id`` key it is used as the
        document ID. Otherwise Firestore auto-generates one.

        Returns the document ID.
        """
        data = entity.to_firestore()
        doc_id = data.pop("id", None)
        if doc_id:
            await self._collection_ref(user_id).document(doc_id).set(data)
            return doc_id
        ref = await self._collection_ref(user_id).add(data)
        return ref[1].id  # (write_result, doc_ref) tuple

    async def save(self, user_id: str, doc_id: str, entity: T) -> None:
        """Overwrite a document with the full entity.

        Unlike ``update``, fields that became None are removed.
        """
        data = entity.to_firestore()
        data.pop("id", None)
        await self._collection_ref(user_id).document(doc_id).set(data)

    async def update(self, user_id: str, doc_id: str, entity: T) -> None:
        """Partial update (merge) of an existing document."""
        data = entity.to_firestore()
        data.pop("id", None)
        await (
            self._collection_ref(user_id)
            .document(doc_id)
            .set(data, merge=True)
        )

    async def delete(self, user_id: str, doc_id: str) -> None:
        """Delete a document."""
        await self._collection_ref(user_id).document(doc_id).delete()


class GlobalRepository(Generic[T]):
    """Read/write access to a top-level, admin-managed collection."""

    def __init__(self, model_class: Type[T], collection_name: str):
        self._model_class = model_class
        self._collection_name = collection_name

    def _collection_ref(self):
        return db().collection(self._collection_name)

    def _hydrate(self, doc) -> T:
        data = doc.to_dict()
        data["id"] = doc.id
        return self._model_class.from_firestore(data)

    async def get(self, doc_id: str) -> T | None:
        doc = await self._collection_ref().document(doc_id).get()
        if not doc.exists:
            return None
        return self._hydrate(doc)

    async def list_where(self, field: str, value: Any) -> list[T]:
        query = self._collection_ref().where(field, "==", value)
        results: list[T] = []
        async for doc in query.stream():
            results.append(self._hydrate(doc))
        return results

    async def create(self, entity: T) -> str:
        data = entity.to_firestore()
        doc_id = data.pop("id", None)
        if doc_id:
            await self._collection_ref().document(doc_id).set(data)
            return doc_id
        ref = await self._collection_ref().add(data)
        return ref[1].id
