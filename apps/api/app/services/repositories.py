"""Document store for user content.

Collections are keyed by name (``drills``, ``code_snippets``, ``notes``)
and documents by id. The in-memory implementation stands in for the managed
document database in development and tests.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any


class ContentRepository(ABC):
    """Persist and retrieve user documents by collection."""

    @abstractmethod
    def save(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        """Insert or replace a document."""

    @abstractmethod
    def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Return a document, or ``None`` when it does not exist."""

    @abstractmethod
    def list_for_user(self, collection: str, user_id: str) -> list[dict[str, Any]]:
        """Return every document owned by ``user_id``, newest first."""

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document; returns whether it existed."""


class InMemoryContentRepository(ContentRepository):
    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def save(self, collection: str, document_id: str, document: dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[document_id] = dict(document)

    def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        with self._lock:
            document = self._collections.get(collection, {}).get(document_id)
            return dict(document) if document is not None else None

    def list_for_user(self, collection: str, user_id: str) -> list[dict[str, Any]]:
        with self._lock:
            documents = [
                dict(document)
                for document in self._collections.get(collection, {}).values()
                if document.get("userId") == user_id
            ]
        return sorted(documents, key=lambda doc: doc.get("createdAt") or "", reverse=True)

    def delete(self, collection: str, document_id: str) -> bool:
        with self._lock:
            return self._collections.get(collection, {}).pop(document_id, None) is not None
