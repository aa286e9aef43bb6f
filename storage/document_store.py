"""
Generic document store.

Documents are plain JSON-compatible dicts grouped into named collections
and addressed by an opaque id. ``create`` returns a new id; ``get``,
``update`` and ``delete`` take an existing one.
"""
import copy
import json
import logging
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Collections = Dict[str, Dict[str, Dict[str, Any]]]


class PersistenceError(Exception):
    """Raised when the store cannot be read or a write is rejected."""


class DocumentStore(ABC):
    """
    Abstract key-value document collection.
    """

    @abstractmethod
    def create(self, collection: str, data: Dict[str, Any]) -> str:
        """Store a new document and return its id."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document with its ``id``, or None if it does not exist."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Merge ``data`` into an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove an existing document."""

    @abstractmethod
    def list(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """Return all documents of a collection, each with its ``id``."""


class InMemoryDocumentStore(DocumentStore):
    """
    Document store held in a dict.

    Every write is applied to a copy of the data and swapped in only after
    ``_commit`` succeeds, so a failed write leaves the store unchanged.
    """

    def __init__(self, collections: Optional[Collections] = None):
        self._collections: Collections = copy.deepcopy(collections or {})

    def _commit(self, collections: Collections) -> None:
        """Persist a new state. Nothing to do in memory."""

    def _apply(self, change: Callable[[Collections], Any]) -> Any:
        staged = copy.deepcopy(self._collections)
        result = change(staged)
        self._commit(staged)
        self._collections = staged
        return result

    def create(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex

        def change(state: Collections) -> str:
            doc = {k: v for k, v in copy.deepcopy(data).items() if k != 'id'}
            state.setdefault(collection, {})[doc_id] = doc
            return doc_id

        return self._apply(change)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._collections.get(collection, {}).get(doc_id)
        if doc is None:
            return None
        return {'id': doc_id, **copy.deepcopy(doc)}

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        def change(state: Collections) -> None:
            docs = state.get(collection, {})
            if doc_id not in docs:
                raise PersistenceError(f"No document {doc_id!r} in {collection!r}")
            docs[doc_id].update({k: v for k, v in copy.deepcopy(data).items() if k != 'id'})

        self._apply(change)

    def delete(self, collection: str, doc_id: str) -> None:
        def change(state: Collections) -> None:
            docs = state.get(collection, {})
            if doc_id not in docs:
                raise PersistenceError(f"No document {doc_id!r} in {collection!r}")
            del docs[doc_id]

        self._apply(change)

    def list(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        docs = [
            {'id': doc_id, **copy.deepcopy(doc)}
            for doc_id, doc in self._collections.get(collection, {}).items()
        ]
        if order_by:
            docs.sort(key=lambda d: str(d.get(order_by) or ''), reverse=descending)
        return docs


class JSONFileDocumentStore(InMemoryDocumentStore):
    """
    Document store persisted to a single JSON file.

    Writes go to a temporary file in the same directory which then replaces
    the store file, so a crash mid-write never leaves a truncated store.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        super().__init__(self._read())
        logger.info("Opened document store %s", self.path)

    def _read(self) -> Collections:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Store {self.path} is not a JSON object")
        return data

    def _commit(self, collections: Collections) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix='.tmp',
                delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(collections, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(f"Could not write store {self.path}: {e}") from e
