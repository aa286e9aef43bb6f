"""
Storage module: document store and repositories.
"""
from .document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    JSONFileDocumentStore,
    PersistenceError,
)
from .repositories import (
    DailyUpdate,
    DailyUpdateRepository,
    MemberRepository,
    decode_batch,
    encode_batch,
)

__all__ = [
    'DocumentStore', 'InMemoryDocumentStore', 'JSONFileDocumentStore', 'PersistenceError',
    'DailyUpdate', 'DailyUpdateRepository', 'MemberRepository', 'decode_batch', 'encode_batch',
]
