"""
Repositories for daily update batches and team members.

A daily update document stores the whole per-member batch as one JSON
blob in its ``description`` field, with a small wrapper of title, author,
date and status. Saving a batch is a single store write.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from config import COL_MEMBERS, COL_UPDATES, MEMBER_STATUSES, UPDATE_STATUSES
from ledger.models import DailyLedgerEntry, MemberRecord
from storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


def encode_batch(entries: Mapping[str, DailyLedgerEntry]) -> str:
    """Serialize a batch keyed by member id."""
    return json.dumps(
        {member_id: entry.to_dict() for member_id, entry in entries.items()},
        ensure_ascii=False,
    )


def decode_batch(blob: Optional[str]) -> Dict[str, DailyLedgerEntry]:
    """
    Rebuild a batch from its stored blob.

    Older updates carry free text instead of JSON; those decode to an
    empty batch rather than failing.
    """
    if not blob:
        return {}
    try:
        data = json.loads(blob)
    except ValueError:
        logger.warning("Daily update description is not a JSON batch; treating as empty")
        return {}
    if not isinstance(data, dict):
        return {}

    return {
        str(member_id): DailyLedgerEntry.from_dict(record, member_id=str(member_id))
        for member_id, record in data.items()
        if isinstance(record, dict)
    }


@dataclass
class DailyUpdate:
    """A stored daily update: one batch plus its metadata wrapper."""
    title: str
    description: str
    author: str
    date: str
    status: str = "completed"
    id: Optional[str] = None
    created_at: Optional[str] = None

    def entries(self) -> Dict[str, DailyLedgerEntry]:
        return decode_batch(self.description)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'title': self.title,
            'description': self.description,
            'author': self.author,
            'date': self.date,
            'status': self.status,
        }
        if self.created_at:
            data['createdAt'] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DailyUpdate':
        return cls(
            id=data.get('id'),
            title=str(data.get('title') or ''),
            description=str(data.get('description') or ''),
            author=str(data.get('author') or ''),
            date=str(data.get('date') or ''),
            status=str(data.get('status') or 'completed'),
            created_at=data.get('createdAt'),
        )


def _check_status(status: str) -> str:
    if status not in UPDATE_STATUSES:
        raise ValueError(f"Status must be one of {', '.join(UPDATE_STATUSES)}; got {status!r}")
    return status


class DailyUpdateRepository:
    """
    Saves and loads whole batches in the ``dailyUpdates`` collection.
    """

    def __init__(self, store: DocumentStore, default_status: str = "completed"):
        self.store = store
        self.default_status = _check_status(default_status)

    def build_update(
        self,
        entries: Mapping[str, DailyLedgerEntry],
        primary_member_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> DailyUpdate:
        """
        Wrap a batch in its metadata.

        Title, author and date come from the primary entry: the member
        selected when the form was submitted, or the first one.

        Raises:
            ValueError: on an empty batch or an unknown status
        """
        if not entries:
            raise ValueError("No ledger entries to save")

        primary = entries.get(primary_member_id) if primary_member_id else None
        if primary is None:
            primary = next(iter(entries.values()))

        return DailyUpdate(
            title=f"Daily Update - {primary.member_name} - {primary.date}",
            description=encode_batch(entries),
            author=primary.member_name,
            date=primary.date,
            status=_check_status(status or self.default_status),
        )

    def save_batch(
        self,
        entries: Mapping[str, DailyLedgerEntry],
        primary_member_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> str:
        """
        Store a new batch.

        Returns:
            Id of the new daily update

        Raises:
            PersistenceError: if the store rejects the write
        """
        update = self.build_update(entries, primary_member_id, status)
        update.created_at = datetime.now().isoformat()
        update_id = self.store.create(COL_UPDATES, update.to_dict())
        logger.info("Saved daily update %s with %d entries", update_id, len(entries))
        return update_id

    def update_batch(
        self,
        update_id: str,
        entries: Mapping[str, DailyLedgerEntry],
        primary_member_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> None:
        """Replace the batch of an existing daily update."""
        update = self.build_update(entries, primary_member_id, status)
        self.store.update(COL_UPDATES, update_id, update.to_dict())
        logger.info("Updated daily update %s with %d entries", update_id, len(entries))

    def get(self, update_id: str) -> Optional[DailyUpdate]:
        data = self.store.get(COL_UPDATES, update_id)
        return DailyUpdate.from_dict(data) if data is not None else None

    def load_batch(self, update_id: str) -> Dict[str, DailyLedgerEntry]:
        """
        Load the entries of a stored batch.

        Raises:
            KeyError: if there is no such daily update
        """
        update = self.get(update_id)
        if update is None:
            raise KeyError(update_id)
        return update.entries()

    def list_updates(self) -> List[DailyUpdate]:
        """All daily updates, newest first."""
        docs = self.store.list(COL_UPDATES, order_by='createdAt', descending=True)
        return [DailyUpdate.from_dict(doc) for doc in docs]

    def delete(self, update_id: str) -> None:
        self.store.delete(COL_UPDATES, update_id)
        logger.info("Deleted daily update %s", update_id)


class MemberRepository:
    """
    CRUD for the ``members`` collection, which supplies the roster.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _validate(member: MemberRecord) -> None:
        if not member.name.strip():
            raise ValueError("Member name is required")
        if member.status not in MEMBER_STATUSES:
            raise ValueError(f"Member status must be one of {', '.join(MEMBER_STATUSES)}")

    def list_members(self) -> List[MemberRecord]:
        """All members, most recently joined first."""
        docs = self.store.list(COL_MEMBERS, order_by='joinDate', descending=True)
        return [MemberRecord.from_dict(doc, member_id=doc['id']) for doc in docs]

    def list_active(self) -> List[MemberRecord]:
        return [m for m in self.list_members() if m.is_active]

    def get(self, member_id: str) -> Optional[MemberRecord]:
        data = self.store.get(COL_MEMBERS, member_id)
        return MemberRecord.from_dict(data, member_id=member_id) if data is not None else None

    def create(self, member: MemberRecord) -> str:
        self._validate(member)
        member.id = self.store.create(COL_MEMBERS, member.to_dict())
        return member.id

    def update(self, member_id: str, changes: Dict[str, Any]) -> None:
        """
        Apply partial changes to a member.

        Saved daily updates keep the name they were saved with.
        """
        current = self.get(member_id)
        if current is None:
            raise KeyError(member_id)
        if 'status' in changes and changes['status'] not in MEMBER_STATUSES:
            raise ValueError(f"Member status must be one of {', '.join(MEMBER_STATUSES)}")
        merged = MemberRecord.from_dict({**current.to_dict(), **changes}, member_id=member_id)
        self._validate(merged)
        self.store.update(COL_MEMBERS, member_id, merged.to_dict())

    def delete(self, member_id: str) -> None:
        self.store.delete(COL_MEMBERS, member_id)
