"""
Data model for the daily cash and cylinder ledger.

Every total on these classes is a read-only property computed from the
current inputs, so a total can never disagree with the fields it is built
from, whichever path (manual entry, import, stored batch) set them.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config import (
    CYLINDER_SIZES,
    MEMBER_STATUSES,
    NOTE_DENOMINATIONS,
    PLACEHOLDER_ID_PREFIX,
)
from normalizer.amount_parser import to_amount, to_count, to_non_negative_amount

SIZE_KEYS: List[str] = [size for size, _, _ in CYLINDER_SIZES]

_SIZE_BLOB_KEYS: Dict[str, str] = {size: blob_key for size, _, blob_key in CYLINDER_SIZES}

_CYLINDER_FIELDS = {
    "unitprice": "unit_price",
    "amount": "unit_price",
    "price": "unit_price",
    "quantity": "quantity",
    "qty": "quantity",
}

_PAYMENT_FIELDS = {
    "onlinepayment": "online_payment",
    "online": "online_payment",
    "cash": "cash",
}

_ADJUSTMENT_FIELDS = {
    "oldpending": "old_pending",
    "oldbalance": "old_balance",
    "coins": "coins",
}


def _field_key(name: Any) -> str:
    return "".join(ch for ch in str(name).lower() if ch not in " _-₹")


def resolve_cylinder_size(size: Any) -> str:
    """
    Map any spelling of a cylinder size to its canonical key.

    Accepts "14.2kg", "14.2 Kg", "14_2kg", "cylinder14_2kg" and "14.2".

    Raises:
        ValueError: if the size is not one of the four variants
    """
    key = str(size).strip().lower().replace(" ", "")
    if key.startswith("cylinder"):
        key = key[len("cylinder"):]
    key = key.replace("_", ".")
    if not key.endswith("kg"):
        key += "kg"
    if key not in _SIZE_BLOB_KEYS:
        raise ValueError(f"Unknown cylinder size: {size!r}")
    return key


def resolve_cylinder_field(name: Any) -> str:
    """Return 'unit_price' or 'quantity' for a cylinder field name."""
    try:
        return _CYLINDER_FIELDS[_field_key(name)]
    except KeyError:
        raise ValueError(f"Unknown cylinder field: {name!r}") from None


def resolve_payment_field(name: Any) -> str:
    """Return 'online_payment' or 'cash' for a payment field name."""
    try:
        return _PAYMENT_FIELDS[_field_key(name)]
    except KeyError:
        raise ValueError(f"Unknown payment field: {name!r}") from None


def resolve_breakdown_field(name: Any) -> Tuple[str, Any]:
    """
    Classify a cash breakdown field name.

    Returns:
        ("note", face_value) for a banknote count such as "denomination500",
        "notes500" or "500"; ("adjustment", attribute) for old pending,
        old balance and coins.

    Raises:
        ValueError: for anything else
    """
    key = _field_key(name)
    if key in _ADJUSTMENT_FIELDS:
        return "adjustment", _ADJUSTMENT_FIELDS[key]

    for prefix in ("denomination", "notes", "note", "n"):
        if key.startswith(prefix) and key[len(prefix):].isdigit():
            key = key[len(prefix):]
            break
    if key.endswith("notes"):
        key = key[:-len("notes")]
    if key.isdigit() and int(key) in NOTE_DENOMINATIONS:
        return "note", int(key)

    raise ValueError(f"Unknown cash breakdown field: {name!r}")


def is_placeholder_id(member_id: Optional[str]) -> bool:
    """Check whether an id was synthesized for an unmatched import row."""
    return bool(member_id) and str(member_id).startswith(PLACEHOLDER_ID_PREFIX)


@dataclass
class CylinderLine:
    """Price, quantity and total for one cylinder size."""
    unit_price: float = 0.0
    quantity: int = 0

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'amount': self.unit_price,
            'quantity': self.quantity,
            'total': self.line_total,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CylinderLine':
        data = data if isinstance(data, dict) else {}
        return cls(
            unit_price=to_non_negative_amount(data.get('amount')),
            quantity=to_count(data.get('quantity')),
        )


def _empty_notes() -> Dict[int, int]:
    return {face: 0 for face in NOTE_DENOMINATIONS}


@dataclass
class CashBreakdown:
    """
    Banknote counts and loose adjustments used to check the cash in hand.

    The breakdown is a reconciliation aid only: it is never forced to equal
    the declared cash and never feeds the grand total.
    """
    notes: Dict[int, int] = field(default_factory=_empty_notes)
    old_pending: float = 0.0
    old_balance: float = 0.0
    coins: float = 0.0

    @property
    def notes_total(self) -> float:
        return float(sum(face * self.notes.get(face, 0) for face in NOTE_DENOMINATIONS))

    @property
    def denomination_total(self) -> float:
        return self.notes_total + self.old_pending + self.old_balance + self.coins

    def set_field(self, name: Any, value: Any) -> None:
        """Set a note count or an adjustment, coercing the value."""
        kind, target = resolve_breakdown_field(name)
        if kind == "note":
            self.notes[target] = to_count(value)
        else:
            setattr(self, target, to_amount(value))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            f'denomination{face}': self.notes.get(face, 0) for face in NOTE_DENOMINATIONS
        }
        data['oldPending'] = self.old_pending
        data['oldBalance'] = self.old_balance
        data['coins'] = self.coins
        # Stored under the name the saved batches have always used
        data['grandTotal'] = self.denomination_total
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CashBreakdown':
        data = data if isinstance(data, dict) else {}
        return cls(
            notes={face: to_count(data.get(f'denomination{face}')) for face in NOTE_DENOMINATIONS},
            old_pending=to_amount(data.get('oldPending')),
            old_balance=to_amount(data.get('oldBalance')),
            coins=to_amount(data.get('coins')),
        )


def _empty_cylinders() -> Dict[str, CylinderLine]:
    return {size: CylinderLine() for size in SIZE_KEYS}


@dataclass
class DailyLedgerEntry:
    """
    One delivery man's figures for one day.

    ``member_name`` is a snapshot taken when the entry is created; later
    edits to the member record do not change it.
    """
    member_id: str
    member_name: str
    date: str
    cylinders: Dict[str, CylinderLine] = field(default_factory=_empty_cylinders)
    online_payment: float = 0.0
    cash: float = 0.0
    cash_breakdown: CashBreakdown = field(default_factory=CashBreakdown)

    @classmethod
    def blank(cls, member_id: str, member_name: str, date: str) -> 'DailyLedgerEntry':
        return cls(member_id=member_id, member_name=member_name, date=date)

    def line(self, size: Any) -> CylinderLine:
        return self.cylinders[resolve_cylinder_size(size)]

    @property
    def cylinder_total(self) -> float:
        return sum((self.cylinders[size].line_total for size in SIZE_KEYS), 0.0)

    @property
    def denomination_total(self) -> float:
        return self.cash_breakdown.denomination_total

    @property
    def grand_total(self) -> float:
        return self.cylinder_total + self.online_payment + self.cash

    @property
    def is_blank(self) -> bool:
        """True when no cylinder, payment or breakdown input is set."""
        breakdown = self.cash_breakdown
        return (
            all(line.unit_price == 0 and line.quantity == 0 for line in self.cylinders.values())
            and self.online_payment == 0
            and self.cash == 0
            and not any(breakdown.notes.values())
            and breakdown.old_pending == 0
            and breakdown.old_balance == 0
            and breakdown.coins == 0
        )

    def with_identity(self, member_id: str, member_name: str) -> 'DailyLedgerEntry':
        """Return an independent copy filed under another member id/name."""
        clone = copy.deepcopy(self)
        clone.member_id = member_id
        clone.member_name = member_name
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the layout used by stored daily update batches."""
        data: Dict[str, Any] = {
            'memberId': self.member_id,
            'memberName': self.member_name,
            'date': self.date,
        }
        for size in SIZE_KEYS:
            data[_SIZE_BLOB_KEYS[size]] = self.cylinders[size].to_dict()
        data['cylinderTotal'] = self.cylinder_total
        data['onlinePayment'] = self.online_payment
        data['cash'] = self.cash
        data['cashDenomination'] = self.cash_breakdown.to_dict()
        data['grandTotal'] = self.grand_total
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], member_id: Optional[str] = None) -> 'DailyLedgerEntry':
        """
        Rebuild an entry from a stored batch record.

        Totals present in ``data`` are ignored; they are recomputed from
        the inputs.
        """
        return cls(
            member_id=str(data.get('memberId') or member_id or ''),
            member_name=str(data.get('memberName') or ''),
            date=str(data.get('date') or ''),
            cylinders={
                size: CylinderLine.from_dict(data.get(_SIZE_BLOB_KEYS[size]))
                for size in SIZE_KEYS
            },
            online_payment=to_non_negative_amount(data.get('onlinePayment')),
            cash=to_non_negative_amount(data.get('cash')),
            cash_breakdown=CashBreakdown.from_dict(data.get('cashDenomination')),
        )

    def to_row(self) -> List[Any]:
        """Flatten to one spreadsheet row, in export column order."""
        row: List[Any] = [self.member_name, self.date]
        for size in SIZE_KEYS:
            line = self.cylinders[size]
            row.extend([line.unit_price, line.quantity, line.line_total])
        row.extend([self.cylinder_total, self.online_payment, self.cash])
        breakdown = self.cash_breakdown
        row.extend(breakdown.notes.get(face, 0) for face in NOTE_DENOMINATIONS)
        row.extend([
            breakdown.old_pending,
            breakdown.old_balance,
            breakdown.coins,
            breakdown.denomination_total,
            self.grand_total,
        ])
        return row


def batch_totals(entries: Iterable[DailyLedgerEntry]) -> Dict[str, Any]:
    """
    Sum a batch across members, the way the daily update listing's
    totals row does.

    Returns:
        Dictionary with member_count, a per-size breakdown under
        'cylinders' and the batch-wide money totals
    """
    totals: Dict[str, Any] = {
        'member_count': 0,
        'cylinders': {size: {'amount': 0.0, 'quantity': 0, 'total': 0.0} for size in SIZE_KEYS},
        'cylinder_total': 0.0,
        'online_payment': 0.0,
        'cash': 0.0,
        'denomination_total': 0.0,
        'grand_total': 0.0,
    }

    for entry in entries:
        totals['member_count'] += 1
        for size in SIZE_KEYS:
            line = entry.cylinders[size]
            bucket = totals['cylinders'][size]
            bucket['amount'] += line.unit_price
            bucket['quantity'] += line.quantity
            bucket['total'] += line.line_total
        totals['cylinder_total'] += entry.cylinder_total
        totals['online_payment'] += entry.online_payment
        totals['cash'] += entry.cash
        totals['denomination_total'] += entry.denomination_total
        totals['grand_total'] += entry.grand_total

    return totals


@dataclass
class MemberRecord:
    """A team member as kept in the members collection."""
    name: str
    id: Optional[str] = None
    email: str = ""
    role: str = ""
    department: str = ""
    join_date: str = ""
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'department': self.department,
            'joinDate': self.join_date,
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], member_id: Optional[str] = None) -> 'MemberRecord':
        status = str(data.get('status') or 'active')
        if status not in MEMBER_STATUSES:
            status = 'inactive'
        return cls(
            id=member_id or data.get('id'),
            name=str(data.get('name') or ''),
            email=str(data.get('email') or ''),
            role=str(data.get('role') or ''),
            department=str(data.get('department') or ''),
            join_date=str(data.get('joinDate') or ''),
            status=status,
        )
