# utils/sales_pipeline/models.py
"""
Domain Records for the Sales Pipeline

Immutable records for Account, Deal and Representative:
- Validation at construction (the data-entry boundary)
- Conversion from/to plain store records (camelCase keys, ISO dates,
  notes as a JSON-encoded list)
- Deal.value is derived from the product/goods breakdown
- Deal.stage is derived from Deal.status

Updates never mutate a record: use dataclasses.replace() or the helper
methods, then apply by id-matched replacement in PipelineState.
"""

import itertools
import json
import logging
import time
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from .constants import (
    ACCOUNT_GRADES,
    ACCOUNT_TYPES,
    DEAL_STATUSES,
    DEFAULT_ACCOUNT_TYPE,
    DEFAULT_REP_ROLE,
    GRADE_UNRATED,
    REP_ROLES,
    STAGE_ALIASES,
    STAGE_WON,
    STATUS_ALIASES,
    STATUS_PROBABILITY,
    STATUS_SALES,
    STATUS_STAGE_MAP,
)

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base error for the sales pipeline core."""


class ValidationError(PipelineError):
    """A record or form submission failed validation."""


_id_sequence = itertools.count()


def generate_id(prefix: str) -> str:
    """Timestamp-derived record id, e.g. 'c1718000000000001'."""
    return f"{prefix}{int(time.time() * 1000)}{next(_id_sequence) % 1000:03d}"


# =============================================================================
# FIELD PARSERS
# =============================================================================

def parse_date(value: Any, field_name: str = 'date') -> date:
    """Parse an ISO date (or datetime) into a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field_name}: {value!r}")


def _parse_amount(value: Any, field_name: str) -> int:
    if value in (None, ''):
        return 0
    try:
        amount = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    if amount < 0:
        raise ValidationError(f"{field_name} must be non-negative, got {amount}")
    return amount


def _parse_probability(value: Any) -> int:
    try:
        probability = int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Invalid probability: {value!r}")
    if not 0 <= probability <= 100:
        raise ValidationError(f"probability must be within 0-100, got {value!r}")
    return probability


def _parse_notes(value: Any) -> Tuple[str, ...]:
    """Notes arrive as a list or as a JSON-encoded list string."""
    if value in (None, ''):
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(n) for n in value)
    if isinstance(value, str):
        text = value.strip()
        if text.startswith('['):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                raise ValidationError(f"Invalid notes list: {value!r}")
            return tuple(str(n) for n in parsed)
        return (text,)
    raise ValidationError(f"Invalid notes: {value!r}")


def _text(record: Dict[str, Any], key: str, default: str = '') -> str:
    value = record.get(key)
    if value is None:
        return default
    return str(value).strip()


def _optional_text(record: Dict[str, Any], key: str) -> Optional[str]:
    value = _text(record, key)
    return value or None


def normalize_status(value: Any) -> Optional[str]:
    """Map a raw status label onto the closed status set (None if absent)."""
    if value in (None, ''):
        return None
    text = str(value).strip()
    return STATUS_ALIASES.get(text, text)


def normalize_stage(value: Any) -> Optional[str]:
    if value in (None, ''):
        return None
    text = str(value).strip()
    return STAGE_ALIASES.get(text, text)


# =============================================================================
# ACCOUNT
# =============================================================================

@dataclass(frozen=True)
class Account:
    """A customer or prospect organization."""
    id: str
    name: str
    company: str
    email: str = ''
    phone: str = ''
    address: str = ''
    role: str = ''
    department: str = ''
    type: str = DEFAULT_ACCOUNT_TYPE
    grade: str = GRADE_UNRATED
    target_amount: int = 0
    notes: Tuple[str, ...] = ()
    owner: Optional[str] = None
    team: Optional[str] = None
    owner_id: Optional[str] = None
    last_contacted: Optional[date] = None

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Account id is required")
        if not self.name or not self.company:
            raise ValidationError("Name and company are required")
        if self.type not in ACCOUNT_TYPES:
            raise ValidationError(f"Unknown account type: {self.type!r}")
        if self.grade not in ACCOUNT_GRADES:
            raise ValidationError(f"Unknown account grade: {self.grade!r}")
        if not isinstance(self.target_amount, int) or self.target_amount < 0:
            raise ValidationError(f"targetAmount must be a non-negative integer, got {self.target_amount!r}")
        if self.email and '@' not in self.email:
            raise ValidationError(f"Invalid email: {self.email!r}")
        object.__setattr__(self, 'notes', tuple(self.notes))

    def add_note(self, note: str) -> 'Account':
        """Return a copy with the note appended to the history."""
        note = (note or '').strip()
        if not note:
            raise ValidationError("Note text is required")
        return replace(self, notes=self.notes + (note,))

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Account':
        last_contacted = record.get('lastContacted')
        return cls(
            id=_text(record, 'id'),
            name=_text(record, 'name'),
            company=_text(record, 'company'),
            email=_text(record, 'email'),
            phone=_text(record, 'phone'),
            address=_text(record, 'address'),
            role=_text(record, 'role'),
            department=_text(record, 'department'),
            type=_text(record, 'type') or DEFAULT_ACCOUNT_TYPE,
            grade=_text(record, 'grade') or GRADE_UNRATED,
            target_amount=_parse_amount(record.get('targetAmount'), 'targetAmount'),
            notes=_parse_notes(record.get('notes')),
            owner=_optional_text(record, 'owner'),
            team=_optional_text(record, 'team'),
            owner_id=_optional_text(record, 'ownerId'),
            last_contacted=parse_date(last_contacted, 'lastContacted') if last_contacted else None,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'company': self.company,
            'address': self.address,
            'role': self.role,
            'department': self.department,
            'lastContacted': self.last_contacted.isoformat() if self.last_contacted else '',
            'notes': json.dumps(list(self.notes), ensure_ascii=False),
            'grade': self.grade,
            'targetAmount': self.target_amount,
            'type': self.type,
            'owner': self.owner or '',
            'team': self.team or '',
            'ownerId': self.owner_id or '',
        }


# =============================================================================
# DEAL
# =============================================================================

@dataclass(frozen=True)
class Deal:
    """A revenue opportunity tied to exactly one Account."""
    id: str
    contact_id: str
    status: str
    expected_close_date: date
    title: str = ''
    product_amount: int = 0
    goods_amount: int = 0
    item_details: str = ''
    probability: Optional[int] = None
    owner: Optional[str] = None
    team: Optional[str] = None
    owner_id: Optional[str] = None
    department: str = ''

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Deal id is required")
        if not self.contact_id:
            raise ValidationError("Deal must reference an account")
        if self.status not in DEAL_STATUSES:
            raise ValidationError(f"Unknown deal status: {self.status!r}")
        for name in ('product_amount', 'goods_amount'):
            amount = getattr(self, name)
            if not isinstance(amount, int) or amount < 0:
                raise ValidationError(f"{name} must be a non-negative integer, got {amount!r}")
        object.__setattr__(self, 'expected_close_date', parse_date(self.expected_close_date, 'expectedCloseDate'))
        if self.probability is None:
            object.__setattr__(self, 'probability', STATUS_PROBABILITY[self.status])
        else:
            object.__setattr__(self, 'probability', _parse_probability(self.probability))

    @property
    def value(self) -> int:
        return self.product_amount + self.goods_amount

    @property
    def stage(self) -> str:
        return STATUS_STAGE_MAP[self.status]

    @classmethod
    def for_account(cls, account: Account, **fields) -> 'Deal':
        """Create a deal that inherits the account's ownership at creation time."""
        fields.setdefault('id', generate_id('d'))
        fields.setdefault('owner', account.owner)
        fields.setdefault('team', account.team)
        fields.setdefault('owner_id', account.owner_id)
        fields.setdefault('title', f"{account.company} deal")
        return cls(contact_id=account.id, **fields)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Deal':
        status = normalize_status(record.get('status'))
        if status is None and normalize_stage(record.get('stage')) == STAGE_WON:
            status = STATUS_SALES
        if status is None:
            raise ValidationError(f"Deal {record.get('id')!r} has no status")

        probability = record.get('probability')
        deal = cls(
            id=_text(record, 'id'),
            contact_id=_text(record, 'contactId'),
            status=status,
            expected_close_date=parse_date(record.get('expectedCloseDate'), 'expectedCloseDate'),
            title=_text(record, 'title'),
            product_amount=_parse_amount(record.get('productAmount'), 'productAmount'),
            goods_amount=_parse_amount(record.get('goodsAmount'), 'goodsAmount'),
            item_details=_text(record, 'itemDetails'),
            probability=None if probability in (None, '') else _parse_probability(probability),
            owner=_optional_text(record, 'owner'),
            team=_optional_text(record, 'team'),
            owner_id=_optional_text(record, 'ownerId'),
            department=_text(record, 'department'),
        )

        stored_value = record.get('value')
        if stored_value not in (None, '') and _parse_amount(stored_value, 'value') != deal.value:
            logger.warning(
                f"Deal {deal.id}: stored value {stored_value} != product + goods "
                f"({deal.value}), using breakdown"
            )
        return deal

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'value': self.value,
            'productAmount': self.product_amount,
            'goodsAmount': self.goods_amount,
            'itemDetails': self.item_details,
            'status': self.status,
            'stage': self.stage,
            'contactId': self.contact_id,
            'expectedCloseDate': self.expected_close_date.isoformat(),
            'probability': self.probability,
            'owner': self.owner or '',
            'team': self.team or '',
            'ownerId': self.owner_id or '',
            'department': self.department,
        }


# =============================================================================
# REPRESENTATIVE
# =============================================================================

@dataclass(frozen=True)
class Representative:
    """A salesperson."""
    id: str
    name: str
    email: str
    team: str = ''
    department: str = ''
    role: str = DEFAULT_REP_ROLE
    phone: str = ''

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Representative id is required")
        if not self.name or not self.email:
            raise ValidationError("Name and email are required")
        if '@' not in self.email:
            raise ValidationError(f"Invalid email: {self.email!r}")
        if self.role not in REP_ROLES:
            raise ValidationError(f"Unknown role: {self.role!r}")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Representative':
        return cls(
            id=_text(record, 'id'),
            name=_text(record, 'name'),
            email=_text(record, 'email'),
            team=_text(record, 'team'),
            department=_text(record, 'department'),
            role=_text(record, 'role') or DEFAULT_REP_ROLE,
            phone=_text(record, 'phone'),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'team': self.team,
            'department': self.department,
            'role': self.role,
            'email': self.email,
            'phone': self.phone,
        }


RECORD_TYPES = {
    'accounts': Account,
    'deals': Deal,
    'representatives': Representative,
}
