"""
Mapping helpers for order payloads from the commerce platform.

Payloads are arbitrary nested JSON. They are stored untouched as the
assignment snapshot; the few fields the engine reasons about are pulled out
here and nowhere else.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.utils.dateparse import parse_datetime

ITEM_LIST_KEYS = ('items', 'order_items', 'products', 'lines')


@dataclass(frozen=True)
class LineItem:
    sku: str
    quantity: int
    name: str = ''


@dataclass
class OrderRecord:
    """Typed view over a platform order payload."""

    order_id: str
    order_number: str
    status: Optional[str]
    created_at: Optional[datetime]
    payload: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional['OrderRecord']:
        """Build a record, or return None when the payload carries no order id."""
        order_id = extract_order_id(payload)
        if not order_id:
            return None
        return cls(
            order_id=order_id,
            order_number=extract_order_number(payload) or order_id,
            status=extract_status_tag(payload),
            created_at=extract_created_at(payload),
            payload=payload,
        )

    @property
    def sort_key(self):
        # Orders without a creation time sort first, like epoch 0
        created = self.created_at or datetime.min.replace(tzinfo=dt_timezone.utc)
        return (created, self.order_id)

    @property
    def line_items(self) -> List[LineItem]:
        return extract_line_items(self.payload)

    @property
    def customer_name(self) -> str:
        customer = self.payload.get('customer') if isinstance(self.payload, dict) else None
        if not isinstance(customer, dict):
            return ''
        name = customer.get('name') or ' '.join(
            part for part in (customer.get('first_name'), customer.get('last_name')) if part
        )
        return str(name or '').strip()


def _first_present(values) -> Optional[str]:
    for value in values:
        if value is None:
            continue
        normalized = str(value).strip()
        if normalized:
            return normalized
    return None


def _dig(payload, *path):
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def normalize_sku(value) -> Optional[str]:
    if value is None:
        return None
    normalized = str(value).strip().lower()
    return normalized or None


def extract_order_id(payload) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    return _first_present([
        payload.get('id'),
        payload.get('order_id'),
        payload.get('orderId'),
        payload.get('reference_id'),
        payload.get('referenceId'),
    ])


def extract_order_number(payload) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    return _first_present([
        payload.get('reference_id'),
        payload.get('referenceId'),
        payload.get('order_number'),
        payload.get('orderNumber'),
        payload.get('id'),
    ])


def extract_status_tag(payload) -> Optional[str]:
    """Sub-status wins over status; id wins over slug."""
    if not isinstance(payload, dict):
        return None
    status = payload.get('status')
    if isinstance(status, dict):
        sub_status = status.get('sub_status') or status.get('subStatus')
        if isinstance(sub_status, dict):
            tag = _first_present([sub_status.get('id'), sub_status.get('slug')])
            if tag:
                return tag
        return _first_present([status.get('id'), status.get('slug'), status.get('name')])
    return _first_present([status])


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds when implausibly large for seconds
        seconds = value / 1000 if value > 10 ** 11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        try:
            parsed = parse_datetime(str(value).strip())
        except ValueError:
            return None
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def extract_created_at(payload) -> Optional[datetime]:
    if not isinstance(payload, dict):
        return None
    candidates = [
        _dig(payload, 'date', 'created'),
        _dig(payload, 'date', 'date'),
        payload.get('created_at'),
        payload.get('createdAt'),
        payload.get('updated_at'),
        payload.get('updatedAt'),
    ]
    for candidate in candidates:
        parsed = _parse_timestamp(candidate)
        if parsed is not None:
            return parsed
    return None


def extract_item_list(payload) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    for key in ITEM_LIST_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return []


def sanitize_quantity(value) -> int:
    """Non-negative whole quantity; anything unparseable counts as zero."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not quantity.is_finite() or quantity <= 0:
        return 0
    return int(quantity)


def extract_item_sku(item: Dict[str, Any]) -> Optional[str]:
    return _first_present([
        item.get('sku'),
        _dig(item, 'product', 'sku'),
        _dig(item, 'variant', 'sku'),
    ])


def extract_line_items(payload) -> List[LineItem]:
    items = []
    for item in extract_item_list(payload):
        sku = normalize_sku(extract_item_sku(item))
        if not sku:
            continue
        quantity = sanitize_quantity(
            next((item[key] for key in ('quantity', 'qty', 'count') if item.get(key) is not None), None)
        )
        name = _first_present([item.get('name'), _dig(item, 'product', 'name')]) or ''
        items.append(LineItem(sku=sku, quantity=quantity, name=name))
    return items


def with_status(payload, status_tag: str):
    """Copy of ``payload`` with its status replaced by ``status_tag``."""
    if not isinstance(payload, dict):
        return payload
    updated = dict(payload)
    status = updated.get('status')
    if isinstance(status, dict):
        status = dict(status)
        status['id'] = status_tag
        status.pop('sub_status', None)
        updated['status'] = status
    else:
        updated['status'] = status_tag
    return updated
