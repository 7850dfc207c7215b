"""
Stock reconciliation for the Order Preparation engine.

Turns a physical shelf count into the quantity the commerce platform should
publish as sellable. Units sitting in orders that are claimed but not yet
finished are still on the shelf, so an override count subtracts them.
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from ..models import Assignment
from ..exceptions import InvalidCountException, ValidationException
from ..adapters.order_source import get_order_source
from ..snapshots import extract_line_items, normalize_sku, sanitize_quantity

logger = logging.getLogger(__name__)

MODE_OVERRIDE = 'override'
MODE_INCREMENT = 'increment'
RECONCILE_MODES = (MODE_OVERRIDE, MODE_INCREMENT)


@dataclass(frozen=True)
class ReconciliationResult:
    sku: str
    mode: str
    physical_count: int
    pending: int
    current_remote_stock: int
    remote_quantity: int
    delta: int

    @property
    def adjustment(self) -> Optional[Dict[str, Any]]:
        """Platform stock adjustment for this result, or None when nothing changes."""
        if self.delta == 0:
            return None
        return {
            'sku': self.sku,
            'quantity': abs(self.delta),
            'mode': MODE_INCREMENT if self.delta > 0 else 'decrement',
        }

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['adjustment'] = self.adjustment
        return data


def clamp_count(value) -> int:
    """
    Round a counted quantity half-up to a whole number.

    Raises:
        InvalidCountException: If the value is negative, missing or not a number
    """
    if value is None or isinstance(value, bool):
        raise InvalidCountException(value)
    try:
        count = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidCountException(value)
    if not count.is_finite() or count < 0:
        raise InvalidCountException(value)
    return int(count.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_reconciliation(sku: str, physical_count, mode: str, pending: int,
                             current_remote_stock: int) -> ReconciliationResult:
    """
    Compute the quantity to publish and the change from the current figure.

    override:  remote = max(0, count - pending), delta = remote - current
    increment: remote = current + count,         delta = count

    Raises:
        InvalidCountException: If ``physical_count`` is negative or not a number
        ValidationException: If ``mode`` is unknown
    """
    if mode not in RECONCILE_MODES:
        raise ValidationException(f"Unknown reconciliation mode: {mode}", {'mode': mode})

    count = clamp_count(physical_count)
    pending = max(0, int(pending))
    current = max(0, int(current_remote_stock))

    if mode == MODE_OVERRIDE:
        remote_quantity = max(0, count - pending)
        delta = remote_quantity - current
    else:
        remote_quantity = current + count
        delta = count

    return ReconciliationResult(
        sku=sku,
        mode=mode,
        physical_count=count,
        pending=pending,
        current_remote_stock=current,
        remote_quantity=remote_quantity,
        delta=delta,
    )


class ReconciliationService:
    """Service class for stock reconciliation."""

    @staticmethod
    def pending_quantity(sku: str) -> int:
        """Units of ``sku`` in the snapshots of all active assignments, read fresh."""
        normalized = normalize_sku(sku)
        if not normalized:
            return 0
        total = 0
        for snapshot in Assignment.objects.values_list('order_snapshot', flat=True):
            total += sum(item.quantity for item in extract_line_items(snapshot) if item.sku == normalized)
        return total

    @staticmethod
    def reconcile(sku: str, physical_count, mode: str = MODE_OVERRIDE,
                  current_remote_stock=None) -> ReconciliationResult:
        """
        Reconcile a physical count for one SKU.

        Args:
            sku: Product SKU
            physical_count: Units counted on the shelf (override) or received (increment)
            mode: 'override' or 'increment'
            current_remote_stock: Platform quantity; read from the order source when omitted

        Raises:
            ValidationException: Blank SKU or unknown mode
            InvalidCountException: Negative or non-numeric count
            OrderSourceException: Platform stock could not be read
        """
        normalized = normalize_sku(sku)
        if not normalized:
            raise ValidationException("SKU is required", {'sku': 'required'})
        if mode not in RECONCILE_MODES:
            raise ValidationException(f"Unknown reconciliation mode: {mode}", {'mode': mode})
        clamp_count(physical_count)

        if current_remote_stock is None:
            current_remote_stock = get_order_source().get_stock(normalized)

        result = calculate_reconciliation(
            sku=normalized,
            physical_count=physical_count,
            mode=mode,
            pending=ReconciliationService.pending_quantity(normalized),
            current_remote_stock=sanitize_quantity(current_remote_stock),
        )
        logger.info(
            f"Reconciled {normalized} ({mode}): count {result.physical_count}, pending {result.pending}, "
            f"remote {result.current_remote_stock} -> {result.remote_quantity} (delta {result.delta})"
        )
        return result

    @staticmethod
    def apply_adjustment(result: ReconciliationResult) -> Optional[int]:
        """
        Push a reconciliation result to the platform.

        Returns:
            The platform quantity after adjusting, or None when there was nothing to push

        Raises:
            OrderSourceException: If the platform rejects the adjustment
        """
        adjustment = result.adjustment
        if adjustment is None:
            return None
        new_quantity = get_order_source().adjust_stock(
            adjustment['sku'], adjustment['quantity'], adjustment['mode']
        )
        logger.info(f"Stock for {adjustment['sku']} adjusted ({adjustment['mode']} {adjustment['quantity']})")
        return new_quantity
