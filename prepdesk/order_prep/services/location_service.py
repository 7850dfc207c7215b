"""
Product Location Service for the Order Preparation engine.

Maintains the SKU to bin index and annotates order snapshots with bins so
preparers know where to pick each line.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from django.db import transaction

from ..models import ProductLocation, AuditLog
from ..exceptions import ValidationException
from ..snapshots import extract_item_list, extract_item_sku, normalize_sku

logger = logging.getLogger(__name__)


def _prefixes(sku: str):
    return [sku[:end] for end in range(len(sku), 0, -1)]


class LocationService:
    """Service class for the product location index."""

    @staticmethod
    def _best_match(sku: Optional[str], by_sku: Dict[str, ProductLocation]) -> Optional[ProductLocation]:
        # Exact SKU first, then the longest stored SKU that prefixes it
        if not sku:
            return None
        for prefix in _prefixes(sku):
            if prefix in by_sku:
                return by_sku[prefix]
        return None

    @staticmethod
    def _load(skus: Iterable[str], product_ids: Iterable[str]):
        candidates = {prefix for sku in skus for prefix in _prefixes(sku)}
        by_sku = {
            location.sku: location
            for location in ProductLocation.objects.filter(sku__in=candidates)
        } if candidates else {}
        product_ids = set(product_ids)
        by_product = {
            location.product_id: location
            for location in ProductLocation.objects.filter(product_id__in=product_ids)
        } if product_ids else {}
        return by_sku, by_product

    @staticmethod
    def lookup_bin(sku: str, product_id: str = None) -> Optional[ProductLocation]:
        """
        Find where a SKU is stored.

        Args:
            sku: SKU as scanned or typed; matching ignores case and whitespace
            product_id: Fallback platform product id

        Returns:
            Matching ProductLocation or None
        """
        normalized = normalize_sku(sku)
        product_id = str(product_id).strip() if product_id else None
        by_sku, by_product = LocationService._load(
            [normalized] if normalized else [], [product_id] if product_id else []
        )
        return LocationService._best_match(normalized, by_sku) or (by_product.get(product_id) if product_id else None)

    @staticmethod
    def upsert_location(sku: str, location: str, notes: str = '', product_id: str = '',
                        updated_by=None) -> ProductLocation:
        """
        Create or update the bin for a SKU.

        Raises:
            ValidationException: If SKU or location is blank
        """
        normalized = normalize_sku(sku)
        location = (location or '').strip()
        if not normalized or not location:
            raise ValidationException("SKU and location are required", {
                'sku': sku, 'location': location
            })

        with transaction.atomic():
            record, created = ProductLocation.objects.update_or_create(
                sku=normalized,
                defaults={
                    'location': location,
                    'notes': notes or '',
                    'product_id': (product_id or '').strip(),
                    'updated_by': updated_by,
                }
            )
            AuditLog.log_change(
                entity=record,
                action='location_created' if created else 'location_updated',
                user=updated_by,
                new_values={'sku': normalized, 'location': location},
            )

        logger.info(f"Location for SKU {normalized} set to {location}")
        return record

    @staticmethod
    def attach_locations(payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Annotate each line item of an order payload with its bin.

        Adds ``inventory_location`` and ``inventory_notes`` to items that have
        a match. The payload is modified in place and returned.
        """
        items = extract_item_list(payload)
        if not items:
            return payload

        keyed = []
        for item in items:
            sku = normalize_sku(extract_item_sku(item))
            product_id = item.get('product_id')
            if product_id is None and isinstance(item.get('product'), dict):
                product_id = item['product'].get('id')
            product_id = str(product_id).strip() if product_id not in (None, '') else None
            keyed.append((item, sku, product_id))

        by_sku, by_product = LocationService._load(
            [sku for _, sku, _ in keyed if sku],
            [product_id for _, _, product_id in keyed if product_id],
        )

        for item, sku, product_id in keyed:
            match = LocationService._best_match(sku, by_sku) or by_product.get(product_id)
            if match:
                item['inventory_location'] = match.location
                item['inventory_notes'] = match.notes or None

        return payload
