"""
Order Source adapters for the Order Preparation engine.

The commerce platform owns orders, their remote status and the sellable stock
figure. The engine only talks to it through ``OrderSourceInterface``.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from django.utils.module_loading import import_string

from ..conf import prep_settings
from ..exceptions import OrderSourceException
from ..snapshots import OrderRecord, extract_status_tag, normalize_sku, sanitize_quantity, with_status

logger = logging.getLogger(__name__)


class OrderSourceInterface(ABC):
    """
    Interface for the remote commerce platform.
    """

    @abstractmethod
    def list_open_orders(self, status_filters: List[str]) -> List[OrderRecord]:
        """
        List orders currently in any of the given status tags.

        Args:
            status_filters: Remote status tags (ids or slugs) to include

        Returns:
            De-duplicated order records, in no particular order

        Raises:
            OrderSourceException: If the platform cannot be reached
        """
        pass

    @abstractmethod
    def get_order(self, order_id: str) -> OrderRecord:
        """
        Fetch a fresh copy of one order, line items included.

        Raises:
            OrderSourceException: If the order cannot be fetched
        """
        pass

    @abstractmethod
    def set_remote_status(self, order_id: str, status_tag: str) -> None:
        """
        Change an order's status on the platform.

        Raises:
            OrderSourceException: If the platform rejects or times out
        """
        pass

    @abstractmethod
    def get_stock(self, sku: str) -> int:
        """Sellable quantity the platform currently publishes for ``sku``."""
        pass

    @abstractmethod
    def adjust_stock(self, sku: str, quantity: int, mode: str) -> int:
        """
        Increment or decrement the platform stock for ``sku``.

        Args:
            sku: Product SKU
            quantity: Non-negative amount
            mode: 'increment' or 'decrement'

        Returns:
            New platform quantity
        """
        pass


class MockOrderSource(OrderSourceInterface):
    """
    Deterministic in-memory platform for tests and local development.
    """

    def __init__(self, orders: Optional[List[Dict[str, Any]]] = None, stock: Optional[Dict[str, int]] = None):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.stock: Dict[str, int] = {}
        self.status_updates: List[Dict[str, str]] = []
        self.stock_adjustments: List[Dict[str, Any]] = []
        self.fail_status_updates = False
        for payload in orders or []:
            self.orders[str(payload['id'])] = payload
        for sku, quantity in (stock or {}).items():
            self.stock[normalize_sku(sku)] = quantity

    def add_order(self, order_id, created_at=None, items=None, status='449146439', **extra) -> Dict[str, Any]:
        payload = {
            'id': str(order_id),
            'reference_id': extra.pop('reference_id', f"R{order_id}"),
            'status': {'id': status},
            'date': {'created': created_at},
            'items': items or [],
        }
        payload.update(extra)
        self.orders[str(order_id)] = payload
        return payload

    def list_open_orders(self, status_filters: List[str]) -> List[OrderRecord]:
        wanted = {str(tag) for tag in status_filters}
        records = []
        for payload in self.orders.values():
            if extract_status_tag(payload) in wanted:
                records.append(OrderRecord.from_payload(copy.deepcopy(payload)))
        return records

    def get_order(self, order_id: str) -> OrderRecord:
        payload = self.orders.get(str(order_id))
        if payload is None:
            raise OrderSourceException(f"Order {order_id} not found on platform", {'order_id': order_id})
        return OrderRecord.from_payload(copy.deepcopy(payload))

    def set_remote_status(self, order_id: str, status_tag: str) -> None:
        if self.fail_status_updates:
            raise OrderSourceException("Platform unavailable", {'order_id': order_id})
        payload = self.orders.get(str(order_id))
        if payload is None:
            raise OrderSourceException(f"Order {order_id} not found on platform", {'order_id': order_id})
        self.orders[str(order_id)] = with_status(payload, str(status_tag))
        self.status_updates.append({'order_id': str(order_id), 'status': str(status_tag)})

    def get_stock(self, sku: str) -> int:
        return self.stock.get(normalize_sku(sku), 0)

    def adjust_stock(self, sku: str, quantity: int, mode: str) -> int:
        key = normalize_sku(sku)
        current = self.stock.get(key, 0)
        new_quantity = current + quantity if mode == 'increment' else max(0, current - quantity)
        self.stock[key] = new_quantity
        self.stock_adjustments.append({'sku': key, 'quantity': quantity, 'mode': mode})
        return new_quantity


class HttpOrderSource(OrderSourceInterface):
    """
    REST client for the commerce platform's admin API.

    Every request carries ``ORDER_SOURCE_TIMEOUT`` so a slow platform cannot
    hold a worker's request open.
    """

    def __init__(self, base_url: str = None, token: str = None, timeout: float = None,
                 page_size: int = None, session: requests.Session = None):
        self.base_url = (base_url or prep_settings.ORDER_SOURCE_BASE_URL).rstrip('/')
        self.timeout = timeout or prep_settings.ORDER_SOURCE_TIMEOUT
        self.page_size = page_size or prep_settings.ORDER_SOURCE_PAGE_SIZE
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f"Bearer {token or prep_settings.ORDER_SOURCE_TOKEN}",
            'Accept': 'application/json',
        })

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise OrderSourceException(f"Request to {url} failed: {e}", {'url': url}) from e

        if not response.ok:
            raise OrderSourceException(
                f"Platform returned {response.status_code} for {method} {url}",
                {'url': url, 'status_code': response.status_code, 'body': response.text[:500]}
            )
        try:
            data = response.json()
        except ValueError as e:
            raise OrderSourceException(f"Invalid JSON from {url}", {'url': url}) from e
        if not isinstance(data, dict):
            raise OrderSourceException(f"Unexpected response body from {url}", {'url': url})
        return data

    @staticmethod
    def _total_pages(pagination) -> Optional[int]:
        if not isinstance(pagination, dict):
            return None
        for key in ('total_pages', 'totalPages'):
            if isinstance(pagination.get(key), int):
                return pagination[key]
        total = pagination.get('total', pagination.get('count'))
        per_page = pagination.get('per_page', pagination.get('perPage'))
        if isinstance(total, int) and isinstance(per_page, int) and per_page > 0:
            return -(-total // per_page)
        return None

    def list_open_orders(self, status_filters: List[str]) -> List[OrderRecord]:
        seen = set()
        records = []
        failures = 0

        for status_tag in status_filters:
            page = 1
            while True:
                try:
                    data = self._request('GET', 'orders', params={
                        'status': status_tag,
                        'per_page': self.page_size,
                        'page': page,
                        'sort_by': 'created_at-asc',
                    })
                except OrderSourceException as e:
                    logger.warning(f"Failed to list orders for status {status_tag} page {page}: {e.message}")
                    failures += 1
                    break

                rows = data.get('data') if isinstance(data.get('data'), list) else []
                for row in rows:
                    record = OrderRecord.from_payload(row)
                    if record is None or record.order_id in seen:
                        continue
                    seen.add(record.order_id)
                    records.append(record)

                total_pages = self._total_pages(data.get('pagination'))
                if not rows:
                    break
                if total_pages is not None and page >= total_pages:
                    break
                if total_pages is None and len(rows) < self.page_size:
                    break
                page += 1

        if status_filters and failures == len(status_filters) and not records:
            raise OrderSourceException("Could not list open orders for any status filter",
                                       {'status_filters': list(status_filters)})
        return records

    def get_order(self, order_id: str) -> OrderRecord:
        data = self._request('GET', f"orders/{order_id}")
        detail = data['data'] if isinstance(data.get('data'), dict) else {}

        try:
            items = self._request('GET', 'orders/items', params={'order_id': order_id})
            if isinstance(items.get('data'), list):
                detail['items'] = items['data']
        except OrderSourceException as e:
            logger.warning(f"Failed to fetch items for order {order_id}: {e.message}")

        record = OrderRecord.from_payload(detail)
        if record is None:
            raise OrderSourceException(f"Order {order_id} payload has no identifier", {'order_id': order_id})
        return record

    def set_remote_status(self, order_id: str, status_tag: str) -> None:
        body = {'status_id': int(status_tag)} if str(status_tag).isdigit() else {'slug': status_tag}
        self._request('POST', f"orders/{order_id}/status", json=body)

    def get_stock(self, sku: str) -> int:
        data = self._request('GET', f"products/sku/{sku}")
        product = data['data'] if isinstance(data.get('data'), dict) else {}
        return sanitize_quantity(product.get('quantity'))

    def adjust_stock(self, sku: str, quantity: int, mode: str) -> int:
        self._request('POST', 'products/quantities/bulk', json={
            'products': [{
                'identifer_type': 'sku',
                'identifer': sku,
                'quantity': quantity,
                'mode': mode,
            }]
        })
        return self.get_stock(sku)


# Module-level adapter instance, built from settings on first use
order_source = None


def get_order_source() -> OrderSourceInterface:
    """
    Return the configured order source adapter.

    The class named by ``ORDER_PREP['ORDER_SOURCE']`` is instantiated once.
    """
    global order_source
    if order_source is None:
        order_source = import_string(prep_settings.ORDER_SOURCE)()
    return order_source


def switch_to_mock_source(orders=None, stock=None) -> MockOrderSource:
    """Switch to a fresh mock source for testing."""
    global order_source
    order_source = MockOrderSource(orders=orders, stock=stock)
    return order_source


def switch_to_source(source: OrderSourceInterface):
    """
    Switch to a specific order source implementation.

    Args:
        source: Implementation of OrderSourceInterface
    """
    global order_source
    order_source = source
