"""
Adapters to systems outside the preparation engine.
"""

from .order_source import (
    OrderSourceInterface, MockOrderSource, HttpOrderSource,
    get_order_source, switch_to_mock_source, switch_to_source
)

__all__ = [
    'OrderSourceInterface', 'MockOrderSource', 'HttpOrderSource',
    'get_order_source', 'switch_to_mock_source', 'switch_to_source',
]
