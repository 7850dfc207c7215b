"""
Shared fixtures for Order Preparation tests.
"""

from django.test import TestCase
from django.contrib.auth import get_user_model

from ..adapters.order_source import switch_to_mock_source


class PrepTestCase(TestCase):
    """TestCase with a fresh mock platform and a few users."""

    def setUp(self):
        """Set up test data."""
        User = get_user_model()
        self.worker = User.objects.create_user(
            username='ahmed', password='testpass123', first_name='Ahmed', last_name='Ali'
        )
        self.other_worker = User.objects.create_user(username='sara', password='testpass123')
        self.third_worker = User.objects.create_user(username='omar', password='testpass123')
        self.supervisor = User.objects.create_user(
            username='supervisor', password='testpass123', role='supervisor'
        )

        # Switch to mock order source
        self.source = switch_to_mock_source()

    def add_order(self, order_id, created_at, items=None, **extra):
        return self.source.add_order(
            order_id,
            created_at=created_at,
            items=items if items is not None else [{'sku': f"SKU-{order_id}", 'quantity': 1, 'name': 'Item'}],
            **extra
        )
