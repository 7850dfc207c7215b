"""
Product location index: SKU to warehouse bin.
"""

import uuid
from django.db import models
from django.conf import settings


class ProductLocation(models.Model):
    """Where a SKU is stored. SKUs are kept trimmed and lower-cased."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sku = models.CharField(max_length=100, unique=True)
    product_id = models.CharField(max_length=64, blank=True, db_index=True)
    location = models.CharField(
        max_length=100,
        help_text="Bin code (aisle, shelf, bin)"
    )
    notes = models.TextField(blank=True)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='product_locations',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sku']

    def __str__(self):
        return f"{self.sku} @ {self.location}"
