"""
Stock reconciliation and product location serializers.
"""

from rest_framework import serializers

from ..models import ProductLocation
from ..services.reconciliation_service import RECONCILE_MODES


class ReconcileSerializer(serializers.Serializer):
    """
    Serializer for a reconciliation request.

    ``physical_count`` is validated by the service so negative and
    non-numeric counts surface as INVALID_COUNT.
    """

    sku = serializers.CharField(max_length=100)
    physical_count = serializers.JSONField()
    mode = serializers.ChoiceField(choices=RECONCILE_MODES, default='override')
    current_remote_stock = serializers.IntegerField(required=False, min_value=0)
    apply = serializers.BooleanField(default=False)


class ProductLocationSerializer(serializers.ModelSerializer):
    """Serializer for the SKU to bin index."""

    updated_by_name = serializers.CharField(source='updated_by.username', read_only=True, default=None)

    class Meta:
        model = ProductLocation
        fields = [
            'id', 'sku', 'product_id', 'location', 'notes', 'updated_by',
            'updated_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'updated_by', 'created_at', 'updated_at']
        extra_kwargs = {
            # Uniqueness is handled by upsert
            'sku': {'validators': []},
        }
