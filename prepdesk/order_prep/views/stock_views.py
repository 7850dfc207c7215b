"""
Stock reconciliation and product location views.
"""

from rest_framework import viewsets, mixins, filters, status
from rest_framework.decorators import action

from ..models import ProductLocation
from ..services import ReconciliationService, LocationService
from ..exceptions import BusinessException, ValidationException
from ..serializers.stock_serializers import ReconcileSerializer, ProductLocationSerializer
from ..permissions import IsPrepStaff
from .responses import error_response, success_response


class StockViewSet(viewsets.ViewSet):
    """Physical count reconciliation against the platform stock."""

    permission_classes = [IsPrepStaff]

    @action(detail=False, methods=['post'])
    def reconcile(self, request):
        """
        Compute the platform quantity for a counted SKU.

        With ``apply`` set, the resulting adjustment is pushed to the platform.
        """
        serializer = ReconcileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = ReconciliationService.reconcile(
                data['sku'],
                data['physical_count'],
                mode=data['mode'],
                current_remote_stock=data.get('current_remote_stock'),
            )
            payload = result.as_dict()
            payload['applied'] = False
            if data['apply'] and result.adjustment is not None:
                payload['new_remote_stock'] = ReconciliationService.apply_adjustment(result)
                payload['applied'] = True
        except BusinessException as e:
            return error_response(e)

        location = LocationService.lookup_bin(result.sku)
        payload['location'] = location.location if location else None
        return success_response(payload)


class ProductLocationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for the SKU to bin index.

    POST upserts by SKU.
    """

    queryset = ProductLocation.objects.all()
    serializer_class = ProductLocationSerializer
    permission_classes = [IsPrepStaff]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['sku', 'product_id', 'location']
    ordering_fields = ['sku', 'location', 'updated_at']
    ordering = ['sku']

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            location = LocationService.upsert_location(
                data['sku'],
                data['location'],
                notes=data.get('notes', ''),
                product_id=data.get('product_id', ''),
                updated_by=request.user,
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(self.get_serializer(location).data, status_code=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def lookup(self, request):
        """Find the bin for ``?sku=`` (falling back to ``?product_id=``)."""
        sku = request.query_params.get('sku', '')
        product_id = request.query_params.get('product_id')
        if not sku.strip() and not product_id:
            return error_response(ValidationException("sku or product_id is required", {'sku': 'required'}))

        location = LocationService.lookup_bin(sku, product_id=product_id)
        return success_response(self.get_serializer(location).data if location else None)
