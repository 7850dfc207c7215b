"""
Priority mark views for the Order Preparation module.
"""

from rest_framework import viewsets, status

from ..services import PriorityService
from ..exceptions import BusinessException
from ..serializers.priority_serializers import PriorityMarkSerializer, PriorityMarkCreateSerializer
from ..permissions import IsPrepSupervisor
from .responses import error_response, success_response


class PriorityMarkViewSet(viewsets.ViewSet):
    """
    ViewSet for the priority overlay on unclaimed orders.

    ``DELETE priority-marks/{id}/`` accepts a mark id or an order id.
    """

    permission_classes = [IsPrepSupervisor]

    def list(self, request):
        marks = PriorityService.list_marks()
        return success_response(PriorityMarkSerializer(marks, many=True).data)

    def create(self, request):
        """Mark an order as high priority, or update its mark."""
        serializer = PriorityMarkCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            mark = PriorityService.mark_priority(
                data['order_id'],
                reason=data.get('reason'),
                notes=data.get('notes', ''),
                customer_name=data.get('customer_name', ''),
                order_number=data.get('order_number', ''),
                user=request.user,
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(PriorityMarkSerializer(mark).data, status_code=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        try:
            mark = PriorityService.unmark_priority(pk, user=request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response({'id': str(mark.id), 'order_id': mark.order_id})
