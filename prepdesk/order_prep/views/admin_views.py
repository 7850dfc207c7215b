"""
Administrative views for the Order Preparation module.
"""

from django.contrib.auth import get_user_model
from rest_framework import viewsets
from rest_framework.decorators import action

from ..services import AdminService
from ..exceptions import BusinessException
from ..serializers.assignment_serializers import (
    ReassignSerializer, AssignmentIdsSerializer, RemoveSerializer,
    serialize_assignment_record
)
from ..permissions import IsPrepSupervisor
from .responses import error_response, success_response


def bulk_payload(result, serialize=serialize_assignment_record):
    return {
        'succeeded': [serialize(item) for item in result['succeeded']],
        'failed': result['failed'],
    }


class PrepAdminViewSet(viewsets.ViewSet):
    """
    Bulk interventions on assignments.

    Each action processes every id it is given; per-item failures are
    returned under ``failed``.
    """

    permission_classes = [IsPrepSupervisor]

    @action(detail=False, methods=['post'])
    def reassign(self, request):
        """Move active assignments to another worker."""
        serializer = ReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        worker = get_user_model().objects.get(pk=serializer.validated_data['worker_id'])

        try:
            result = AdminService.reassign(
                serializer.validated_data['assignment_ids'], worker, performed_by=request.user
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(bulk_payload(result))

    @action(detail=False, methods=['post'])
    def reopen(self, request):
        """Make archived orders claimable again."""
        serializer = AssignmentIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = AdminService.reopen(serializer.validated_data['assignment_ids'], performed_by=request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(bulk_payload(result))

    @action(detail=False, methods=['post'])
    def remove(self, request):
        """Drop active assignments without archiving them."""
        serializer = RemoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = AdminService.remove(
                assignment_ids=serializer.validated_data['assignment_ids'],
                order_ids=serializer.validated_data['order_ids'],
                performed_by=request.user,
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(bulk_payload(result, serialize=lambda summary: summary))
