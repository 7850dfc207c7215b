"""
Assignment views for the Order Preparation module.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters, status
from rest_framework.decorators import action

from ..models import Assignment, AssignmentHistory
from ..services import ClaimService, PrepService, AdminService, StatsService
from ..exceptions import BusinessException
from ..serializers.assignment_serializers import (
    AssignmentListSerializer, AssignmentDetailSerializer, AssignmentHistorySerializer,
    TransitionSerializer, ReleaseSerializer, AssignmentPrioritySerializer,
    serialize_assignment_record
)
from ..permissions import IsPrepStaff, IsPrepSupervisor, is_prep_supervisor
from .responses import error_response, success_response


def transition_payload(result):
    return {
        'assignment': serialize_assignment_record(result['assignment']),
        'state': result['state'],
        'changed': result['changed'],
        'remote_status_synced': result['remote_status_synced'],
        'remote_error': result['remote_error'],
        'duration_seconds': result['duration_seconds'],
    }


class AssignmentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for active assignments.

    Workers claim and progress their own order; supervisors see everything.
    """

    queryset = Assignment.objects.all()
    permission_classes = [IsPrepStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['order_id', 'order_number', 'worker_name']
    filterset_fields = ['state', 'worker', 'is_high_priority', 'remote_status_synced']
    ordering_fields = ['assigned_at', 'last_status_update_at', 'order_number']
    ordering = ['assigned_at']

    def get_permissions(self):
        if self.action in ['list', 'stats', 'performance', 'priority']:
            return [IsPrepSupervisor()]
        return super().get_permissions()

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'list':
            return AssignmentListSerializer
        return AssignmentDetailSerializer

    def get_queryset(self):
        """Workers only see their own assignment."""
        user = self.request.user
        if not user.is_authenticated:
            return Assignment.objects.none()
        if is_prep_supervisor(user):
            return Assignment.objects.all()
        return Assignment.objects.filter(worker=user)

    @action(detail=False, methods=['post'])
    def claim(self, request):
        """Claim the next order for the current worker."""
        try:
            assignment = ClaimService.claim_next(request.user)
        except BusinessException as e:
            return error_response(e)

        if assignment is None:
            return success_response(None, message='No orders available')
        return success_response(AssignmentDetailSerializer(assignment).data, status_code=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        """Current worker's active assignment, if any."""
        assignment = ClaimService.active_assignment_for(request.user)
        data = AssignmentDetailSerializer(assignment).data if assignment else None
        return success_response(data)

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """Start preparing, once. Repeated calls change nothing."""
        try:
            result = PrepService.start_if_unstarted(pk, request.user)
        except BusinessException as e:
            return error_response(e)
        return success_response(transition_payload(result))

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Move an assignment through the preparation workflow."""
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = PrepService.transition(
                pk, request.user, data['state'],
                skip_remote_sync=data['skip_remote_sync'],
                notes=data.get('notes'),
                force=data['force'] and is_prep_supervisor(request.user),
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(transition_payload(result))

    @action(detail=True, methods=['post'])
    def release(self, request, pk=None):
        """Hand the order back to the pool and cancel the assignment."""
        serializer = ReleaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = PrepService.release(
                pk, request.user,
                remote_status_tag=serializer.validated_data.get('remote_status') or None,
                reason=serializer.validated_data.get('reason', ''),
                force=is_prep_supervisor(request.user),
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(transition_payload(result))

    @action(detail=True, methods=['post'])
    def refresh(self, request, pk=None):
        """Re-read the order from the platform."""
        try:
            assignment = PrepService.refresh_snapshot(pk, request.user, force=is_prep_supervisor(request.user))
        except BusinessException as e:
            return error_response(e)
        return success_response(AssignmentDetailSerializer(assignment).data)

    @action(detail=True, methods=['post'])
    def priority(self, request, pk=None):
        """Flag or unflag an active assignment as high priority."""
        serializer = AssignmentPrioritySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            assignment = AdminService.set_assignment_priority(
                pk,
                serializer.validated_data['is_high_priority'],
                serializer.validated_data.get('reason', ''),
                performed_by=request.user,
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(AssignmentDetailSerializer(assignment).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return success_response(StatsService.stats())

    @action(detail=False, methods=['get'])
    def performance(self, request):
        days = request.query_params.get('days')
        return success_response(StatsService.performance(int(days) if days and days.isdigit() else None))


class AssignmentHistoryViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for archived assignments."""

    queryset = AssignmentHistory.objects.all()
    serializer_class = AssignmentHistorySerializer
    permission_classes = [IsPrepStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['order_id', 'order_number', 'worker_name']
    filterset_fields = ['final_state', 'worker', 'claim_locked', 'remote_status_synced']
    ordering_fields = ['archived_at', 'completed_at', 'duration_seconds']
    ordering = ['-archived_at']

    def get_queryset(self):
        user = self.request.user
        if not user.is_authenticated:
            return AssignmentHistory.objects.none()
        if is_prep_supervisor(user):
            return AssignmentHistory.objects.all()
        return AssignmentHistory.objects.filter(worker=user)
