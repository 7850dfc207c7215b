"""
Dashboard statistics for the Order Preparation engine.
"""

from datetime import timedelta

from django.db.models import Avg, Count
from django.utils import timezone

from ..models import Assignment, AssignmentHistory, AssignmentState, PriorityMark, ACTIVE_STATES


def _start_of_today():
    return timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)


class StatsService:
    """Read-only aggregates over active and archived assignments."""

    @staticmethod
    def stats():
        """
        Counts by state and by worker, priority queue size and today's throughput.

        ``by_state`` covers the active states only. Archived outcomes are
        reported for the current day as ``completed_today`` and ``cancelled_today``.
        """
        by_state = {state.value: 0 for state in ACTIVE_STATES}
        for row in Assignment.objects.values('state').annotate(count=Count('id')):
            by_state[row['state']] = row['count']

        today = _start_of_today()
        completed_today = AssignmentHistory.objects.filter(
            final_state=AssignmentState.COMPLETED, completed_at__gte=today
        ).count()
        cancelled_today = AssignmentHistory.objects.filter(
            final_state=AssignmentState.CANCELLED, cancelled_at__gte=today
        ).count()

        by_worker = {}
        for row in (Assignment.objects.values('worker_id', 'worker_name', 'state')
                    .annotate(count=Count('id')).order_by('worker_name')):
            entry = by_worker.setdefault(row['worker_id'], {
                'worker_id': row['worker_id'],
                'worker_name': row['worker_name'],
                'active': 0,
                'states': {},
            })
            entry['states'][row['state']] = row['count']
            entry['active'] += row['count']

        return {
            'by_state': by_state,
            'active_total': sum(by_state.values()),
            'by_worker': list(by_worker.values()),
            'priority_queue': PriorityMark.objects.count(),
            'completed_today': completed_today,
            'cancelled_today': cancelled_today,
            'high_priority_active': Assignment.objects.filter(is_high_priority=True).count(),
        }

    @staticmethod
    def performance(days: int = None):
        """
        Completed orders and average preparation time per worker.

        Args:
            days: Only count completions in the last ``days`` days
        """
        queryset = AssignmentHistory.objects.filter(final_state=AssignmentState.COMPLETED)
        if days:
            queryset = queryset.filter(completed_at__gte=timezone.now() - timedelta(days=days))

        rows = (
            queryset.values('worker_id', 'worker_name')
            .annotate(completed=Count('id'), average_seconds=Avg('duration_seconds'))
            .order_by('-completed', 'worker_name')
        )
        return [
            {
                'worker_id': row['worker_id'],
                'worker_name': row['worker_name'],
                'completed': row['completed'],
                'average_seconds': int(row['average_seconds']) if row['average_seconds'] is not None else None,
            }
            for row in rows
        ]
