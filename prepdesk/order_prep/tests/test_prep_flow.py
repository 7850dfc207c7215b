"""
Tests for the preparation state machine.
"""

import uuid
from datetime import timedelta

from django.utils import timezone

from ..models import Assignment, AssignmentHistory, AssignmentState, AuditLog
from ..services import ClaimService, PrepService
from ..exceptions import (
    AssignmentAlreadyClosedException, AssignmentNotFoundException,
    AssignmentNotOwnedException, InvalidTransitionException
)
from .base import PrepTestCase


class PrepFlowTest(PrepTestCase):
    """Test the assigned -> preparing -> waiting -> completed flow."""

    def setUp(self):
        super().setUp()
        self.add_order('A', '2024-01-01T08:00:00Z', items=[{'sku': 'X-1', 'quantity': 2, 'name': 'Widget'}])
        self.assignment = ClaimService.claim_next(self.worker)
        self.assignment_id = str(self.assignment.id)

    def test_complete_preparation_flow(self):
        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        self.assertTrue(result['changed'])
        self.assertTrue(result['remote_status_synced'])
        started_at = result['assignment'].started_at
        self.assertIsNotNone(started_at)

        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.WAITING)
        self.assertIsNotNone(result['assignment'].waiting_at)

        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        # Resuming keeps the original start time
        self.assertEqual(result['assignment'].started_at, started_at)

        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.COMPLETED)
        history = result['assignment']
        self.assertIsInstance(history, AssignmentHistory)
        self.assertEqual(history.id, self.assignment.id)
        self.assertEqual(history.final_state, AssignmentState.COMPLETED)
        self.assertIsNotNone(history.completed_at)
        self.assertTrue(history.claim_locked)
        self.assertFalse(Assignment.objects.filter(order_id='A').exists())

        self.assertEqual(
            [update['status'] for update in self.source.status_updates],
            ['1956875584', '566146469', '1956875584', '758513988']
        )
        self.assertEqual(
            AuditLog.objects.filter(entity_id=self.assignment.id, action='state_changed').count(), 4
        )

    def test_duration_measured_from_start(self):
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        Assignment.objects.filter(id=self.assignment.id).update(
            started_at=timezone.now() - timedelta(minutes=10)
        )

        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.COMPLETED)

        self.assertGreaterEqual(result['duration_seconds'], 600)
        self.assertLess(result['duration_seconds'], 700)
        self.assertEqual(result['assignment'].duration_minutes, 10)

    def test_closed_assignment_cannot_move(self):
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.COMPLETED)

        for state in (AssignmentState.PREPARING, AssignmentState.WAITING, AssignmentState.CANCELLED):
            with self.assertRaises(AssignmentAlreadyClosedException):
                PrepService.transition(self.assignment_id, self.worker, state)

        history = AssignmentHistory.objects.get(id=self.assignment.id)
        self.assertEqual(history.final_state, AssignmentState.COMPLETED)

    def test_unknown_assignment(self):
        with self.assertRaises(AssignmentNotFoundException):
            PrepService.transition(str(uuid.uuid4()), self.worker, AssignmentState.PREPARING)
        with self.assertRaises(AssignmentNotFoundException):
            PrepService.transition('not-a-uuid', self.worker, AssignmentState.PREPARING)

    def test_invalid_transitions(self):
        with self.assertRaises(InvalidTransitionException):
            PrepService.transition(self.assignment_id, self.worker, AssignmentState.WAITING)
        with self.assertRaises(InvalidTransitionException):
            PrepService.transition(self.assignment_id, self.worker, AssignmentState.COMPLETED)

        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        with self.assertRaises(InvalidTransitionException):
            PrepService.transition(self.assignment_id, self.worker, AssignmentState.ASSIGNED)

    def test_same_state_is_a_no_op(self):
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)

        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)

        self.assertFalse(result['changed'])
        self.assertEqual(len(self.source.status_updates), 1)

    def test_only_owner_can_transition(self):
        with self.assertRaises(AssignmentNotOwnedException):
            PrepService.transition(self.assignment_id, self.other_worker, AssignmentState.PREPARING)

        result = PrepService.transition(
            self.assignment_id, self.supervisor, AssignmentState.PREPARING, force=True
        )
        self.assertEqual(result['state'], AssignmentState.PREPARING)

    def test_cancel_from_assigned(self):
        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.CANCELLED)

        history = result['assignment']
        self.assertEqual(history.final_state, AssignmentState.CANCELLED)
        self.assertIsNotNone(history.cancelled_at)
        self.assertIsNone(history.duration_seconds)


class RemoteSyncTest(PrepTestCase):
    """Test that platform failures never block local transitions."""

    def setUp(self):
        super().setUp()
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.assignment = ClaimService.claim_next(self.worker)
        self.assignment_id = str(self.assignment.id)

    def test_remote_failure_does_not_block_transition(self):
        self.source.fail_status_updates = True

        result = PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)

        self.assertEqual(result['state'], AssignmentState.PREPARING)
        self.assertFalse(result['remote_status_synced'])
        self.assertEqual(result['remote_error'], 'Platform unavailable')

        assignment = Assignment.objects.get(id=self.assignment.id)
        self.assertEqual(assignment.state, AssignmentState.PREPARING)
        self.assertFalse(assignment.remote_status_synced)
        self.assertEqual(assignment.remote_status, '1956875584')
        self.assertEqual(assignment.remote_sync_error, 'Platform unavailable')

    def test_failed_sync_is_retried(self):
        self.source.fail_status_updates = True
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.COMPLETED)

        history = AssignmentHistory.objects.get(id=self.assignment.id)
        self.assertFalse(history.remote_status_synced)

        self.source.fail_status_updates = False
        result = PrepService.retry_remote_sync()

        self.assertEqual(result, {'retried': 1, 'synced': 1, 'failed': 0})
        history.refresh_from_db()
        self.assertTrue(history.remote_status_synced)
        self.assertEqual(history.remote_sync_error, '')
        self.assertEqual(self.source.status_updates, [{'order_id': 'A', 'status': '758513988'}])

    def test_skip_remote_sync(self):
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)

        result = PrepService.transition(
            self.assignment_id, self.worker, AssignmentState.COMPLETED, skip_remote_sync=True
        )

        self.assertTrue(result['remote_status_synced'])
        self.assertEqual(result['assignment'].remote_status, '758513988')
        self.assertEqual(len(self.source.status_updates), 1)


class PrepOperationsTest(PrepTestCase):
    """Test start, release and snapshot refresh."""

    def setUp(self):
        super().setUp()
        self.add_order('A', '2024-01-01T08:00:00Z', items=[{'sku': 'X-1', 'quantity': 2}])
        self.assignment = ClaimService.claim_next(self.worker)
        self.assignment_id = str(self.assignment.id)

    def test_start_if_unstarted_is_idempotent(self):
        first = PrepService.start_if_unstarted(self.assignment_id, self.worker)
        second = PrepService.start_if_unstarted(self.assignment_id, self.worker)

        self.assertTrue(first['changed'])
        self.assertFalse(second['changed'])
        self.assertEqual(second['state'], AssignmentState.PREPARING)
        self.assertEqual(len(self.source.status_updates), 1)

    def test_start_if_unstarted_leaves_waiting_alone(self):
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.PREPARING)
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.WAITING)

        result = PrepService.start_if_unstarted(self.assignment_id, self.worker)

        self.assertFalse(result['changed'])
        self.assertEqual(Assignment.objects.get(id=self.assignment.id).state, AssignmentState.WAITING)

    def test_release_hands_order_back(self):
        result = PrepService.release(self.assignment_id, self.worker, reason='Missing item')

        history = result['assignment']
        self.assertEqual(history.final_state, AssignmentState.CANCELLED)
        self.assertEqual(history.notes, 'Released: Missing item')
        self.assertEqual(self.source.status_updates, [{'order_id': 'A', 'status': '566146469'}])

    def test_release_with_custom_remote_status(self):
        PrepService.release(self.assignment_id, self.worker, remote_status_tag='on_hold')

        self.assertEqual(self.source.status_updates, [{'order_id': 'A', 'status': 'on_hold'}])

    def test_refresh_snapshot(self):
        self.source.orders['A']['items'] = [
            {'sku': 'X-1', 'quantity': 3},
            {'sku': 'Y-2', 'quantity': 1},
        ]

        assignment = PrepService.refresh_snapshot(self.assignment_id, self.worker)

        self.assertEqual([(item.sku, item.quantity) for item in assignment.line_items], [('x-1', 3), ('y-2', 1)])
        self.assertGreaterEqual(assignment.snapshot_refreshed_at, self.assignment.snapshot_refreshed_at)

    def test_refresh_closed_assignment_fails(self):
        PrepService.transition(self.assignment_id, self.worker, AssignmentState.CANCELLED)

        with self.assertRaises(AssignmentAlreadyClosedException):
            PrepService.refresh_snapshot(self.assignment_id, self.worker)
