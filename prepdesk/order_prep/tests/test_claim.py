"""
Tests for claiming orders.
"""

from datetime import timedelta
from unittest.mock import patch

from django.test import override_settings
from django.utils import timezone

from ..models import Assignment, AssignmentState, PriorityMark
from ..services import ClaimService, PrepService, PriorityService, LocationService
from ..exceptions import WorkerAlreadyHasActiveOrderException, OrderSourceException
from .base import PrepTestCase


class ClaimOrderingTest(PrepTestCase):
    """Test which order a worker gets."""

    def test_unparseable_creation_time_does_not_block_claims(self):
        """An order with an out-of-range timestamp is still claimable, and so are the others."""
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', 10 ** 20)

        first = ClaimService.claim_next(self.worker)
        second = ClaimService.claim_next(self.other_worker)

        self.assertEqual({first.order_id, second.order_id}, {'A', 'B'})

    def test_priority_candidate_claimed_first(self):
        """A priority order beats older normal orders."""
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T12:00:00Z')
        self.add_order('C', '2024-01-01T09:00:00Z')
        PriorityService.mark_priority('B', reason='VIP customer')

        assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(assignment.order_id, 'B')
        self.assertTrue(assignment.is_high_priority)
        self.assertEqual(assignment.priority_reason, 'VIP customer')

    def test_oldest_order_first_among_normal(self):
        self.add_order('C', '2024-01-01T09:00:00Z')
        self.add_order('A', '2024-01-01T08:00:00Z')

        first = ClaimService.claim_next(self.worker)
        second = ClaimService.claim_next(self.other_worker)

        self.assertEqual(first.order_id, 'A')
        self.assertEqual(second.order_id, 'C')

    def test_priority_candidates_ordered_by_mark_time(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('C', '2024-01-01T09:00:00Z')
        PriorityService.mark_priority('A')
        PriorityService.mark_priority('C')
        now = timezone.now()
        PriorityMark.objects.filter(order_id='A').update(created_at=now)
        PriorityMark.objects.filter(order_id='C').update(created_at=now - timedelta(minutes=5))

        assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(assignment.order_id, 'C')

    def test_claim_spends_priority_mark(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        PriorityService.mark_priority('A')

        ClaimService.claim_next(self.worker)

        self.assertFalse(PriorityMark.objects.filter(order_id='A').exists())

    def test_orders_outside_open_statuses_ignored(self):
        self.add_order('A', '2024-01-01T08:00:00Z', status='758513988')

        self.assertIsNone(ClaimService.claim_next(self.worker))

    def test_no_orders_returns_none(self):
        self.assertIsNone(ClaimService.claim_next(self.worker))
        self.assertFalse(Assignment.objects.exists())


class ClaimInvariantTest(PrepTestCase):
    """Test single active order per worker and no double claims."""

    def test_claim_creates_assigned_row(self):
        self.add_order('A', '2024-01-01T08:00:00Z')

        assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(assignment.state, AssignmentState.ASSIGNED)
        self.assertEqual(assignment.worker, self.worker)
        self.assertEqual(assignment.worker_name, 'Ahmed Ali')
        self.assertEqual(assignment.order_number, 'RA')
        self.assertIsNotNone(assignment.assigned_at)
        self.assertIsNone(assignment.started_at)
        self.assertEqual(self.source.status_updates, [])

    def test_worker_with_active_order_is_rejected(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T09:00:00Z')
        ClaimService.claim_next(self.worker)

        with self.assertRaises(WorkerAlreadyHasActiveOrderException):
            ClaimService.claim_next(self.worker)

        self.assertEqual(Assignment.objects.filter(worker=self.worker).count(), 1)

    def test_assigned_orders_are_skipped(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T09:00:00Z')

        first = ClaimService.claim_next(self.worker)
        second = ClaimService.claim_next(self.other_worker)

        self.assertEqual(first.order_id, 'A')
        self.assertEqual(second.order_id, 'B')
        self.assertIsNone(ClaimService.claim_next(self.third_worker))

    def test_claim_locked_history_is_excluded(self):
        """A completed order stays out of the pool even while still open on the platform."""
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T09:00:00Z')
        assignment = ClaimService.claim_next(self.worker)
        PrepService.transition(str(assignment.id), self.worker, AssignmentState.PREPARING, skip_remote_sync=True)
        PrepService.transition(str(assignment.id), self.worker, AssignmentState.COMPLETED, skip_remote_sync=True)

        next_assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(next_assignment.order_id, 'B')

    def test_contention_moves_to_next_candidate(self):
        """Another worker inserting the same order between selection and insert."""
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T09:00:00Z')
        original_get_order = self.source.get_order

        def competing_claim(order_id):
            if order_id == 'A' and not Assignment.objects.filter(order_id='A').exists():
                Assignment.objects.create(order_id='A', order_number='RA', worker=self.other_worker)
            return original_get_order(order_id)

        with patch.object(self.source, 'get_order', side_effect=competing_claim):
            assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(assignment.order_id, 'B')
        self.assertEqual(Assignment.objects.get(order_id='A').worker, self.other_worker)
        self.assertEqual(Assignment.objects.filter(order_id='A').count(), 1)

    def test_concurrent_claim_by_same_worker_raises(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        original_get_order = self.source.get_order

        def own_parallel_claim(order_id):
            Assignment.objects.create(order_id='Z', order_number='RZ', worker=self.worker)
            return original_get_order(order_id)

        with patch.object(self.source, 'get_order', side_effect=own_parallel_claim):
            with self.assertRaises(WorkerAlreadyHasActiveOrderException):
                ClaimService.claim_next(self.worker)

        self.assertEqual(Assignment.objects.filter(worker=self.worker).count(), 1)
        self.assertFalse(Assignment.objects.filter(order_id='A').exists())

    @override_settings(ORDER_PREP={'MAX_CLAIM_ATTEMPTS': 1})
    def test_attempts_are_bounded(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T09:00:00Z')
        original_get_order = self.source.get_order

        def competing_claim(order_id):
            if order_id == 'A':
                Assignment.objects.create(order_id='A', order_number='RA', worker=self.other_worker)
            return original_get_order(order_id)

        with patch.object(self.source, 'get_order', side_effect=competing_claim):
            self.assertIsNone(ClaimService.claim_next(self.worker))

        self.assertFalse(Assignment.objects.filter(worker=self.worker).exists())

    def test_unfetchable_order_is_skipped(self):
        self.add_order('A', '2024-01-01T08:00:00Z')
        self.add_order('B', '2024-01-01T09:00:00Z')
        original_get_order = self.source.get_order

        def flaky(order_id):
            if order_id == 'A':
                raise OrderSourceException("timeout")
            return original_get_order(order_id)

        with patch.object(self.source, 'get_order', side_effect=flaky):
            assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(assignment.order_id, 'B')


class ClaimSnapshotTest(PrepTestCase):

    def test_snapshot_carries_bins(self):
        LocationService.upsert_location('SKU-A', 'A-01-03')
        self.add_order('A', '2024-01-01T08:00:00Z', items=[
            {'sku': 'sku-a', 'quantity': 2, 'name': 'Widget'},
            {'sku': 'OTHER', 'quantity': 1, 'name': 'Gadget'},
        ])

        assignment = ClaimService.claim_next(self.worker)

        items = assignment.order_snapshot['items']
        self.assertEqual(items[0]['inventory_location'], 'A-01-03')
        self.assertNotIn('inventory_location', items[1])
        self.assertEqual([item.sku for item in assignment.line_items], ['sku-a', 'other'])

    @override_settings(ORDER_PREP={'AUTO_START_ON_CLAIM': True})
    def test_auto_start_on_claim(self):
        self.add_order('A', '2024-01-01T08:00:00Z')

        assignment = ClaimService.claim_next(self.worker)

        self.assertEqual(assignment.state, AssignmentState.PREPARING)
        self.assertIsNotNone(assignment.started_at)
        self.assertEqual(self.source.status_updates, [{'order_id': 'A', 'status': '1956875584'}])
