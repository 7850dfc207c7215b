"""
Tests for stock reconciliation.
"""

from django.test import SimpleTestCase

from ..models import AssignmentState
from ..services import ClaimService, PrepService, ReconciliationService, calculate_reconciliation
from ..exceptions import InvalidCountException, ValidationException
from .base import PrepTestCase


class CalculateReconciliationTest(SimpleTestCase):
    """Test the pure calculation."""

    def test_override_subtracts_pending(self):
        result = calculate_reconciliation('x', 7, 'override', pending=2, current_remote_stock=10)

        self.assertEqual(result.remote_quantity, 5)
        self.assertEqual(result.delta, -5)
        self.assertEqual(result.adjustment, {'sku': 'x', 'quantity': 5, 'mode': 'decrement'})

    def test_increment_adds_to_remote(self):
        result = calculate_reconciliation('x', 3, 'increment', pending=2, current_remote_stock=10)

        self.assertEqual(result.remote_quantity, 13)
        self.assertEqual(result.delta, 3)
        self.assertEqual(result.adjustment, {'sku': 'x', 'quantity': 3, 'mode': 'increment'})

    def test_override_never_goes_negative(self):
        result = calculate_reconciliation('x', 1, 'override', pending=5, current_remote_stock=4)

        self.assertEqual(result.remote_quantity, 0)
        self.assertEqual(result.delta, -4)

    def test_no_change_means_no_adjustment(self):
        result = calculate_reconciliation('x', 10, 'override', pending=0, current_remote_stock=10)

        self.assertEqual(result.delta, 0)
        self.assertIsNone(result.adjustment)

    def test_fractional_counts_round_half_up(self):
        self.assertEqual(calculate_reconciliation('x', 2.5, 'increment', 0, 0).physical_count, 3)
        self.assertEqual(calculate_reconciliation('x', '4.4', 'increment', 0, 0).physical_count, 4)
        self.assertEqual(calculate_reconciliation('x', '0.5', 'increment', 0, 0).physical_count, 1)

    def test_invalid_counts_rejected(self):
        for value in (-1, '-0.2', 'abc', None, 'nan', 'inf', True):
            with self.assertRaises(InvalidCountException):
                calculate_reconciliation('x', value, 'override', 0, 10)

    def test_unknown_mode_rejected(self):
        with self.assertRaises(ValidationException):
            calculate_reconciliation('x', 1, 'replace', 0, 10)


class ReconciliationServiceTest(PrepTestCase):
    """Test pending quantities read from active assignments."""

    def setUp(self):
        super().setUp()
        self.add_order('A', '2024-01-01T08:00:00Z', items=[{'sku': 'X', 'quantity': 1}])
        self.add_order('B', '2024-01-01T09:00:00Z', items=[
            {'sku': ' x ', 'quantity': '1'},
            {'sku': 'Y', 'quantity': 4},
        ])
        self.add_order('C', '2024-01-01T10:00:00Z', items=[{'sku': 'X', 'quantity': 6}])
        self.first = ClaimService.claim_next(self.worker)
        self.second = ClaimService.claim_next(self.other_worker)
        closed = ClaimService.claim_next(self.third_worker)
        PrepService.transition(str(closed.id), self.third_worker, AssignmentState.CANCELLED)

    def test_pending_quantity_counts_active_assignments_only(self):
        self.assertEqual(ReconciliationService.pending_quantity('X'), 2)
        self.assertEqual(ReconciliationService.pending_quantity('y'), 4)
        self.assertEqual(ReconciliationService.pending_quantity('Z'), 0)

    def test_reconcile_override(self):
        result = ReconciliationService.reconcile('X', 7, 'override', current_remote_stock=10)

        self.assertEqual(result.pending, 2)
        self.assertEqual(result.remote_quantity, 5)
        self.assertEqual(result.delta, -5)

    def test_reconcile_reads_remote_stock(self):
        self.source.stock['x'] = 10

        result = ReconciliationService.reconcile('X', 3, 'increment')

        self.assertEqual(result.current_remote_stock, 10)
        self.assertEqual(result.remote_quantity, 13)

    def test_apply_adjustment(self):
        self.source.stock['x'] = 10
        result = ReconciliationService.reconcile('X', 7, 'override')

        new_quantity = ReconciliationService.apply_adjustment(result)

        self.assertEqual(new_quantity, 5)
        self.assertEqual(self.source.stock_adjustments, [{'sku': 'x', 'quantity': 5, 'mode': 'decrement'}])

    def test_reconcile_requires_sku(self):
        with self.assertRaises(ValidationException):
            ReconciliationService.reconcile('  ', 3)
