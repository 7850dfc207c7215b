"""
Tests for order payload mapping and the HTTP order source.
"""

from datetime import datetime, timezone as dt_timezone
from unittest.mock import MagicMock

import requests
from django.test import SimpleTestCase

from ..adapters.order_source import HttpOrderSource
from ..exceptions import OrderSourceException
from ..snapshots import OrderRecord, LineItem, extract_line_items, extract_status_tag, with_status


class OrderRecordTest(SimpleTestCase):

    def test_from_payload(self):
        record = OrderRecord.from_payload({
            'id': 1001,
            'reference_id': 'R1001',
            'status': {'id': 449146439, 'sub_status': {'id': 566146469}},
            'date': {'created': '2024-03-01 10:15:00'},
        })

        self.assertEqual(record.order_id, '1001')
        self.assertEqual(record.order_number, 'R1001')
        self.assertEqual(record.status, '566146469')
        self.assertEqual(record.created_at, datetime(2024, 3, 1, 10, 15, tzinfo=dt_timezone.utc))

    def test_alternative_keys(self):
        record = OrderRecord.from_payload({'orderId': 'X9', 'status': 'under_review', 'createdAt': 1700000000000})

        self.assertEqual(record.order_id, 'X9')
        self.assertEqual(record.order_number, 'X9')
        self.assertEqual(record.status, 'under_review')
        self.assertEqual(record.created_at, datetime.fromtimestamp(1700000000, tz=dt_timezone.utc))

    def test_out_of_range_timestamp_is_ignored(self):
        for value in (10 ** 20, -10 ** 20, float('nan'), float('inf')):
            record = OrderRecord.from_payload({'id': 'B', 'created_at': value})
            self.assertIsNone(record.created_at)

    def test_payload_without_id(self):
        self.assertIsNone(OrderRecord.from_payload({'status': 'under_review'}))

    def test_missing_created_at_sorts_first(self):
        undated = OrderRecord.from_payload({'id': 'B'})
        dated = OrderRecord.from_payload({'id': 'A', 'created_at': '2024-01-01T00:00:00Z'})

        self.assertEqual(sorted([dated, undated], key=lambda record: record.sort_key), [undated, dated])


class LineItemTest(SimpleTestCase):

    def test_extract_line_items(self):
        items = extract_line_items({'order_items': [
            {'sku': ' ABC ', 'quantity': '2', 'name': 'Shirt'},
            {'product': {'sku': 'DEF', 'name': 'Mug'}, 'qty': 3.7},
            {'variant': {'sku': 'GHI'}, 'count': 'many'},
            {'name': 'No SKU', 'quantity': 1},
        ]})

        self.assertEqual(items, [
            LineItem(sku='abc', quantity=2, name='Shirt'),
            LineItem(sku='def', quantity=3, name='Mug'),
            LineItem(sku='ghi', quantity=0, name=''),
        ])

    def test_with_status_copies(self):
        payload = {'id': 1, 'status': {'id': '1', 'sub_status': {'id': '2'}}}

        updated = with_status(payload, '3')

        self.assertEqual(extract_status_tag(updated), '3')
        self.assertEqual(extract_status_tag(payload), '2')


class HttpOrderSourceTest(SimpleTestCase):
    """Test the REST client against a stubbed session."""

    def response(self, data, status_code=200):
        response = MagicMock()
        response.ok = status_code < 400
        response.status_code = status_code
        response.json.return_value = data
        response.text = ''
        return response

    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.source = HttpOrderSource(
            base_url='https://platform.test/v2/', token='secret', timeout=3, page_size=2, session=self.session
        )

    def test_auth_header(self):
        self.assertEqual(self.session.headers['Authorization'], 'Bearer secret')

    def test_list_open_orders_paginates_and_deduplicates(self):
        self.session.request.side_effect = [
            self.response({'data': [{'id': 1}, {'id': 2}], 'pagination': {'totalPages': 2}}),
            self.response({'data': [{'id': 3}], 'pagination': {'totalPages': 2}}),
            self.response({'data': [{'id': 3}, {'id': 4}], 'pagination': {'totalPages': 1}}),
        ]

        records = self.source.list_open_orders(['449146439', '566146469'])

        self.assertEqual([record.order_id for record in records], ['1', '2', '3', '4'])
        first_call = self.session.request.call_args_list[0]
        self.assertEqual(first_call.args, ('GET', 'https://platform.test/v2/orders'))
        self.assertEqual(first_call.kwargs['params']['status'], '449146439')
        self.assertEqual(first_call.kwargs['timeout'], 3)

    def test_list_open_orders_fails_when_every_filter_fails(self):
        self.session.request.side_effect = requests.ConnectionError('down')

        with self.assertRaises(OrderSourceException):
            self.source.list_open_orders(['449146439'])

    def test_set_remote_status(self):
        self.session.request.return_value = self.response({'status': 200})

        self.source.set_remote_status('1001', '758513988')

        self.session.request.assert_called_once_with(
            'POST', 'https://platform.test/v2/orders/1001/status', timeout=3, json={'status_id': 758513988}
        )

    def test_non_object_body_raises(self):
        for body in ([{'id': 1}], 'ok', 42, None):
            self.session.request.return_value = self.response(body)
            with self.assertRaises(OrderSourceException):
                self.source.get_stock('ABC')

    def test_list_body_fails_the_listing(self):
        self.session.request.return_value = self.response([{'id': 1}])

        with self.assertRaises(OrderSourceException):
            self.source.list_open_orders(['449146439'])

    def test_order_detail_that_is_not_an_object(self):
        self.session.request.side_effect = [
            self.response({'data': [{'id': 1001}]}),
            self.response({'data': []}),
        ]

        with self.assertRaises(OrderSourceException):
            self.source.get_order('1001')

    def test_error_status_raises(self):
        self.session.request.return_value = self.response({}, status_code=500)

        with self.assertRaises(OrderSourceException) as context:
            self.source.set_remote_status('1001', 'completed')

        self.assertEqual(context.exception.details['status_code'], 500)
