"""
Tests for the low stock task, event broadcasting and the stock WebSocket.
"""

from unittest import mock

from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase, TestCase

from inventory.consumers import StockConsumer
from inventory.services.broadcast import broadcast_event
from inventory.tasks import notify_low_stock
from inventory.tests.helpers import make_stock_item
from utils.constants import STOCK_EVENTS_GROUP


class NotifyLowStockTaskTest(TestCase):

    @mock.patch('inventory.tasks.broadcast_event')
    def test_low_item_is_broadcast(self, mock_broadcast):
        item = make_stock_item(quantity='3')

        with self.assertLogs('inventory.tasks', level='WARNING') as logs:
            self.assertTrue(notify_low_stock(item.id))

        self.assertIn(item.batch_number, logs.output[0])
        mock_broadcast.assert_called_once()
        event_type = mock_broadcast.call_args.args[0]
        payload = mock_broadcast.call_args.kwargs
        self.assertEqual(event_type, 'stock.low')
        self.assertEqual(payload['stock_item']['id'], item.id)

    @mock.patch('inventory.tasks.broadcast_event')
    def test_item_restocked_before_task_runs(self, mock_broadcast):
        item = make_stock_item(quantity='50')

        self.assertFalse(notify_low_stock(item.id))
        mock_broadcast.assert_not_called()

    @mock.patch('inventory.tasks.broadcast_event')
    def test_missing_item(self, mock_broadcast):
        with self.assertLogs('inventory.tasks', level='ERROR'):
            self.assertFalse(notify_low_stock(999999))
        mock_broadcast.assert_not_called()


class BroadcastEventTest(SimpleTestCase):

    @mock.patch('inventory.services.broadcast.get_channel_layer')
    def test_channel_layer_failure_is_logged(self, mock_get_layer):
        mock_get_layer.side_effect = RuntimeError('redis down')

        with self.assertLogs('inventory.services.broadcast', level='ERROR') as logs:
            broadcast_event('stock.low', stock_item={'id': 1})

        self.assertIn('redis down', logs.output[0])


class StockConsumerTest(SimpleTestCase):

    async def test_group_events_reach_client(self):
        communicator = WebsocketCommunicator(StockConsumer.as_asgi(), '/ws/stock/')
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        await get_channel_layer().group_send(
            STOCK_EVENTS_GROUP,
            {'type': 'issuance.created', 'issuance': {'issuance_number': 'ISS-20250101-0001'}}
        )
        message = await communicator.receive_json_from()

        self.assertEqual(message['type'], 'issuance.created')
        self.assertEqual(message['issuance']['issuance_number'], 'ISS-20250101-0001')
        await communicator.disconnect()
