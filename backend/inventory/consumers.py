"""
WebSocket consumer for real-time stock updates.

Broadcast only: clients connect to ws://host/ws/stock/ and receive every
event published to the ``stock`` group.
"""
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from utils.constants import STOCK_EVENTS_GROUP

logger = logging.getLogger(__name__)


class StockConsumer(AsyncWebsocketConsumer):
    """
    Messages sent to clients:
    {
        "type": "issuance.created" | "issuance.updated" | "order.updated" | "stock.low",
        "issuance" | "order" | "stock_item": {...serialized data...}
    }
    """

    async def connect(self):
        self.group_name = STOCK_EVENTS_GROUP

        if self.channel_layer:
            await self.channel_layer.group_add(self.group_name, self.channel_name)
        else:
            logger.warning("Channel layer is None, WebSocket will work but no group messaging")

        await self.accept()

    async def disconnect(self, close_code):
        if self.channel_layer and hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # Clients do not send anything on this channel
        pass

    async def forward(self, event):
        await self.send(text_data=json.dumps(event))

    async def issuance_created(self, event):
        await self.forward(event)

    async def issuance_updated(self, event):
        await self.forward(event)

    async def order_updated(self, event):
        await self.forward(event)

    async def stock_low(self, event):
        await self.forward(event)
