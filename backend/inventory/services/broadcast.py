"""
WebSocket broadcast of inventory events to the ``stock`` channels group.

Events are published only after the surrounding database transaction
commits, so clients never see changes that were rolled back.
"""

import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from utils.constants import STOCK_EVENTS_GROUP

logger = logging.getLogger(__name__)


def broadcast_event(event_type, **payload):
    """
    Send ``{"type": event_type, **payload}`` to every connected client.

    Failures are logged and never propagated to the caller.
    """
    try:
        channel_layer = get_channel_layer()
        if channel_layer:
            # Round-trip through JSON so Decimals and datetimes become strings
            message = json.loads(json.dumps(payload, default=str))
            async_to_sync(channel_layer.group_send)(
                STOCK_EVENTS_GROUP,
                {'type': event_type, **message}
            )
            logger.info(f"Broadcasted {event_type} to WebSocket clients")
    except Exception as e:
        logger.error(f"Failed to broadcast {event_type}: {e}")


def broadcast_on_commit(event_type, **payload):
    transaction.on_commit(lambda: broadcast_event(event_type, **payload))
