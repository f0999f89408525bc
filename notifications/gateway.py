# notifications/gateway.py

import json
import logging
from typing import Any, Optional, Tuple

from asgiref.sync import async_to_sync
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

# Consumer handler invoked by the channel layer for every published event
EVENT_MESSAGE_TYPE = "notify.event"


def global_channel() -> str:
    return getattr(settings, "NOTIFICATIONS_GLOBAL_CHANNEL", "broadcast")


def restaurant_channel(restaurant_id) -> str:
    """Group name of the room that follows a single restaurant."""
    return f"restaurant_{restaurant_id}"


class NotificationGateway:
    """
    Best-effort fan-out of events to channel layer groups.

    Publishing never raises: before ``init`` and on any transport failure the
    call logs a warning and returns False. Callers treat every publish as
    advisory.
    """

    def __init__(self):
        self._layer = None

    @property
    def is_initialized(self) -> bool:
        return self._layer is not None

    def init(self, layer=None):
        """
        Bind the gateway to a channel layer. Without an explicit layer the
        project's default layer is used; a project without CHANNEL_LAYERS
        leaves the gateway in no-op mode.
        """
        if layer is None:
            from channels.layers import get_channel_layer

            layer = get_channel_layer()
        self._layer = layer
        if layer is None:
            logger.warning("No channel layer configured, notifications disabled")
        else:
            logger.debug(f"Notification gateway bound to {layer.__class__.__name__}")
        return self

    def teardown(self):
        self._layer = None

    def publish(self, event_name: str, payload: Any, channel: Optional[str] = None) -> bool:
        """
        Send ``payload`` under ``event_name`` to ``channel``, or to every
        subscriber when no channel is given.

        Returns whether delivery was attempted, not whether anyone received it.
        """
        if self._layer is None:
            logger.warning(f"Notification gateway not initialized, dropped {event_name}")
            return False

        group = channel or global_channel()
        try:
            message = {
                "type": EVENT_MESSAGE_TYPE,
                "event": event_name,
                "payload": json.loads(json.dumps(payload, cls=DjangoJSONEncoder)),
            }
            async_to_sync(self._layer.group_send)(group, message)
        except Exception as exc:
            logger.warning(f"Publishing {event_name} to {group} failed: {exc}")
            return False

        return True

    def broadcast(
        self,
        event_name: str,
        payload: Any,
        restaurant_id=None,
        scoped_payload: Any = None,
    ) -> Tuple[bool, Optional[bool]]:
        """
        Publish globally and, for restaurant-scoped events, to the
        restaurant's room. The room receives ``scoped_payload`` when given.
        """
        delivered_globally = self.publish(event_name, payload)
        if restaurant_id is None:
            return delivered_globally, None

        room_payload = payload if scoped_payload is None else scoped_payload
        delivered_to_room = self.publish(
            event_name, room_payload, restaurant_channel(restaurant_id)
        )
        return delivered_globally, delivered_to_room


notification_gateway = NotificationGateway()
