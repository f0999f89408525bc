# notifications/consumers.py

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from config.exceptions import ValidationFailed, parse_id
from notifications.gateway import global_channel, restaurant_channel

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    Websocket session that receives reservation events.

    Every connection follows the global channel. Clients opt in to a
    restaurant's room with ``{"action": "joinRestaurantRoom", "restaurant": id}``
    and leave it with ``leaveRestaurantRoom``.
    """

    JOIN = "joinRestaurantRoom"
    LEAVE = "leaveRestaurantRoom"

    async def connect(self):
        self.rooms = set()
        await self.channel_layer.group_add(global_channel(), self.channel_name)
        await self.accept()
        logger.debug(f"Socket {self.channel_name} connected")

    async def disconnect(self, code):
        await self.channel_layer.group_discard(global_channel(), self.channel_name)
        for room in list(getattr(self, "rooms", ())):
            await self.channel_layer.group_discard(room, self.channel_name)
        logger.debug(f"Socket {self.channel_name} disconnected ({code})")

    async def receive_json(self, content, **kwargs):
        action = content.get("action") if isinstance(content, dict) else None

        if action not in (self.JOIN, self.LEAVE):
            await self.send_json({"type": "error", "message": f"Unknown action: {action}"})
            return

        try:
            restaurant_id = parse_id(content.get("restaurant"), "Invalid restaurant id")
        except ValidationFailed as exc:
            await self.send_json({"type": "error", "message": str(exc.detail)})
            return

        room = restaurant_channel(restaurant_id)
        if action == self.JOIN:
            await self.channel_layer.group_add(room, self.channel_name)
            self.rooms.add(room)
            logger.info(f"{self.channel_name} joined room {room}")
            await self.send_json({"type": "joined", "room": room})
        else:
            await self.channel_layer.group_discard(room, self.channel_name)
            self.rooms.discard(room)
            logger.info(f"{self.channel_name} left room {room}")
            await self.send_json({"type": "left", "room": room})

    async def notify_event(self, message):
        await self.send_json({"event": message["event"], "payload": message["payload"]})
