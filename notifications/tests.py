from asgiref.sync import sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase, override_settings

from notifications.consumers import NotificationConsumer
from notifications.gateway import (
    EVENT_MESSAGE_TYPE,
    NotificationGateway,
    global_channel,
    restaurant_channel,
)
from notifications.testing import FailingLayer, RecordingLayer


class NotificationGatewayTest(SimpleTestCase):
    """Unit tests for NotificationGateway"""

    def setUp(self):
        self.layer = RecordingLayer()
        self.gateway = NotificationGateway()

    def test_publish_before_init_is_dropped(self):
        self.assertFalse(self.gateway.is_initialized)
        self.assertFalse(self.gateway.publish('reservationCreated', {'id': 1}))

    def test_publish_after_teardown_is_dropped(self):
        self.gateway.init(self.layer)
        self.gateway.teardown()

        self.assertFalse(self.gateway.publish('reservationCreated', {'id': 1}))
        self.assertEqual(self.layer.sent, [])

    def test_publish_defaults_to_global_channel(self):
        self.gateway.init(self.layer)

        self.assertTrue(self.gateway.publish('restaurantDeleted', {'restaurantId': '3'}))

        self.assertEqual(self.layer.sent, [(
            'broadcast',
            {
                'type': EVENT_MESSAGE_TYPE,
                'event': 'restaurantDeleted',
                'payload': {'restaurantId': '3'},
            },
        )])

    def test_publish_to_room(self):
        self.gateway.init(self.layer)

        self.gateway.publish('reservationCreated', {'id': 1}, restaurant_channel(7))

        self.assertEqual(self.layer.events(), [('restaurant_7', 'reservationCreated', {'id': 1})])

    @override_settings(NOTIFICATIONS_GLOBAL_CHANNEL='everyone')
    def test_global_channel_is_configurable(self):
        self.gateway.init(self.layer)

        self.gateway.publish('restaurantDeleted', {})

        self.assertEqual(global_channel(), 'everyone')
        self.assertEqual(self.layer.sent[0][0], 'everyone')

    def test_publish_transport_failure_is_swallowed(self):
        self.gateway.init(FailingLayer())

        with self.assertLogs('notifications.gateway', level='WARNING'):
            self.assertFalse(self.gateway.publish('reservationCreated', {'id': 1}))

    def test_publish_unserializable_payload_is_dropped(self):
        self.gateway.init(self.layer)

        self.assertFalse(self.gateway.publish('reservationCreated', {'id': object()}))
        self.assertEqual(self.layer.sent, [])

    def test_broadcast_without_restaurant(self):
        self.gateway.init(self.layer)

        result = self.gateway.broadcast('restaurantDeleted', {'restaurantId': '1'})

        self.assertEqual(result, (True, None))
        self.assertEqual(len(self.layer.sent), 1)

    def test_broadcast_to_global_and_room(self):
        self.gateway.init(self.layer)

        result = self.gateway.broadcast('reservationCreated', {'id': 1}, restaurant_id=4)

        self.assertEqual(result, (True, True))
        self.assertEqual(self.layer.events(), [
            ('broadcast', 'reservationCreated', {'id': 1}),
            ('restaurant_4', 'reservationCreated', {'id': 1}),
        ])

    def test_broadcast_scoped_payload(self):
        self.gateway.init(self.layer)

        self.gateway.broadcast(
            'reservationCancelled',
            {'reservationId': 1},
            restaurant_id=4,
            scoped_payload={'id': 1, 'status': 'cancelled'},
        )

        self.assertEqual(self.layer.events('broadcast')[0][2], {'reservationId': 1})
        self.assertEqual(
            self.layer.events('restaurant_4')[0][2], {'id': 1, 'status': 'cancelled'}
        )


class NotificationConsumerTest(SimpleTestCase):
    """Websocket tests for NotificationConsumer"""

    async def connect(self):
        communicator = WebsocketCommunicator(
            NotificationConsumer.as_asgi(), '/ws/notifications/'
        )
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        return communicator

    async def test_global_events_reach_every_socket(self):
        communicator = await self.connect()

        await get_channel_layer().group_send(global_channel(), {
            'type': EVENT_MESSAGE_TYPE,
            'event': 'restaurantDeleted',
            'payload': {'restaurantId': '2'},
        })

        message = await communicator.receive_json_from(timeout=1)
        self.assertEqual(message, {'event': 'restaurantDeleted', 'payload': {'restaurantId': '2'}})
        await communicator.disconnect()

    async def test_join_and_leave_room(self):
        communicator = await self.connect()

        await communicator.send_json_to({'action': 'joinRestaurantRoom', 'restaurant': '5'})
        self.assertEqual(
            await communicator.receive_json_from(timeout=1),
            {'type': 'joined', 'room': 'restaurant_5'},
        )

        await get_channel_layer().group_send(restaurant_channel(5), {
            'type': EVENT_MESSAGE_TYPE,
            'event': 'reservationCreated',
            'payload': {'id': 10},
        })
        message = await communicator.receive_json_from(timeout=1)
        self.assertEqual(message['event'], 'reservationCreated')

        await communicator.send_json_to({'action': 'leaveRestaurantRoom', 'restaurant': 5})
        self.assertEqual(
            await communicator.receive_json_from(timeout=1),
            {'type': 'left', 'room': 'restaurant_5'},
        )

        await get_channel_layer().group_send(restaurant_channel(5), {
            'type': EVENT_MESSAGE_TYPE,
            'event': 'reservationCreated',
            'payload': {'id': 11},
        })
        self.assertTrue(await communicator.receive_nothing(timeout=0.2))
        await communicator.disconnect()

    async def test_room_events_stay_in_room(self):
        communicator = await self.connect()

        await get_channel_layer().group_send(restaurant_channel(6), {
            'type': EVENT_MESSAGE_TYPE,
            'event': 'reservationCreated',
            'payload': {'id': 12},
        })

        self.assertTrue(await communicator.receive_nothing(timeout=0.2))
        await communicator.disconnect()

    async def test_unknown_action(self):
        communicator = await self.connect()

        await communicator.send_json_to({'action': 'shout'})

        self.assertEqual(
            await communicator.receive_json_from(timeout=1),
            {'type': 'error', 'message': 'Unknown action: shout'},
        )
        await communicator.disconnect()

    async def test_join_with_invalid_restaurant(self):
        communicator = await self.connect()

        await communicator.send_json_to({'action': 'joinRestaurantRoom', 'restaurant': 'abc'})

        self.assertEqual(
            await communicator.receive_json_from(timeout=1),
            {'type': 'error', 'message': 'Invalid restaurant id'},
        )
        await communicator.disconnect()

    async def test_gateway_publish_reaches_socket(self):
        communicator = await self.connect()
        await communicator.send_json_to({'action': 'joinRestaurantRoom', 'restaurant': 8})
        await communicator.receive_json_from(timeout=1)

        gateway = NotificationGateway().init()
        delivered = await sync_to_async(gateway.broadcast)(
            'reservationUpdated', {'id': 3, 'time': '20:00'}, restaurant_id=8
        )

        self.assertEqual(delivered, (True, True))
        first = await communicator.receive_json_from(timeout=1)
        second = await communicator.receive_json_from(timeout=1)
        self.assertEqual(first, {'event': 'reservationUpdated', 'payload': {'id': 3, 'time': '20:00'}})
        self.assertEqual(second, first)
        await communicator.disconnect()
