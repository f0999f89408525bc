"""
In-process stand-ins for a channel layer, for asserting what was published.
"""

from notifications.gateway import NotificationGateway


class RecordingLayer:
    """Channel layer that keeps every group message instead of sending it."""

    def __init__(self):
        self.sent = []

    async def group_send(self, group, message):
        self.sent.append((group, message))

    def events(self, group=None):
        return [
            (sent_group, message["event"], message["payload"])
            for sent_group, message in self.sent
            if group is None or sent_group == group
        ]


class FailingLayer:
    async def group_send(self, group, message):
        raise ConnectionError("transport down")


def recording_gateway():
    layer = RecordingLayer()
    return NotificationGateway().init(layer), layer
