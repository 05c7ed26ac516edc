"""Server-sent event broadcasting to live subscribers."""
from spook.broadcast.channel import NotificationReceiver, NotificationSender, open_channel
from spook.broadcast.registry import SubscriberRegistry
from spook.broadcast.server import BroadcastServer
from spook.broadcast.session import SessionState, SubscriberSession

__all__ = [
    "BroadcastServer",
    "NotificationReceiver",
    "NotificationSender",
    "SessionState",
    "SubscriberRegistry",
    "SubscriberSession",
    "open_channel",
]
