"""
Dispatch Channels

Transports carrying dispatch messages from submitters to workers.
"""

from correlation.channels.base import Delivery, DispatchChannel
from correlation.channels.memory import MemoryChannel
from correlation.channels.pubsub import RedisPubSubChannel
from correlation.channels.stream import RedisStreamChannel

__all__ = [
    "Delivery",
    "DispatchChannel",
    "MemoryChannel",
    "RedisPubSubChannel",
    "RedisStreamChannel",
]
