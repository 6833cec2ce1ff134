"""
CricAuction Realtime Module.

This module provides:
- Event names and the JSON envelope
- Room-scoped transport with bounded subscriber queues
- The broadcast channel used after each committed mutation
"""

from cricauction.realtime.events import (
    Event,
    EventType,
    TERMINAL_EVENTS,
    room_name,
)

from cricauction.realtime.rooms import (
    RealtimeTransport,
    RoomHub,
    Subscriber,
)

from cricauction.realtime.broadcast import BroadcastChannel, ChannelStats

__all__ = [
    # Events
    "Event",
    "EventType",
    "TERMINAL_EVENTS",
    "room_name",
    # Rooms
    "RealtimeTransport",
    "RoomHub",
    "Subscriber",
    # Broadcast
    "BroadcastChannel",
    "ChannelStats",
]
