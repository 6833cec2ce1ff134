"""
Broadcast Channel - Fan-out of committed auction events.

The channel stamps each event with a per-room sequence number, queues it,
and hands queued events to the transport in that order. The service stamps
while it holds the auction lock and flushes after releasing it, so delivery
never runs on the critical path. Publishing is fire-and-forget: transport
failures are logged and counted, never raised back into the auction path.
"""

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Optional

from cricauction.realtime.events import Event, EventType, room_name
from cricauction.realtime.rooms import RealtimeTransport, RoomHub, Subscriber
from cricauction.utils.logger import get_logger

logger = get_logger("broadcast")


@dataclass
class ChannelStats:
    published: int = 0
    delivered: int = 0
    failures: int = 0


class BroadcastChannel:
    """
    Publishes auction events to their rooms.

    Example:
        >>> channel = BroadcastChannel(RoomHub())
        >>> sub = channel.join("a1", "client-1")
        >>> channel.publish(Event(EventType.TIMER_TICK, "a1", {"remaining": 5}))
        1
    """

    def __init__(self, transport: Optional[RealtimeTransport] = None):
        self.transport = transport or RoomHub()
        self.stats = ChannelStats()
        self._sequences: Dict[str, int] = {}
        self._outbox: Deque[Event] = deque()
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()

    # =========================================================================
    # Publishing
    # =========================================================================

    def enqueue(self, events: Iterable[Event]) -> None:
        """
        Stamp events with their room sequence and queue them for delivery.

        Called while the producer still holds its auction lock, so sequence
        order matches commit order. Nothing is delivered until flush().
        """
        with self._lock:
            for event in events:
                self._sequences[event.room] = self._sequences.get(event.room, 0) + 1
                event.sequence = self._sequences[event.room]
                self._outbox.append(event)

    def flush(self) -> int:
        """
        Deliver queued events in sequence order.

        Returns:
            Number of subscriber deliveries made by this call
        """
        delivered = 0
        with self._flush_lock:
            while True:
                with self._lock:
                    if not self._outbox:
                        break
                    event = self._outbox.popleft()
                delivered += self._deliver(event)
        return delivered

    def _deliver(self, event: Event) -> int:
        self.stats.published += 1
        try:
            delivered = self.transport.publish(event.room, event)
        except Exception as e:
            self.stats.failures += 1
            logger.error(f"Publishing {event.name} to {event.room} failed: {e}")
            return 0

        self.stats.delivered += delivered
        if event.event_type != EventType.TIMER_TICK:
            logger.debug(f"{event.name} #{event.sequence} -> {event.room} ({delivered} clients)")
        return delivered

    def publish(self, event: Event) -> int:
        """
        Send one event to its room.

        Returns:
            Number of deliveries made by this call (0 on transport failure)
        """
        return self.publish_all([event])

    def publish_all(self, events: Iterable[Event]) -> int:
        """Publish events in order. Returns total deliveries."""
        self.enqueue(events)
        return self.flush()

    # =========================================================================
    # Membership
    # =========================================================================

    def join(self, auction_id: str, client_id: str, display_name: Optional[str] = None,
             **kwargs) -> Subscriber:
        """Join an auction room and announce it to the other members."""
        subscriber = self.transport.join(room_name(auction_id), client_id, **kwargs)
        self.publish(Event(EventType.USER_JOINED, auction_id, {
            "user_id": client_id,
            "display_name": display_name or client_id,
        }))
        return subscriber

    def leave(self, auction_id: str, client_id: str) -> bool:
        left = self.transport.leave(room_name(auction_id), client_id)
        if left:
            self.publish(Event(EventType.USER_LEFT, auction_id, {"user_id": client_id}))
        return left

    def post_message(self, auction_id: str, sender_id: str, sender_name: str,
                     text: str) -> Event:
        """Relay a chat message to the room."""
        event = Event(EventType.NEW_MESSAGE, auction_id, {
            "user_id": sender_id,
            "display_name": sender_name,
            "message": text,
        })
        self.publish(event)
        return event

    def members(self, auction_id: str) -> List[str]:
        return self.transport.members(room_name(auction_id))

    def stats_dict(self) -> Dict[str, Any]:
        return {
            "published": self.stats.published,
            "delivered": self.stats.delivered,
            "failures": self.stats.failures,
        }
