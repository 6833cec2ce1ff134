"""
Rooms - Room-scoped publish/subscribe transport.

A client joins the room of an auction and receives every event published
to it. Delivery never blocks the publisher: each subscriber owns a bounded
queue, and when it is full the oldest undelivered event is discarded and
counted against that subscriber.

RoomHub is the in-process implementation. A websocket server would wrap
each connection in a Subscriber and drain it from its own send loop, or
pass an on_event callback that runs on the subscriber's own thread.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional

from cricauction.realtime.events import Event
from cricauction.utils.logger import get_logger

logger = get_logger("rooms")


DEFAULT_QUEUE_SIZE = 256


@dataclass
class Subscriber:
    """
    One connected client in one room.

    push() only enqueues. When an on_event callback is given, a dispatcher
    thread owned by the subscriber feeds it events in order, so a slow or
    failing callback only delays its own client.

    Attributes:
        client_id: Transport-level client identity
        max_queue: Queue bound; oldest events are dropped beyond it
        on_event: Optional push callback, run on the dispatcher thread
        dropped: Events discarded because the queue was full
    """
    client_id: str
    max_queue: int = DEFAULT_QUEUE_SIZE
    on_event: Optional[Callable[[Event], None]] = None
    dropped: int = 0
    queue: Deque[Event] = field(default_factory=deque)
    _outbox: Deque[Event] = field(default_factory=deque, repr=False, compare=False)
    _cond: threading.Condition = field(default_factory=threading.Condition, repr=False, compare=False)
    _dispatcher: Optional[threading.Thread] = field(default=None, repr=False, compare=False)
    _dispatching: bool = field(default=False, repr=False, compare=False)
    _closed: bool = field(default=False, repr=False, compare=False)

    def push(self, event: Event) -> None:
        with self._cond:
            if self._append(self.queue, event):
                self.dropped += 1
            if self.on_event is None or self._closed:
                return
            self._append(self._outbox, event)
            if self._dispatcher is None:
                self._dispatcher = threading.Thread(
                    target=self._dispatch_loop,
                    name=f"subscriber-{self.client_id}",
                    daemon=True,
                )
                self._dispatcher.start()
            self._cond.notify_all()

    def _append(self, target: Deque[Event], event: Event) -> bool:
        """Append, evicting the oldest entry when full. Returns True if one was evicted."""
        evicted = len(target) >= self.max_queue
        if evicted:
            target.popleft()
        target.append(event)
        return evicted

    def _dispatch_loop(self) -> None:
        while True:
            with self._cond:
                while not self._outbox and not self._closed:
                    self._cond.wait()
                if self._closed:
                    self._outbox.clear()
                    self._dispatcher = None
                    self._cond.notify_all()
                    return
                event = self._outbox.popleft()
                callback = self.on_event
                self._dispatching = True

            try:
                if callback is not None:
                    callback(event)
            except Exception as e:
                logger.warning(f"Callback for {self.client_id} failed on {event.name}: {e}")
            finally:
                with self._cond:
                    self._dispatching = False
                    self._cond.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every pushed event has been handed to the callback."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._outbox and not self._dispatching, timeout
            )

    def close(self) -> None:
        """Stop the dispatcher; undelivered callback events are discarded."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def drain(self) -> List[Event]:
        """Take every queued event, oldest first."""
        with self._cond:
            events = list(self.queue)
            self.queue.clear()
        return events

    @property
    def pending(self) -> int:
        return len(self.queue)


class RealtimeTransport(ABC):
    """Interface the broadcast channel publishes through."""

    @abstractmethod
    def join(self, room: str, client_id: str, **kwargs) -> Subscriber:
        ...

    @abstractmethod
    def leave(self, room: str, client_id: str) -> bool:
        ...

    @abstractmethod
    def publish(self, room: str, event: Event) -> int:
        """Deliver to every member. Returns the number of recipients."""
        ...

    @abstractmethod
    def members(self, room: str) -> List[str]:
        ...


class RoomHub(RealtimeTransport):
    """In-memory rooms with bounded per-subscriber queues."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.queue_size = queue_size
        self._rooms: Dict[str, Dict[str, Subscriber]] = {}
        self._lock = threading.Lock()

    def join(
        self,
        room: str,
        client_id: str,
        on_event: Optional[Callable[[Event], None]] = None,
    ) -> Subscriber:
        """Join a room. Re-joining returns the existing subscriber."""
        with self._lock:
            members = self._rooms.setdefault(room, {})
            subscriber = members.get(client_id)
            if subscriber is None:
                subscriber = Subscriber(client_id, self.queue_size, on_event)
                members[client_id] = subscriber
                logger.debug(f"{client_id} joined {room} ({len(members)} members)")
            elif on_event is not None:
                subscriber.on_event = on_event
        return subscriber

    def leave(self, room: str, client_id: str) -> bool:
        with self._lock:
            members = self._rooms.get(room)
            if not members or client_id not in members:
                return False
            subscriber = members.pop(client_id)
            if not members:
                del self._rooms[room]
        subscriber.close()
        logger.debug(f"{client_id} left {room}")
        return True

    def publish(self, room: str, event: Event) -> int:
        with self._lock:
            recipients = list(self._rooms.get(room, {}).values())

        delivered = 0
        for subscriber in recipients:
            try:
                subscriber.push(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Delivery of {event.name} to {subscriber.client_id} failed: {e}")
        return delivered

    def members(self, room: str) -> List[str]:
        with self._lock:
            return list(self._rooms.get(room, {}).keys())

    def subscriber(self, room: str, client_id: str) -> Optional[Subscriber]:
        with self._lock:
            return self._rooms.get(room, {}).get(client_id)

    def rooms(self) -> List[str]:
        with self._lock:
            return list(self._rooms.keys())
