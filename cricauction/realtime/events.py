"""
Realtime Events - Event names and payload envelope for auction rooms.

Every state transition the session commits is described by an Event.
Events are buffered by the session and handed to the broadcast channel
only after the mutation has been persisted.

Wire format (JSON):
    {"event": <name>, "room": "auction_<id>", "sequence": n,
     "timestamp": <unix seconds>, "payload": {...}}
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class EventType(Enum):
    """Events an auction room can receive."""
    AUCTION_STARTED = "auction_started"
    AUCTION_PAUSED = "auction_paused"
    AUCTION_RESUMED = "auction_resumed"
    AUCTION_CANCELLED = "auction_cancelled"
    AUCTION_COMPLETED = "auction_completed"
    CURRENT_PLAYER_CHANGED = "current_player_changed"
    BID_UPDATE = "bid_update"
    TIMER_TICK = "timer_tick"
    PLAYER_SOLD = "player_sold_update"
    PLAYER_UNSOLD = "player_unsold_update"
    PLAYER_SKIPPED = "player_skipped"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"
    NEW_MESSAGE = "new_message"


# Events that end a round or the auction; never sent twice for one round
TERMINAL_EVENTS = frozenset({
    EventType.PLAYER_SOLD,
    EventType.PLAYER_UNSOLD,
    EventType.AUCTION_COMPLETED,
    EventType.AUCTION_CANCELLED,
})


def room_name(auction_id: str) -> str:
    """Room every participant of an auction joins."""
    return f"auction_{auction_id}"


@dataclass
class Event:
    """
    A room-scoped event.

    Attributes:
        event_type: Event name
        auction_id: Auction the event belongs to
        payload: JSON-serializable body
        timestamp: Creation time
        sequence: Per-room ordering number, assigned by the channel
    """
    event_type: EventType
    auction_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0
    sequence: int = 0

    def __post_init__(self):
        if self.timestamp == 0.0:
            self.timestamp = time.time()

    @property
    def room(self) -> str:
        return room_name(self.auction_id)

    @property
    def name(self) -> str:
        return self.event_type.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "room": self.room,
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        room = data["room"]
        if not room.startswith("auction_"):
            raise ValueError(f"Invalid room name: {room}")
        return cls(
            event_type=EventType(data["event"]),
            auction_id=room[len("auction_"):],
            payload=dict(data.get("payload", {})),
            timestamp=float(data.get("timestamp", 0.0)),
            sequence=int(data.get("sequence", 0)),
        )

    @classmethod
    def from_json(cls, raw: str) -> "Event":
        return cls.from_dict(json.loads(raw))
