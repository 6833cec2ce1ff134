"""
Bid - A single accepted bid for a player in an auction round.
"""

from dataclasses import dataclass, field
from typing import Any, Dict
import time

from cricauction.core.registry.players import new_id


@dataclass
class Bid:
    """
    An accepted bid.

    Attributes:
        auction_id: Auction the bid belongs to
        player_id: Player being bid on
        team_id: Team the bid is placed for
        bidder_id: User who placed it
        amount: Tokens offered
        round_number: Auction round in which it was accepted
        is_winning: True only for the current leader of its round
        is_sold: Set when the round closes with this bid as the sale
    """
    auction_id: str
    player_id: str
    team_id: str
    bidder_id: str
    amount: int
    round_number: int = 0
    timestamp: float = field(default_factory=time.time)
    is_winning: bool = False
    is_sold: bool = False
    notes: str = ""
    bid_id: str = field(default_factory=new_id)

    def summary(self) -> Dict[str, Any]:
        """Payload for bid_update broadcasts."""
        return {
            "bid_id": self.bid_id,
            "auction_id": self.auction_id,
            "player_id": self.player_id,
            "team_id": self.team_id,
            "bidder_id": self.bidder_id,
            "amount": self.amount,
            "timestamp": self.timestamp,
            "is_winning": self.is_winning,
            "is_sold": self.is_sold,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary()
        data["round_number"] = self.round_number
        data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bid":
        return cls(
            bid_id=data["bid_id"],
            auction_id=data["auction_id"],
            player_id=data["player_id"],
            team_id=data["team_id"],
            bidder_id=data["bidder_id"],
            amount=int(data["amount"]),
            round_number=int(data.get("round_number", 0)),
            timestamp=float(data.get("timestamp", time.time())),
            is_winning=bool(data.get("is_winning", False)),
            is_sold=bool(data.get("is_sold", False)),
            notes=data.get("notes", ""),
        )
