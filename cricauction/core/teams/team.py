"""
Team - A tournament team with a token budget and a roster.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import time

from cricauction.core.registry.players import new_id


@dataclass
class RosterEntry:
    """A purchased player."""
    player_id: str
    amount: int
    purchased_at: float = field(default_factory=time.time)
    role: str = "player"  # player | captain | vice-captain

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "amount": self.amount,
            "purchased_at": self.purchased_at,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RosterEntry":
        return cls(
            player_id=data["player_id"],
            amount=int(data["amount"]),
            purchased_at=float(data.get("purchased_at", time.time())),
            role=data.get("role", "player"),
        )


@dataclass
class Team:
    """
    A team competing in an auction.

    Attributes:
        name: Team name
        tournament_id: Owning tournament
        captain_id: User allowed to bid for the team
        manager_id: Optional second user allowed to bid
        tokens: Initial budget
        total_spent: Sum of roster purchase amounts
        roster: Purchased players
        max_players: Roster cap; no bids once reached
        min_players: Roster size at which the team is complete
    """
    name: str
    tournament_id: str
    captain_id: str
    manager_id: Optional[str] = None
    tokens: int = 2000
    total_spent: int = 0
    roster: List[RosterEntry] = field(default_factory=list)
    max_players: int = 15
    min_players: int = 11
    is_active: bool = True
    team_id: str = field(default_factory=new_id)

    @property
    def available_budget(self) -> int:
        return self.tokens - self.total_spent

    @property
    def player_count(self) -> int:
        return len(self.roster)

    @property
    def is_full(self) -> bool:
        return len(self.roster) >= self.max_players

    @property
    def is_complete(self) -> bool:
        return len(self.roster) >= self.min_players

    def can_bid(self, amount: int) -> bool:
        return self.is_active and not self.is_full and amount <= self.available_budget

    def has_player(self, player_id: str) -> bool:
        return any(entry.player_id == player_id for entry in self.roster)

    def is_representative(self, user_id: Optional[str]) -> bool:
        """Whether the user is this team's captain or manager."""
        if not user_id:
            return False
        return user_id == self.captain_id or (
            self.manager_id is not None and user_id == self.manager_id
        )

    def statistics(self) -> Dict[str, Any]:
        amounts = [entry.amount for entry in self.roster]
        return {
            "team_id": self.team_id,
            "name": self.name,
            "player_count": len(amounts),
            "total_spent": self.total_spent,
            "available_budget": self.available_budget,
            "avg_price": (sum(amounts) / len(amounts)) if amounts else 0,
            "max_purchase": max(amounts) if amounts else 0,
            "min_purchase": min(amounts) if amounts else 0,
            "is_complete": self.is_complete,
        }

    def summary(self) -> Dict[str, Any]:
        """Public fields sent to clients."""
        return {
            "team_id": self.team_id,
            "name": self.name,
            "available_budget": self.available_budget,
            "player_count": len(self.roster),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "name": self.name,
            "tournament_id": self.tournament_id,
            "captain_id": self.captain_id,
            "manager_id": self.manager_id,
            "tokens": self.tokens,
            "total_spent": self.total_spent,
            "roster": [entry.to_dict() for entry in self.roster],
            "max_players": self.max_players,
            "min_players": self.min_players,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(
            team_id=data["team_id"],
            name=data["name"],
            tournament_id=data["tournament_id"],
            captain_id=data["captain_id"],
            manager_id=data.get("manager_id"),
            tokens=int(data.get("tokens", 2000)),
            total_spent=int(data.get("total_spent", 0)),
            roster=[RosterEntry.from_dict(e) for e in data.get("roster", [])],
            max_players=int(data.get("max_players", 15)),
            min_players=int(data.get("min_players", 11)),
            is_active=bool(data.get("is_active", True)),
        )
