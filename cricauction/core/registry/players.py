"""
Player and Tournament Registry - Entities an auction is built from.

This module provides:
- Player records (roles, base price, group)
- Tournament records whose settings seed new auctions
- An in-memory registry with lookup by id

Registration screens and profile management live outside the core; this
registry only holds what the auction needs to sequence and display players.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time
import uuid

from cricauction.core.errors import NotFound, ValidationError
from cricauction.utils.logger import get_logger

logger = get_logger("registry")


# =============================================================================
# Constants
# =============================================================================

PLAYER_ROLES = ("batsman", "bowler", "all-rounder", "wicket-keeper")

# Accepted spellings normalised onto PLAYER_ROLES
ROLE_ALIASES = {
    "batter": "batsman",
    "batsman": "batsman",
    "bowler": "bowler",
    "allrounder": "all-rounder",
    "all-rounder": "all-rounder",
    "all rounder": "all-rounder",
    "wicketkeeper": "wicket-keeper",
    "wicket-keeper": "wicket-keeper",
    "wicket keeper": "wicket-keeper",
    "keeper": "wicket-keeper",
}


# =============================================================================
# Enums
# =============================================================================


class TournamentFormat(Enum):
    """Tournament format; determines the expected number of teams."""
    BILATERAL = "Bilateral"
    TRI_SERIES = "Tri-Series"
    QUAD_SERIES = "Quad Series"
    MEGA_SIX = "Mega Auction - Six Teams"
    MEGA_EIGHT = "Mega Auction - Eight Teams"

    @property
    def team_count(self) -> int:
        return {
            TournamentFormat.BILATERAL: 2,
            TournamentFormat.TRI_SERIES: 3,
            TournamentFormat.QUAD_SERIES: 4,
            TournamentFormat.MEGA_SIX: 6,
            TournamentFormat.MEGA_EIGHT: 8,
        }[self]


class TournamentStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# Data Structures
# =============================================================================


def new_id() -> str:
    return uuid.uuid4().hex


def normalize_roles(roles: List[str]) -> List[str]:
    """Map role spellings onto PLAYER_ROLES, rejecting unknown ones."""
    normalized = []
    for role in roles:
        key = role.strip().lower()
        if key not in ROLE_ALIASES:
            raise ValidationError.single("roles", f"Unknown player role: {role}")
        value = ROLE_ALIASES[key]
        if value not in normalized:
            normalized.append(value)
    return normalized


@dataclass
class Player:
    """
    A player that can be put up for auction.

    Attributes:
        player_id: Unique identifier
        name: Display name
        roles: Cricket roles (normalised)
        base_price: Price used by base-price ordering
        player_group: Optional group label for group-wise ordering
        is_active: Inactive players are excluded from new auctions
    """
    name: str
    roles: List[str] = field(default_factory=lambda: ["batsman"])
    base_price: int = 0
    player_group: Optional[str] = None
    is_active: bool = True
    player_id: str = field(default_factory=new_id)

    def summary(self) -> Dict[str, Any]:
        """Public fields sent to clients."""
        return {
            "player_id": self.player_id,
            "name": self.name,
            "roles": list(self.roles),
            "base_price": self.base_price,
            "player_group": self.player_group,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary()
        data["is_active"] = self.is_active
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        return cls(
            player_id=data["player_id"],
            name=data["name"],
            roles=list(data.get("roles", [])),
            base_price=int(data.get("base_price", 0)),
            player_group=data.get("player_group"),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass
class TournamentSettings:
    """Settings a tournament hands to every auction created for it."""
    total_tokens: int = 2000
    min_bid: int = 40
    bid_increment: int = 20
    increment_mode: str = "fixed"  # fixed | custom
    custom_increments: List[Tuple[int, int]] = field(default_factory=list)  # (up_to, increment)
    timer_duration: int = 30
    max_players_per_team: int = 15
    min_players_per_team: int = 11

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_tokens": self.total_tokens,
            "min_bid": self.min_bid,
            "bid_increment": self.bid_increment,
            "increment_mode": self.increment_mode,
            "custom_increments": [list(t) for t in self.custom_increments],
            "timer_duration": self.timer_duration,
            "max_players_per_team": self.max_players_per_team,
            "min_players_per_team": self.min_players_per_team,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentSettings":
        return cls(
            total_tokens=int(data.get("total_tokens", 2000)),
            min_bid=int(data.get("min_bid", 40)),
            bid_increment=int(data.get("bid_increment", 20)),
            increment_mode=data.get("increment_mode", "fixed"),
            custom_increments=[
                (int(up_to), int(inc)) for up_to, inc in data.get("custom_increments", [])
            ],
            timer_duration=int(data.get("timer_duration", 30)),
            max_players_per_team=int(data.get("max_players_per_team", 15)),
            min_players_per_team=int(data.get("min_players_per_team", 11)),
        )


@dataclass
class Tournament:
    """A tournament: format, settings, registered teams and captains."""
    name: str
    format: TournamentFormat = TournamentFormat.BILATERAL
    settings: TournamentSettings = field(default_factory=TournamentSettings)
    team_ids: List[str] = field(default_factory=list)
    captain_ids: List[str] = field(default_factory=list)
    status: TournamentStatus = TournamentStatus.DRAFT
    created_at: float = field(default_factory=time.time)
    tournament_id: str = field(default_factory=new_id)

    @property
    def expected_team_count(self) -> int:
        return self.format.team_count

    def add_team(self, team_id: str, captain_id: Optional[str] = None) -> None:
        if team_id in self.team_ids:
            return
        if len(self.team_ids) >= self.expected_team_count:
            raise ValidationError.single(
                "team_ids",
                f"{self.format.value} allows {self.expected_team_count} teams",
            )
        self.team_ids.append(team_id)
        if captain_id and captain_id not in self.captain_ids:
            self.captain_ids.append(captain_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tournament_id": self.tournament_id,
            "name": self.name,
            "format": self.format.value,
            "settings": self.settings.to_dict(),
            "team_ids": list(self.team_ids),
            "captain_ids": list(self.captain_ids),
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tournament":
        return cls(
            tournament_id=data["tournament_id"],
            name=data["name"],
            format=TournamentFormat(data.get("format", TournamentFormat.BILATERAL.value)),
            settings=TournamentSettings.from_dict(data.get("settings", {})),
            team_ids=list(data.get("team_ids", [])),
            captain_ids=list(data.get("captain_ids", [])),
            status=TournamentStatus(data.get("status", "draft")),
            created_at=float(data.get("created_at", time.time())),
        )


# =============================================================================
# Registry
# =============================================================================


class PlayerRegistry:
    """
    In-memory index of players and tournaments.

    The service loads it from storage at startup and keeps it current as
    entities are registered.
    """

    def __init__(self):
        self.players: Dict[str, Player] = {}
        self.tournaments: Dict[str, Tournament] = {}

    def add_player(self, player: Player) -> Player:
        if not player.name or not player.name.strip():
            raise ValidationError.single("name", "Player name is required")
        if player.base_price < 0:
            raise ValidationError.single("base_price", "Base price cannot be negative")
        player.roles = normalize_roles(player.roles)
        if not player.roles:
            raise ValidationError.single("roles", "At least one role must be selected")
        self.players[player.player_id] = player
        logger.debug(f"Registered player {player.name} ({player.player_id[:8]})")
        return player

    def remove_player(self, player_id: str) -> None:
        self.players.pop(player_id, None)

    def get_player(self, player_id: str) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise NotFound(f"Player {player_id} not found")
        return player

    def add_tournament(self, tournament: Tournament) -> Tournament:
        if not tournament.name or len(tournament.name.strip()) < 3:
            raise ValidationError.single("name", "Tournament name must be at least 3 characters long")
        self.tournaments[tournament.tournament_id] = tournament
        logger.info(
            f"Registered tournament {tournament.name} "
            f"({tournament.format.value}, {tournament.expected_team_count} teams)"
        )
        return tournament

    def remove_tournament(self, tournament_id: str) -> None:
        self.tournaments.pop(tournament_id, None)

    def get_tournament(self, tournament_id: str) -> Tournament:
        tournament = self.tournaments.get(tournament_id)
        if tournament is None:
            raise NotFound(f"Tournament {tournament_id} not found")
        return tournament

    def eligible(self, player_ids: List[str]) -> List[Player]:
        """Active players among the given ids, in the given order."""
        return [
            self.players[pid]
            for pid in player_ids
            if pid in self.players and self.players[pid].is_active
        ]
