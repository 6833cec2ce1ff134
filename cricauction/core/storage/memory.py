"""
In-memory store, used by tests and single-process simulations.

Records are kept as dicts (the same shape the SQLite store writes) so
callers never share mutable objects with the store.
"""

import threading
from typing import Any, Dict, Iterable, List, Optional

from cricauction.core.auction.models import Auction
from cricauction.core.bidding.bid import Bid
from cricauction.core.errors import ConcurrencyConflict
from cricauction.core.registry.players import Player, Tournament
from cricauction.core.storage.base import AuctionStore
from cricauction.core.teams.team import Team


class InMemoryStore(AuctionStore):

    def __init__(self):
        self._lock = threading.Lock()
        self.tournaments: Dict[str, Dict[str, Any]] = {}
        self.players: Dict[str, Dict[str, Any]] = {}
        self.teams: Dict[str, Dict[str, Any]] = {}
        self.auctions: Dict[str, Dict[str, Any]] = {}
        self.bids: Dict[str, Dict[str, Dict[str, Any]]] = {}  # auction_id -> bid_id -> data
        self.writes = 0

    def save_tournament(self, tournament: Tournament) -> None:
        with self._lock:
            self.tournaments[tournament.tournament_id] = tournament.to_dict()

    def load_tournament(self, tournament_id: str) -> Optional[Tournament]:
        data = self.tournaments.get(tournament_id)
        return Tournament.from_dict(data) if data else None

    def list_tournaments(self) -> List[Tournament]:
        return [Tournament.from_dict(d) for d in list(self.tournaments.values())]

    def save_player(self, player: Player) -> None:
        with self._lock:
            self.players[player.player_id] = player.to_dict()

    def load_player(self, player_id: str) -> Optional[Player]:
        data = self.players.get(player_id)
        return Player.from_dict(data) if data else None

    def list_players(self) -> List[Player]:
        return [Player.from_dict(d) for d in list(self.players.values())]

    def save_team(self, team: Team) -> None:
        with self._lock:
            self.teams[team.team_id] = team.to_dict()

    def load_team(self, team_id: str) -> Optional[Team]:
        data = self.teams.get(team_id)
        return Team.from_dict(data) if data else None

    def list_teams(self, tournament_id: Optional[str] = None) -> List[Team]:
        return [
            Team.from_dict(d) for d in list(self.teams.values())
            if tournament_id is None or d["tournament_id"] == tournament_id
        ]

    def load_auction(self, auction_id: str) -> Optional[Auction]:
        data = self.auctions.get(auction_id)
        return Auction.from_dict(data) if data else None

    def list_auctions(self) -> List[Auction]:
        return [Auction.from_dict(d) for d in list(self.auctions.values())]

    def load_bids(self, auction_id: str) -> List[Bid]:
        return [Bid.from_dict(d) for d in list(self.bids.get(auction_id, {}).values())]

    def persist(
        self,
        auction: Auction,
        expected_version: int,
        bids: Iterable[Bid] = (),
        teams: Iterable[Team] = (),
    ) -> None:
        with self._lock:
            stored = self.auctions.get(auction.auction_id)
            stored_version = stored["version"] if stored else 0
            if stored_version != expected_version:
                raise ConcurrencyConflict(
                    f"Auction {auction.auction_id} is at version {stored_version}, "
                    f"expected {expected_version}"
                )
            self.auctions[auction.auction_id] = auction.to_dict()
            auction_bids = self.bids.setdefault(auction.auction_id, {})
            for bid in bids:
                auction_bids[bid.bid_id] = bid.to_dict()
            for team in teams:
                self.teams[team.team_id] = team.to_dict()
            self.writes += 1
