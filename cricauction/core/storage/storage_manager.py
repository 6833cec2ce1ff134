import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from cricauction.core.auction.models import Auction
from cricauction.core.bidding.bid import Bid
from cricauction.core.registry.players import Player, Tournament
from cricauction.core.storage.base import AuctionStore
from cricauction.core.storage.sqlite_adapter import SQLiteAdapter
from cricauction.core.teams.team import Team
from cricauction.utils.logger import get_logger

logger = get_logger("storage.manager")


def _dump(data: Dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True)


class StorageManager(AuctionStore):
    """
    SQLite-backed auction store.

    Coordinates data persistence using the SQLite adapter.
    Handles:
    - Registry records (tournaments, players, teams)
    - Auctions with optimistic versioning
    - Bid history
    """

    def __init__(self, data_dir: Path, db_name: str = "auction.db"):
        self.data_dir = data_dir
        self.db_path = data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    def close(self) -> None:
        self.adapter.close()

    # =========================================================================
    # Registry
    # =========================================================================

    def save_tournament(self, tournament: Tournament) -> None:
        self.adapter.put_entity("tournament", tournament.tournament_id, _dump(tournament.to_dict()))

    def load_tournament(self, tournament_id: str) -> Optional[Tournament]:
        raw = self.adapter.get_entity("tournament", tournament_id)
        return Tournament.from_dict(json.loads(raw)) if raw else None

    def list_tournaments(self) -> List[Tournament]:
        return [Tournament.from_dict(json.loads(raw)) for raw in self.adapter.list_entities("tournament")]

    def save_player(self, player: Player) -> None:
        self.adapter.put_entity("player", player.player_id, _dump(player.to_dict()))

    def load_player(self, player_id: str) -> Optional[Player]:
        raw = self.adapter.get_entity("player", player_id)
        return Player.from_dict(json.loads(raw)) if raw else None

    def list_players(self) -> List[Player]:
        return [Player.from_dict(json.loads(raw)) for raw in self.adapter.list_entities("player")]

    def save_team(self, team: Team) -> None:
        self.adapter.put_entity("team", team.team_id, _dump(team.to_dict()), team.tournament_id)

    def load_team(self, team_id: str) -> Optional[Team]:
        raw = self.adapter.get_entity("team", team_id)
        return Team.from_dict(json.loads(raw)) if raw else None

    def list_teams(self, tournament_id: Optional[str] = None) -> List[Team]:
        return [
            Team.from_dict(json.loads(raw))
            for raw in self.adapter.list_entities("team", tournament_id)
        ]

    # =========================================================================
    # Auctions
    # =========================================================================

    def load_auction(self, auction_id: str) -> Optional[Auction]:
        raw = self.adapter.get_auction(auction_id)
        return Auction.from_dict(json.loads(raw)) if raw else None

    def list_auctions(self) -> List[Auction]:
        return [Auction.from_dict(json.loads(raw)) for raw in self.adapter.list_auctions()]

    def load_bids(self, auction_id: str) -> List[Bid]:
        return [Bid.from_dict(json.loads(raw)) for raw in self.adapter.get_bids(auction_id)]

    def persist(
        self,
        auction: Auction,
        expected_version: int,
        bids: Iterable[Bid] = (),
        teams: Iterable[Team] = (),
    ) -> None:
        """Atomically persist an auction mutation."""
        bid_rows = [(b.bid_id, b.player_id, _dump(b.to_dict())) for b in bids]
        team_rows = [(t.team_id, t.tournament_id, _dump(t.to_dict())) for t in teams]
        self.adapter.persist_auction_update(
            auction_id=auction.auction_id,
            tournament_id=auction.tournament_id,
            status=auction.status.value,
            version=auction.version,
            expected_version=expected_version,
            auction_data=_dump(auction.to_dict()),
            bids=bid_rows,
            teams=team_rows,
        )
        logger.debug(
            f"Persisted auction {auction.auction_id[:8]} v{auction.version} "
            f"({len(bid_rows)} bids, {len(team_rows)} teams)"
        )
